# order_pipeline/utils/database.py

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

# ────────────── Base для моделей ──────────────
Base = declarative_base()  # базовый класс для всех моделей SQLAlchemy


# ────────────── Асинхронный движок ──────────────
def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Движок с пулом соединений, общий для всех задач приложения."""
    return create_async_engine(
        database_url,
        echo=echo,  # True можно включить для отладки SQL
        pool_pre_ping=True,
    )


# ────────────── Асинхронная сессия ──────────────
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
    )


# ────────────── Инициализация базы данных ──────────────
async def init_db(engine: AsyncEngine):
    """
    Создаёт все таблицы заказов (если ещё не созданы):
    delivery, payment, orders, items, order_item_conn
    """
    import order_pipeline.models.order  # noqa: F401  регистрирует таблицы в Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
