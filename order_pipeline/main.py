# order_pipeline/main.py

import asyncio
import multiprocessing
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from order_pipeline.config import settings
from order_pipeline.services.cache import OrderCache
from order_pipeline.services.kafka import OrderConsumer, stop_listening
from order_pipeline.services.store import OrderStore
from order_pipeline.utils.database import create_engine, init_db
from order_pipeline.utils.errors import ConstructionError
from order_pipeline.utils.log import Log

# --- загрузка переменных окружения ---
load_dotenv()

# --- sync логгер для раннего старта ---
boot_log = Log()
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="Импорты main.py выполнены")


# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Точка сборки: база → кэш (с прогревом) → слушатель Kafka → HTTP.
    Все фоновые задачи останавливаются одним событием stop.
    """
    boot_log.log_info_sync(target="startup", message="lifespan: startup начат")

    log = Log()
    app.state.log = log

    # База
    engine = create_engine(settings.DATABASE_URL)
    try:
        await init_db(engine)
    except (SQLAlchemyError, OSError) as e:
        boot_log.log_error_sync(target="startup", message="База недоступна", data={"error": e})
        await engine.dispose()
        raise ConstructionError(f"database init failed: {e}") from e
    store = OrderStore(engine, log)
    boot_log.log_info_sync(target="startup", message="База инициализирована")

    # Кэш
    try:
        cache = await OrderCache.create(
            store,
            log,
            max_size=settings.CACHE_SIZE,
            buffer_items=settings.CACHE_BUFFER_ITEMS,
        )
    except ConstructionError as e:
        boot_log.log_error_sync(target="startup", message="Кэш не инициализирован", data={"error": e})
        await store.close()
        raise
    app.state.cache = cache
    boot_log.log_info_sync(target="startup", message="Кэш прогрет", data={"size": len(cache.cache)})

    # Kafka
    try:
        consumer = OrderConsumer(
            cache,
            log,
            topic=settings.KAFKA_TOPIC,
            partition=settings.KAFKA_PARTITION,
            brokers=settings.KAFKA_URL,
            group_id=settings.KAFKA_GROUP_ID,
            max_items=settings.MAX_ITEMS,
            max_bytes=settings.MAX_MESSAGE_BYTES,
            poll_timeout=settings.KAFKA_POLL_TIMEOUT,
        )
    except ConstructionError as e:
        boot_log.log_error_sync(target="startup", message="Kafka не инициализирована", data={"error": e})
        cache.close()
        await store.close()
        raise
    stop = asyncio.Event()
    listener = asyncio.create_task(consumer.start_listening(stop), name="kafka-listener")
    boot_log.log_info_sync(target="startup", message="Слушатель Kafka запущен")

    yield

    # shutdown
    await log.log_info(target="shutdown", message="Остановка приложения")
    in_time = await stop_listening(listener, stop, settings.SHUTDOWN_GRACE_SECONDS, log)
    cache.close()
    await store.close()
    await log.log_info(target="shutdown", message="Ресурсы освобождены", data={"graceful": in_time})
    await log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log корректно завершён")


# ────────────── Создаём FastAPI приложение ──────────────
app = FastAPI(title="Order Pipeline API", lifespan=lifespan)

# ────────────── Подключение роутов ──────────────
from order_pipeline.routes import order  # noqa: E402

app.include_router(order.router, prefix="/api/v1/order", tags=["order"])

# ────────────── Запуск uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Запуск uvicorn.run")
    uvicorn.run(
        "order_pipeline.main:app",
        host=settings.HTTP_HOST,
        port=settings.HTTP_PORT,
        log_level="info",
    )
