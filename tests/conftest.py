import pytest

from order_pipeline.services.store import OrderStore
from order_pipeline.utils.database import create_engine, init_db
from order_pipeline.utils.log import Log


@pytest.fixture
async def log(tmp_path):
    log = Log(log_dir=str(tmp_path / "log"), log_print=False, log_debug=True)
    yield log
    await log.shutdown()


@pytest.fixture
async def sql_store(tmp_path, log):
    """OrderStore over a throwaway SQLite file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_db(engine)
    store = OrderStore(engine, log)
    yield store
    await store.close()
