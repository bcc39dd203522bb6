# order_pipeline/services/cache.py

import asyncio
from typing import Protocol

from order_pipeline.schemas.order import Order
from order_pipeline.utils.cache import BoundedCache
from order_pipeline.utils.errors import ConstructionError, OrderNotFound, StoreError
from order_pipeline.utils.log import Log


class Store(Protocol):
    async def add_order(self, order: Order) -> None: ...
    async def get_order(self, order_uid: str) -> Order: ...
    async def get_recent_order_ids(self, limit: int) -> list[str]: ...


class OrderCache:
    """
    Кэш заказов поверх базы.
    Чтение: cache-aside (промах → база → кэш).
    Запись: сначала кэш, затем транзакция в базе.
    Если база не приняла заказ, запись в кэше остаётся до вытеснения.
    """

    def __init__(self, store: Store, log: Log, max_size: int = 1024, buffer_items: int = 64):
        self.store = store
        self.log = log
        self.max_size = max_size
        self.cache = BoundedCache(
            max_cost=max_size,
            num_counters=max_size * 10,
            buffer_items=buffer_items,
        )

    @classmethod
    async def create(cls, store: Store, log: Log, max_size: int = 1024, buffer_items: int = 64) -> "OrderCache":
        """Создаёт кэш и прогревает его последними заказами из базы."""
        service = cls(store, log, max_size=max_size, buffer_items=buffer_items)
        try:
            await service.load_cache()
        except Exception:
            service.close()
            raise
        return service

    # ==========================================================
    # ПРОГРЕВ
    # ==========================================================
    async def load_cache(self):
        await self.log.log_info("cache", "Прогрев кэша последними заказами")
        try:
            order_ids = await self.store.get_recent_order_ids(self.max_size)
        except StoreError as e:
            await self.log.log_error("cache", "Не удалось получить последние заказы", {"error": e})
            raise ConstructionError(f"cache warm-up failed: {e}") from e

        await asyncio.gather(*(self._warm_order(order_uid) for order_uid in order_ids))
        await self.settle()
        await self.log.log_info("cache", "Прогрев кэша завершён", {
            "requested": len(order_ids),
            "cached": len(self.cache),
        })

    async def _warm_order(self, order_uid: str):
        try:
            order = await self.store.get_order(order_uid)
        except (StoreError, OrderNotFound) as e:
            await self.log.log_warning("cache", "Заказ пропущен при прогреве", {
                "order_uid": order_uid,
                "error": e,
            })
            return

        if await self.admit(order, settle=False):
            await self.log.log_debug("cache", "Заказ добавлен в кэш", {"order_uid": order_uid})

    # ==========================================================
    # ЗАПИСЬ / ЧТЕНИЕ
    # ==========================================================
    async def add_order(self, order: Order) -> None:
        """Кладёт заказ в кэш и сохраняет в базе. StoreError пробрасывается."""
        await self.log.log_debug("cache", "Добавление заказа в кэш", {"order_uid": order.order_uid})
        await self.admit(order)

        try:
            await self.store.add_order(order)
        except StoreError as e:
            await self.log.log_error("cache", "Не удалось сохранить заказ в базе", {
                "order_uid": order.order_uid,
                "error": e,
            })
            raise

        await self.log.log_info("cache", "Заказ добавлен", {"order_uid": order.order_uid})

    async def get_order(self, order_uid: str) -> Order:
        """Заказ из кэша, при промахе из базы. OrderNotFound / StoreError пробрасываются."""
        order, found = self.cache.get(order_uid)
        if found:
            await self.log.log_debug("cache", "Попадание в кэш", {"order_uid": order_uid})
            return order

        await self.log.log_debug("cache", "Промах кэша", {"order_uid": order_uid})
        try:
            order = await self.store.get_order(order_uid)
        except OrderNotFound:
            await self.log.log_info("cache", "Заказ не найден", {"order_uid": order_uid})
            raise
        except StoreError as e:
            await self.log.log_error("cache", "Не удалось получить заказ из базы", {
                "order_uid": order_uid,
                "error": e,
            })
            raise

        await self.admit(order)
        return order

    async def admit(self, order: Order, settle: bool = True) -> bool:
        """Ставит заказ в кэш (стоимость 1). Полный буфер не теряет запись: ждём разбора и повторяем."""
        while not self.cache.set(order.order_uid, order, 1):
            if self.cache.closed:
                return False
            await self.settle()

        if settle:
            await self.settle()
        return True

    async def settle(self):
        """Ждёт, пока асинхронные записи в кэш станут видны читателям."""
        await asyncio.to_thread(self.cache.wait)

    def close(self):
        self.cache.close()
