# order_pipeline/services/order.py

from fastapi import HTTPException, Request

from order_pipeline.schemas.order import Order
from order_pipeline.utils.errors import OrderNotFound, StoreError


async def read_order_service(order_uid: str, request: Request) -> Order:
    """
    Чтение заказа по order_uid через кэш.
    Нет заказа → 404, ошибка базы → 500.
    """
    cache = request.app.state.cache
    log = request.app.state.log

    try:
        order = await cache.get_order(order_uid)
    except OrderNotFound:
        await log.log_error("order", "Заказ не найден", {"order_uid": order_uid})
        raise HTTPException(status_code=404, detail="Заказ не найден")
    except StoreError as e:
        await log.log_error("order", "Ошибка базы при чтении заказа", {"order_uid": order_uid, "error": e})
        raise HTTPException(status_code=500, detail="Ошибка при получении заказа")

    await log.log_info("order", "Заказ загружен", {"order_uid": order_uid})
    return order
