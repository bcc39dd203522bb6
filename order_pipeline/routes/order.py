# order_pipeline/routes/order.py

from fastapi import APIRouter, HTTPException, Request, status
from order_pipeline.schemas.order import Order
from order_pipeline.services.order import read_order_service

router = APIRouter()

RESPONSES = {
    200: {"description": "Заказ найден и возвращён"},
    400: {"description": "Не передан order_uid"},
    404: {"description": "Заказ не найден"},
    500: {"description": "Внутренняя ошибка сервера"},
}


# ────────────── READ ONE (query) ──────────────
@router.get(
    "",
    response_model=Order,
    status_code=status.HTTP_200_OK,
    summary="Получить заказ по order_uid",
    response_description="Возвращает заказ целиком",
    responses=RESPONSES,
)
async def read_order_by_query(request: Request, order_uid: str = ""):
    if not order_uid.strip():
        await request.app.state.log.log_error("order", "Пустой параметр order_uid")
        raise HTTPException(status_code=400, detail="Не передан order_uid")
    return await read_order_service(order_uid, request)


# ────────────── READ ONE (path) ──────────────
@router.get(
    "/{order_uid}",
    response_model=Order,
    status_code=status.HTTP_200_OK,
    summary="Получить заказ по order_uid",
    response_description="Возвращает заказ целиком",
    responses=RESPONSES,
)
async def read_order(order_uid: str, request: Request):
    return await read_order_service(order_uid, request)
