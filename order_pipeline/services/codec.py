# order_pipeline/services/codec.py
# Разбор и сериализация сообщений Kafka

from pydantic import ValidationError

from order_pipeline.schemas.order import Order
from order_pipeline.utils.errors import DecodeError, InvalidFormat, TooManyItems


def decode_order(data: bytes, max_items: int, max_bytes: int | None = None) -> Order:
    """
    Строгий разбор сообщения в заказ.
    - лишние поля на любом уровне → DecodeError
    - дата создания не в RFC 3339 → InvalidFormat
    - товаров больше max_items → TooManyItems
    """
    if max_bytes is not None and len(data) > max_bytes:
        raise DecodeError(f"message too large: {len(data)} > {max_bytes} bytes")

    try:
        order = Order.model_validate_json(data)
    except ValidationError as e:
        if any(err["type"] == "invalid_timestamp" for err in e.errors()):
            raise InvalidFormat(f"invalid date_created: {e}") from e
        raise DecodeError(f"invalid JSON structure: {e}") from e

    if len(order.items) > max_items:
        raise TooManyItems(len(order.items), max_items)

    return order


def encode_order(order: Order) -> bytes:
    """Заказ → JSON в UTF-8, тот же формат, что принимает decode_order."""
    return order.model_dump_json().encode("utf-8")
