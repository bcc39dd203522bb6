# order_pipeline/utils/errors.py
# Ошибки конвейера заказов


class DecodeError(Exception):
    """Сообщение не удалось разобрать в заказ. Сообщение отбрасывается."""


class InvalidFormat(DecodeError):
    """Дата создания заказа не в формате RFC 3339 (дата + время + смещение)."""


class TooManyItems(DecodeError):
    """В заказе больше товаров, чем разрешено настройкой MAX_ITEMS."""

    def __init__(self, count: int, limit: int):
        super().__init__(f"too many items in the order: {count} > {limit}")
        self.count = count
        self.limit = limit


class StoreError(Exception):
    """Ошибка работы с базой: соединение, транзакция, ограничения."""


class OrderNotFound(Exception):
    """Заказа нет ни в кэше, ни в базе."""

    def __init__(self, order_uid: str):
        super().__init__(f"order not found: {order_uid}")
        self.order_uid = order_uid


class ConstructionError(Exception):
    """Сервис не может стартовать: кэш, база или Kafka не инициализированы."""


class ProduceError(Exception):
    """Kafka не подтвердила доставку сообщения."""
