# order_pipeline/schemas/order.py

import re
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_serializer, field_validator
from pydantic_core import PydanticCustomError

# дата + время + смещение UTC (RFC 3339)
RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)
# наносекунды (Go, Java) обрезаются до микросекунд
FRACTION_RE = re.compile(r"\.(\d{1,6})\d*")

# ────────────── Общая конфигурация ──────────────
# схема закрыта: лишние поля и изменение после создания запрещены,
# строки и числа без приведения типов (StrictStr / StrictInt)
STRICT_CONFIG = ConfigDict(extra="forbid", frozen=True)


class Address(BaseModel):
    model_config = STRICT_CONFIG

    name: StrictStr
    phone: StrictStr
    zip: StrictStr
    city: StrictStr
    address: StrictStr
    region: StrictStr
    email: StrictStr


class Payment(BaseModel):
    model_config = STRICT_CONFIG

    transaction: StrictStr            # совпадает с order_uid
    request_id: StrictStr
    currency: StrictStr
    provider: StrictStr
    amount: StrictInt
    payment_dt: StrictInt
    bank: StrictStr
    delivery_cost: StrictInt
    goods_total: StrictInt
    custom_fee: StrictInt


class Item(BaseModel):
    model_config = STRICT_CONFIG

    chrt_id: StrictInt
    track_number: StrictStr
    price: StrictInt
    rid: StrictStr
    name: StrictStr
    sale: StrictInt
    size: StrictStr
    total_price: StrictInt
    nm_id: StrictInt
    brand: StrictStr
    status: StrictInt


class Order(BaseModel):
    """
    Заказ целиком: шапка, доставка, оплата и товары.
    Создаётся один раз и дальше не меняется.
    """
    model_config = STRICT_CONFIG

    order_uid: StrictStr = Field(..., min_length=1)
    track_number: StrictStr
    entry: StrictStr
    delivery: Address
    payment: Payment
    items: List[Item] = Field(default_factory=list)
    locale: StrictStr
    internal_signature: StrictStr
    customer_id: StrictStr
    delivery_service: StrictStr
    shardkey: StrictStr
    sm_id: StrictInt
    date_created: datetime
    oof_shard: StrictStr

    @field_validator("items", mode="before")
    @classmethod
    def parse_items(cls, value):
        # пустой срез из Go приходит как null
        return [] if value is None else value

    @field_validator("date_created", mode="before")
    @classmethod
    def parse_date_created(cls, value):
        if isinstance(value, datetime):
            if value.tzinfo is None:
                raise PydanticCustomError(
                    "invalid_timestamp", "date_created must carry a UTC offset"
                )
            return value

        if not isinstance(value, str) or not RFC3339_RE.match(value):
            raise PydanticCustomError(
                "invalid_timestamp",
                "date_created must be an RFC 3339 timestamp: {value}",
                {"value": str(value)},
            )
        try:
            value = FRACTION_RE.sub(r".\1", value, count=1)
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise PydanticCustomError(
                "invalid_timestamp",
                "date_created is not a valid calendar timestamp: {value}",
                {"value": value},
            )

    @field_serializer("date_created")
    def serialize_date_created(self, value: datetime) -> str:
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
