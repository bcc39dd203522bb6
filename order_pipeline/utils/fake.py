# order_pipeline/utils/fake.py
# Тестовые заказы: эталонный и сгенерированные через Faker

import random
import uuid
from datetime import datetime, timezone

from faker import Faker

from order_pipeline.schemas.order import Address, Item, Order, Payment

fake = Faker()

REFERENCE_ORDER_UID = "b563feb7b2b84b6test"


def reference_order() -> Order:
    """Эталонный заказ b563feb7b2b84b6test с одним товаром."""
    return Order(
        order_uid=REFERENCE_ORDER_UID,
        track_number="WBILMTESTTRACK",
        entry="WBIL",
        delivery=Address(
            name="Test Testov",
            phone="+9720000000",
            zip="2639809",
            city="Kiryat Mozkin",
            address="Ploshad Mira 15",
            region="Kraiot",
            email="test@gmail.com",
        ),
        payment=Payment(
            transaction=REFERENCE_ORDER_UID,
            request_id="",
            currency="USD",
            provider="wbpay",
            amount=1817,
            payment_dt=1637907727,
            bank="alpha",
            delivery_cost=1500,
            goods_total=317,
            custom_fee=0,
        ),
        items=[
            Item(
                chrt_id=9934930,
                track_number="WBILMTESTTRACK",
                price=453,
                rid="ab4219087a764ae0btest",
                name="Mascaras",
                sale=30,
                size="0",
                total_price=317,
                nm_id=2389212,
                brand="Vivienne Sabo",
                status=202,
            ),
        ],
        locale="en",
        internal_signature="",
        customer_id="test",
        delivery_service="meest",
        shardkey="9",
        sm_id=99,
        date_created=datetime(2021, 11, 26, 6, 22, 19, tzinfo=timezone.utc),
        oof_shard="1",
    )


def fake_item(track_number: str) -> Item:
    price = random.randint(100, 10_000)
    sale = random.randint(0, 50)
    return Item(
        chrt_id=random.randint(1, 2**31 - 1),
        track_number=track_number,
        price=price,
        rid=uuid.uuid4().hex,
        name=fake.word(),
        sale=sale,
        size=str(random.randint(0, 5)),
        total_price=price * (100 - sale) // 100,
        nm_id=random.randint(1, 10_000_000),
        brand=fake.company(),
        status=202,
    )


def fake_order(max_items: int = 3, date_created: datetime | None = None) -> Order:
    """Случайный заказ, проходящий все проверки разбора. Товаров от 0 до max_items."""
    order_uid = uuid.uuid4().hex
    track_number = f"WBIL{uuid.uuid4().hex[:10].upper()}"
    items = [fake_item(track_number) for _ in range(random.randint(0, max_items))]
    goods_total = sum(item.total_price for item in items)
    delivery_cost = random.randint(0, 2000)

    return Order(
        order_uid=order_uid,
        track_number=track_number,
        entry="WBIL",
        delivery=Address(
            name=fake.name(),
            phone=fake.phone_number(),
            zip=fake.postcode(),
            city=fake.city(),
            address=fake.street_address(),
            region=fake.state(),
            email=fake.email(),
        ),
        payment=Payment(
            transaction=order_uid,
            request_id="",
            currency=random.choice(["USD", "EUR", "RUB"]),
            provider="wbpay",
            amount=goods_total + delivery_cost,
            payment_dt=random.randint(1_600_000_000, 1_700_000_000),
            bank=fake.word(),
            delivery_cost=delivery_cost,
            goods_total=goods_total,
            custom_fee=0,
        ),
        items=items,
        locale=random.choice(["en", "ru"]),
        internal_signature="",
        customer_id=fake.user_name(),
        delivery_service=fake.word(),
        shardkey=str(random.randint(0, 9)),
        sm_id=random.randint(1, 100),
        date_created=date_created or datetime.now(timezone.utc).replace(microsecond=0),
        oof_shard=str(random.randint(0, 9)),
    )
