# order_pipeline/services/store.py

from datetime import timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.future import select

from order_pipeline.models.order import (
    Delivery as DeliveryModel,
    Item as ItemModel,
    Order as OrderModel,
    OrderItem as OrderItemModel,
    Payment as PaymentModel,
)
from order_pipeline.schemas.order import Address, Item, Order, Payment
from order_pipeline.utils.database import create_session_factory
from order_pipeline.utils.errors import OrderNotFound, StoreError
from order_pipeline.utils.log import Log


class OrderStore:
    """
    Хранилище заказов в реляционной базе.
    Заказ пишется одной транзакцией: доставка, оплата, шапка, товары и связи.
    """

    def __init__(self, engine: AsyncEngine, log: Log):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.log = log

    async def add_order(self, order: Order) -> None:
        """Сохраняет заказ целиком или не сохраняет ничего."""
        if order.payment.transaction != order.order_uid:
            await self.log.log_error("store", "Оплата не совпадает с заказом", {
                "order_uid": order.order_uid,
                "transaction": order.payment.transaction,
            })
            raise StoreError(
                f"payment transaction {order.payment.transaction!r} does not match order {order.order_uid!r}"
            )

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    delivery = DeliveryModel(**order.delivery.model_dump())
                    session.add(delivery)
                    await session.flush()  # нужен delivery.id

                    session.add(PaymentModel(**order.payment.model_dump()))
                    await session.flush()

                    session.add(OrderModel(
                        order_uid=order.order_uid,
                        track_number=order.track_number,
                        entry=order.entry,
                        delivery_id=delivery.id,
                        payment_id=order.payment.transaction,
                        locale=order.locale,
                        internal_signature=order.internal_signature,
                        customer_id=order.customer_id,
                        delivery_service=order.delivery_service,
                        shardkey=order.shardkey,
                        sm_id=order.sm_id,
                        date_created=order.date_created.astimezone(timezone.utc),
                        oof_shard=order.oof_shard,
                    ))
                    await session.flush()

                    for item in order.items:
                        session.add(ItemModel(**item.model_dump()))
                    await session.flush()

                    for position, item in enumerate(order.items):
                        session.add(OrderItemModel(
                            order_uid=order.order_uid,
                            chrt_id=item.chrt_id,
                            position=position,
                        ))
        except (SQLAlchemyError, OSError) as e:
            await self.log.log_error("store", "Не удалось сохранить заказ", {
                "order_uid": order.order_uid,
                "error": e,
            })
            raise StoreError(f"failed to add order {order.order_uid}: {e}") from e

        await self.log.log_info("store", "Заказ сохранён", {"order_uid": order.order_uid})

    async def get_order(self, order_uid: str) -> Order:
        """Собирает заказ из таблиц. Нет заказа → OrderNotFound."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(OrderModel).where(OrderModel.order_uid == order_uid)
                )
                db_order = result.scalar_one_or_none()
                if db_order is None:
                    raise OrderNotFound(order_uid)

                delivery = await session.get(DeliveryModel, db_order.delivery_id)
                payment = await session.get(PaymentModel, db_order.payment_id)
                if delivery is None or payment is None:
                    raise StoreError(f"order {order_uid} has no delivery or payment row")

                result = await session.execute(
                    select(ItemModel)
                    .join(OrderItemModel, OrderItemModel.chrt_id == ItemModel.chrt_id)
                    .where(OrderItemModel.order_uid == order_uid)
                    .order_by(OrderItemModel.position)
                )
                db_items = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            await self.log.log_error("store", "Не удалось прочитать заказ", {
                "order_uid": order_uid,
                "error": e,
            })
            raise StoreError(f"failed to get order {order_uid}: {e}") from e

        return self.to_schema(db_order, delivery, payment, db_items)

    async def get_recent_order_ids(self, limit: int) -> list[str]:
        """Последние limit заказов, новые первыми."""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(OrderModel.order_uid)
                    .order_by(OrderModel.date_created.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            await self.log.log_error("store", "Не удалось получить последние заказы", {"error": e})
            raise StoreError(f"failed to fetch recent order ids: {e}") from e

    async def close(self):
        """Закрывает пул соединений."""
        await self.engine.dispose()

    @staticmethod
    def to_schema(db_order: OrderModel, delivery: DeliveryModel, payment: PaymentModel, db_items) -> Order:
        date_created = db_order.date_created
        if date_created.tzinfo is None:
            # в базе время хранится в UTC
            date_created = date_created.replace(tzinfo=timezone.utc)

        return Order(
            order_uid=db_order.order_uid,
            track_number=db_order.track_number,
            entry=db_order.entry,
            delivery=Address(
                name=delivery.name,
                phone=delivery.phone,
                zip=delivery.zip,
                city=delivery.city,
                address=delivery.address,
                region=delivery.region,
                email=delivery.email,
            ),
            payment=Payment(
                transaction=payment.transaction,
                request_id=payment.request_id,
                currency=payment.currency,
                provider=payment.provider,
                amount=payment.amount,
                payment_dt=payment.payment_dt,
                bank=payment.bank,
                delivery_cost=payment.delivery_cost,
                goods_total=payment.goods_total,
                custom_fee=payment.custom_fee,
            ),
            items=[
                Item(
                    chrt_id=i.chrt_id,
                    track_number=i.track_number,
                    price=i.price,
                    rid=i.rid,
                    name=i.name,
                    sale=i.sale,
                    size=i.size,
                    total_price=i.total_price,
                    nm_id=i.nm_id,
                    brand=i.brand,
                    status=i.status,
                )
                for i in db_items
            ],
            locale=db_order.locale,
            internal_signature=db_order.internal_signature,
            customer_id=db_order.customer_id,
            delivery_service=db_order.delivery_service,
            shardkey=db_order.shardkey,
            sm_id=db_order.sm_id,
            date_created=date_created,
            oof_shard=db_order.oof_shard,
        )
