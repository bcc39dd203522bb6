# order_pipeline/models/order.py

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from order_pipeline.utils.database import Base


class Delivery(Base):
    __tablename__ = "delivery"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name    = Column(Text, nullable=False)                 # Получатель
    phone   = Column(Text, nullable=False)                 # Телефон
    zip     = Column(Text, nullable=False)                 # Индекс
    city    = Column(Text, nullable=False)                 # Город
    address = Column(Text, nullable=False)                 # Улица, дом
    region  = Column(Text, nullable=False)                 # Регион
    email   = Column(Text, nullable=False)                 # Почта


class Payment(Base):
    __tablename__ = "payment"

    transaction   = Column(String, primary_key=True)       # = order_uid
    request_id    = Column(Text, nullable=False)
    currency      = Column(Text, nullable=False)
    provider      = Column(Text, nullable=False)
    amount        = Column(Integer, nullable=False)
    payment_dt    = Column(Integer, nullable=False)
    bank          = Column(Text, nullable=False)
    delivery_cost = Column(Integer, nullable=False)
    goods_total   = Column(Integer, nullable=False)
    custom_fee    = Column(Integer, nullable=False)


class Order(Base):
    __tablename__ = "orders"

    order_uid = Column(String, primary_key=True)

    track_number       = Column(Text, nullable=False)
    entry              = Column(Text, nullable=False)
    delivery_id        = Column(Integer, ForeignKey("delivery.id"), nullable=False)
    payment_id         = Column(String, ForeignKey("payment.transaction"), nullable=False)
    locale             = Column(Text, nullable=False)
    internal_signature = Column(Text, nullable=False)
    customer_id        = Column(Text, nullable=False)
    delivery_service   = Column(Text, nullable=False)
    shardkey           = Column(Text, nullable=False)
    sm_id              = Column(Integer, nullable=False)
    date_created       = Column(DateTime(timezone=True), nullable=False, index=True)
    oof_shard          = Column(Text, nullable=False)


class Item(Base):
    __tablename__ = "items"

    chrt_id = Column(Integer, primary_key=True, autoincrement=False)

    track_number = Column(Text, nullable=False)
    price        = Column(Integer, nullable=False)
    rid          = Column(Text, nullable=False)
    name         = Column(Text, nullable=False)
    sale         = Column(Integer, nullable=False)
    size         = Column(Text, nullable=False)
    total_price  = Column(Integer, nullable=False)
    nm_id        = Column(Integer, nullable=False)
    brand        = Column(Text, nullable=False)
    status       = Column(Integer, nullable=False)


class OrderItem(Base):
    __tablename__ = "order_item_conn"

    order_uid = Column(String, ForeignKey("orders.order_uid"), primary_key=True)
    chrt_id   = Column(Integer, ForeignKey("items.chrt_id"), primary_key=True)
    position  = Column(Integer, nullable=False)            # порядок товара в заказе
