# order_pipeline/services/kafka.py

import asyncio

from confluent_kafka import Consumer, KafkaError, KafkaException, Producer, TopicPartition

from order_pipeline.schemas.order import Order
from order_pipeline.services.codec import decode_order, encode_order
from order_pipeline.utils.errors import ConstructionError, DecodeError, ProduceError, StoreError
from order_pipeline.utils.log import Log


class OrderConsumer:
    """
    Читает заказы из одного раздела топика и передаёт их в кэш (а через него в базу).

    Сообщения, которые не удалось разобрать или сохранить, отбрасываются:
    повторов, dead-letter и отката смещения нет, доставка не exactly-once.
    """

    def __init__(
        self,
        cache,
        log: Log,
        topic: str,
        partition: int,
        brokers: str,
        group_id: str = "order-pipeline",
        max_items: int = 100,
        max_bytes: int | None = None,
        poll_timeout: float = 1.0,
        consumer=None,
    ):
        self.cache = cache
        self.log = log
        self.topic = topic
        self.partition = partition
        self.max_items = max_items
        self.max_bytes = max_bytes
        self.poll_timeout = poll_timeout
        self._pending_poll: asyncio.Future | None = None
        self._closed = False

        if consumer is None:
            try:
                consumer = Consumer({
                    "bootstrap.servers": brokers,
                    "group.id": group_id,
                    "auto.offset.reset": "earliest",
                    "enable.auto.commit": True,
                })
            except KafkaException as e:
                raise ConstructionError(f"failed to create Kafka consumer: {e}") from e
        self.consumer = consumer
        self.consumer.assign([TopicPartition(topic, partition)])

    async def start_listening(self, stop: asyncio.Event):
        """Цикл чтения до установки stop. Текущее сообщение всегда дообрабатывается."""
        await self.log.log_info("kafka", "Слушатель Kafka запущен", {
            "topic": self.topic,
            "partition": self.partition,
        })
        try:
            while not stop.is_set():
                msg = await self.poll()
                if msg is None:
                    continue

                if msg.error():
                    if msg.error().code() == KafkaError._PARTITION_EOF:
                        continue
                    await self.log.log_warning("kafka", "Ошибка чтения сообщения", {"error": str(msg.error())})
                    continue

                await self.log.log_debug("kafka", "Получено сообщение", {
                    "topic": msg.topic(),
                    "partition": msg.partition(),
                    "offset": msg.offset(),
                })
                await self.handle_message(msg.value())
        finally:
            await self.log.log_info("kafka", "Слушатель Kafka останавливается")
            await self.close()

    async def poll(self):
        # poll идёт в отдельном потоке; shield не даёт отмене бросить поток посреди чтения
        self._pending_poll = asyncio.ensure_future(asyncio.to_thread(self.consumer.poll, self.poll_timeout))
        try:
            return await asyncio.shield(self._pending_poll)
        finally:
            if self._pending_poll.done():
                self._pending_poll = None

    async def handle_message(self, value: bytes | None) -> bool:
        """Разбор и сохранение одного сообщения. False, если сообщение отброшено."""
        if value is None:
            await self.log.log_error("kafka", "Пустое сообщение отброшено")
            return False

        try:
            order = decode_order(value, self.max_items, self.max_bytes)
        except DecodeError as e:
            await self.log.log_error("kafka", "Не удалось разобрать заказ, сообщение отброшено", {"error": e})
            return False

        try:
            await self.cache.add_order(order)
        except StoreError as e:
            # заказ теряется: повторной доставки нет
            await self.log.log_error("kafka", "Не удалось сохранить заказ, сообщение отброшено", {
                "order_uid": order.order_uid,
                "error": e,
            })
            return False

        await self.log.log_info("kafka", "Заказ обработан", {"order_uid": order.order_uid})
        return True

    async def close(self):
        if self._closed:
            return
        self._closed = True

        if self._pending_poll is not None and not self._pending_poll.done():
            # ждём не дольше одного таймаута poll
            await asyncio.wait([self._pending_poll], timeout=self.poll_timeout)

        try:
            await asyncio.to_thread(self.consumer.close)
        except (KafkaException, RuntimeError) as e:
            await self.log.log_error("kafka", "Ошибка при закрытии consumer", {"error": e})
            return
        await self.log.log_info("kafka", "Consumer Kafka закрыт")


async def stop_listening(task: asyncio.Task, stop: asyncio.Event, grace: float, log: Log) -> bool:
    """
    Останавливает слушателя: новых сообщений не берём, текущее дообрабатываем
    не дольше grace секунд, затем задача отменяется. True, если уложились.
    """
    stop.set()
    done, _ = await asyncio.wait([task], timeout=grace)
    if done:
        if not task.cancelled() and task.exception() is not None:
            await log.log_error("kafka", "Слушатель Kafka завершился с ошибкой", {"error": task.exception()})
        return True

    await log.log_warning("kafka", "Слушатель Kafka не завершился вовремя, отменяем", {"grace": grace})
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    return False


class OrderProducer:
    """Отправка заказов в тот же топик и в том же формате, что читает OrderConsumer."""

    def __init__(self, log: Log, topic: str, partition: int, brokers: str, producer=None):
        self.log = log
        self.topic = topic
        self.partition = partition
        if producer is None:
            producer = Producer({
                "bootstrap.servers": brokers,
                "acks": 1,
                "linger.ms": 10,
            })
        self.producer = producer

    async def send_order(self, order: Order, timeout: float = 10.0):
        errors = []

        def on_delivery(err, msg):
            if err is not None:
                errors.append(err)

        try:
            self.producer.produce(
                self.topic,
                value=encode_order(order),
                partition=self.partition,
                on_delivery=on_delivery,
            )
        except (BufferError, KafkaException) as e:
            await self.log.log_error("kafka", "Не удалось отправить заказ", {"order_uid": order.order_uid, "error": e})
            raise ProduceError(f"failed to produce order {order.order_uid}: {e}") from e

        remaining = await asyncio.to_thread(self.producer.flush, timeout)
        if remaining or errors:
            reason = str(errors[0]) if errors else "delivery timed out"
            await self.log.log_error("kafka", "Kafka не подтвердила заказ", {"order_uid": order.order_uid, "error": reason})
            raise ProduceError(f"order {order.order_uid} not delivered: {reason}")

        await self.log.log_info("kafka", "Заказ отправлен", {"order_uid": order.order_uid, "topic": self.topic})
