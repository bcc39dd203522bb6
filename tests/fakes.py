"""In-memory stand-ins for the store and the Kafka client."""

import asyncio
import queue

from order_pipeline.utils.errors import OrderNotFound, StoreError


class FakeStore:
    """Store double that counts calls and can be told to fail."""

    def __init__(self, orders=()):
        self.orders = {order.order_uid: order for order in orders}
        self.add_calls = 0
        self.get_calls = 0
        self.recent_calls = 0
        self.fail_add = False
        self.fail_get = False
        self.fail_recent = False
        self.fail_ids = set()

    async def add_order(self, order):
        self.add_calls += 1
        await asyncio.sleep(0)
        if self.fail_add:
            raise StoreError("store unavailable")
        if order.order_uid in self.orders:
            raise StoreError(f"duplicate order {order.order_uid}")
        self.orders[order.order_uid] = order

    async def get_order(self, order_uid):
        self.get_calls += 1
        await asyncio.sleep(0)
        if self.fail_get or order_uid in self.fail_ids:
            raise StoreError("store unavailable")
        try:
            return self.orders[order_uid]
        except KeyError:
            raise OrderNotFound(order_uid)

    async def get_recent_order_ids(self, limit):
        self.recent_calls += 1
        if self.fail_recent:
            raise StoreError("store unavailable")
        newest_first = sorted(self.orders.values(), key=lambda o: o.date_created, reverse=True)
        return [order.order_uid for order in newest_first[:limit]]


class FakeKafkaError:
    def __init__(self, code, text="broker error"):
        self._code = code
        self._text = text

    def code(self):
        return self._code

    def __str__(self):
        return self._text


class FakeMessage:
    def __init__(self, value, offset=0, error=None):
        self._value = value
        self._offset = offset
        self._error = error

    def value(self):
        return self._value

    def error(self):
        return self._error

    def topic(self):
        return "wb-topic"

    def partition(self):
        return 0

    def offset(self):
        return self._offset


class FakeKafkaConsumer:
    """Mimics confluent_kafka.Consumer: poll() blocks up to its timeout."""

    def __init__(self):
        self.messages = queue.Queue()
        self.assigned = None
        self.closed = False
        self.polls = 0
        self._offset = 0

    def assign(self, partitions):
        self.assigned = partitions

    def poll(self, timeout):
        self.polls += 1
        try:
            return self.messages.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self):
        self.closed = True

    def publish(self, value):
        self.messages.put(FakeMessage(value, offset=self._offset))
        self._offset += 1

    def publish_error(self, error):
        self.messages.put(FakeMessage(None, error=error))


class FakeProducer:
    """Mimics confluent_kafka.Producer: delivery callbacks fire on flush()."""

    def __init__(self, delivery_error=None, undelivered=0):
        self.sent = []
        self.delivery_error = delivery_error
        self.undelivered = undelivered
        self._pending = []

    def produce(self, topic, value=None, partition=None, on_delivery=None):
        self.sent.append((topic, partition, value))
        self._pending.append(on_delivery)

    def flush(self, timeout=None):
        for callback in self._pending:
            if callback is not None:
                callback(self.delivery_error, None)
        self._pending = []
        return self.undelivered


async def wait_until(predicate, timeout=3.0, interval=0.01):
    """Poll an async or sync predicate until it is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = predicate()
        if asyncio.iscoroutine(result):
            result = await result
        if result:
            return result
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)
