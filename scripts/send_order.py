# scripts/send_order.py
# Отправка заказов в Kafka: эталонный b563feb7b2b84b6test или N случайных

import argparse
import asyncio

from dotenv import load_dotenv

from order_pipeline.config import settings
from order_pipeline.services.kafka import OrderProducer
from order_pipeline.utils.fake import fake_order, reference_order
from order_pipeline.utils.log import Log


def parse_args():
    parser = argparse.ArgumentParser(description="Отправить заказы в Kafka")
    parser.add_argument("--fake", type=int, default=0, metavar="N",
                        help="отправить N случайных заказов вместо эталонного")
    parser.add_argument("--max-items", type=int, default=3,
                        help="максимум товаров в случайном заказе")
    parser.add_argument("--timeout", type=float, default=10.0,
                        help="сколько секунд ждать подтверждения от Kafka")
    return parser.parse_args()


async def main():
    args = parse_args()
    log = Log()
    producer = OrderProducer(
        log,
        topic=settings.KAFKA_TOPIC,
        partition=settings.KAFKA_PARTITION,
        brokers=settings.KAFKA_URL,
    )

    orders = [fake_order(args.max_items) for _ in range(args.fake)] if args.fake else [reference_order()]
    try:
        for order in orders:
            await producer.send_order(order, timeout=args.timeout)
    finally:
        await log.shutdown()


if __name__ == "__main__":
    load_dotenv()
    asyncio.run(main())
