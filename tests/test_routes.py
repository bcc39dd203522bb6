"""Tests for the read-only order HTTP surface."""

import json

import httpx
import pytest
from fakes import FakeStore
from fastapi import FastAPI

from order_pipeline.routes import order as order_routes
from order_pipeline.services.cache import OrderCache
from order_pipeline.services.codec import encode_order
from order_pipeline.utils.fake import REFERENCE_ORDER_UID, reference_order


@pytest.fixture
def store():
    return FakeStore([reference_order()])


@pytest.fixture
async def client(store, log):
    cache = await OrderCache.create(store, log, max_size=8)
    app = FastAPI()
    app.include_router(order_routes.router, prefix="/api/v1/order")
    app.state.cache = cache
    app.state.log = log

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    cache.close()


async def test_read_order_by_path(client):
    response = await client.get(f"/api/v1/order/{REFERENCE_ORDER_UID}")
    assert response.status_code == 200
    assert response.json() == json.loads(encode_order(reference_order()))


async def test_read_order_by_query(client):
    response = await client.get("/api/v1/order", params={"order_uid": REFERENCE_ORDER_UID})
    assert response.status_code == 200
    body = response.json()
    assert body["order_uid"] == REFERENCE_ORDER_UID
    assert body["items"][0]["chrt_id"] == 9934930
    assert body["date_created"] == "2021-11-26T06:22:19Z"


async def test_missing_order_uid(client):
    response = await client.get("/api/v1/order")
    assert response.status_code == 400


async def test_unknown_order(client):
    response = await client.get("/api/v1/order/does-not-exist")
    assert response.status_code == 404


async def test_store_error(client, store):
    store.fail_get = True
    response = await client.get("/api/v1/order/not-cached")
    assert response.status_code == 500
