"""Tests for the project logger."""

import datetime
import os

from order_pipeline.utils.errors import StoreError
from order_pipeline.utils.fake import reference_order
from order_pipeline.utils.log import Log


async def test_writes_daily_file(tmp_path):
    log = Log(log_dir=str(tmp_path), log_print=False)
    await log.log_info("cache", "hello", {"order_uid": "abc"})
    await log.log_error("cache", "boom", is_console=False)
    await log.shutdown()

    path = log.build_log_path("cache", datetime.datetime.now())
    with open(path, encoding="utf-8") as f:
        text = f.read()
    assert "cache: hello: {'order_uid': 'abc'}" in text
    assert "ERROR: boom" in text


async def test_debug_only_when_enabled(tmp_path):
    log = Log(log_dir=str(tmp_path), log_print=False, log_debug=False)
    await log.log_debug("cache", "hidden")
    assert log.handlers == {}
    await log.shutdown()


def test_safe_serialize(tmp_path):
    log = Log(log_dir=str(tmp_path), log_print=False)
    data = log.safe_serialize({"error": StoreError("down"), "order": reference_order(), "ids": ("a", "b")})
    assert data["error"] == "StoreError: down"
    assert data["order"]["date_created"] == "2021-11-26T06:22:19Z"
    assert data["ids"] == ["a", "b"]


def test_sync_logging(tmp_path):
    log = Log(log_dir=str(tmp_path), log_print=False)
    log.log_info_sync("startup-test", "booted")
    path = log.build_log_path("startup-test", datetime.datetime.now())
    with open(path, encoding="utf-8") as f:
        assert "startup-test: booted" in f.read()


async def test_logger_reopened_on_new_day(tmp_path):
    log = Log(log_dir=str(tmp_path), log_print=False)
    first = await log.get_logger("kafka", datetime.datetime(2025, 10, 4, 23, 59))
    assert await log.get_logger("kafka", datetime.datetime(2025, 10, 4, 8, 0)) is first

    second = await log.get_logger("kafka", datetime.datetime(2025, 10, 5, 0, 1))
    assert second is not first
    assert log.handlers["kafka"]["path"].endswith(os.path.join("2025", "10", "05.log"))
    await log.shutdown()
