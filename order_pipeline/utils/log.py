# order_pipeline/utils/log.py
# Журнал пайплайна: один файл на день, асинхронная запись из сервисов
# и синхронная на старте и остановке приложения

import datetime
import logging
import os

from aiologger import Logger
from aiologger.handlers.files import AsyncFileHandler

from order_pipeline.config import settings


def _flag(value) -> bool:
    return str(value).lower() in ("1", "true", "yes")


class Log:
    def __init__(self, log_dir: str | None = None, log_print: bool | None = None, log_debug: bool | None = None):
        self.log_dir = log_dir or settings.LOG_DIR
        os.makedirs(self.log_dir, exist_ok=True)
        self.log_print = _flag(settings.LOG_PRINT) if log_print is None else log_print
        self.log_debug_enabled = _flag(settings.LOG_DEBUG) if log_debug is None else log_debug
        # target → {"path": ..., "logger": ...}
        self.handlers = {}

    def build_log_path(self, target: str, now: datetime.datetime) -> str:
        """log/2025/10/04.log, файл дня общий для всех target."""
        base_dir = os.path.join(self.log_dir, f"{now:%Y}", f"{now:%m}")
        os.makedirs(base_dir, exist_ok=True)
        return os.path.join(base_dir, f"{now:%d}.log")

    async def get_logger(self, target: str, now: datetime.datetime) -> Logger:
        """При смене дня старый логгер закрывается и файл открывается заново."""
        path = self.build_log_path(target, now)
        current = self.handlers.get(target)
        if current is not None and current["path"] == path:
            return current["logger"]
        if current is not None:
            await current["logger"].shutdown()

        logger = Logger(name=f"order_pipeline.{target}")
        logger.add_handler(AsyncFileHandler(filename=path, mode="a", encoding="utf-8"))
        self.handlers[target] = {"path": path, "logger": logger}
        return logger

    def format_line(self, now: datetime.datetime, target: str, message: str, data: dict | None) -> str:
        line = f"{now:%d.%m.%Y %H:%M:%S} {target}: {message}"
        if data:
            line += f": {self.safe_serialize(data)}"
        return line

    def _echo(self, line: str, is_console: bool | None):
        if self.log_print if is_console is None else is_console:
            print(line)

    # ────────────── Асинхронное ──────────────
    async def log_info(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        now = datetime.datetime.now()
        line = self.format_line(now, target, message, data)
        logger = await self.get_logger(target, now)
        await logger.info(line)
        self._echo(line, is_console)

    async def log_error(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = True):
        await self.log_info(target, f"ERROR: {message}", data, is_console)

    async def log_warning(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        await self.log_info(target, f"WARNING: {message}", data, is_console)

    async def log_debug(self, target: str = "", message: str = "", data: dict | None = None):
        # попадания и промахи кэша пишем только при LOG_DEBUG=1
        if self.log_debug_enabled:
            await self.log_info(target, f"DEBUG: {message}", data, is_console=False)

    # ────────────── Синхронное (до запуска цикла событий и после) ──────────────
    def log_info_sync(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        now = datetime.datetime.now()
        path = self.build_log_path(target, now)
        line = self.format_line(now, target, message, data)

        logger = logging.getLogger(f"order_pipeline.sync:{path}")
        if not logger.handlers:
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            logger.addHandler(handler)
            logger.setLevel(logging.INFO)
            logger.propagate = False

        logger.info(line)
        self._echo(line, is_console)

    def log_error_sync(self, target: str = "", message: str = "", data: dict | None = None, is_console: bool = None):
        self.log_info_sync(target, f"ERROR: {message}", data, is_console)

    def safe_serialize(self, obj):
        """
        Данные для строки лога:
        - исключения → "ИмяКласса: текст"
        - модели pydantic через model_dump(mode="json")
        - dict, list, tuple, set рекурсивно
        """
        if isinstance(obj, BaseException):
            return f"{type(obj).__name__}: {obj}"
        if isinstance(obj, dict):
            return {k: self.safe_serialize(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple, set)):
            return [self.safe_serialize(v) for v in obj]
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        if obj is None or isinstance(obj, (str, int, float, bool)):
            return obj
        return str(obj)

    async def shutdown(self):
        for entry in list(self.handlers.values()):
            await entry["logger"].shutdown()
        self.handlers = {}
