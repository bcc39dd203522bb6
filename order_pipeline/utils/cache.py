# order_pipeline/utils/cache.py
# Ограниченный потокобезопасный кэш с асинхронной записью

import queue
import random
import threading
from typing import Any, Hashable

_STOP = object()


class BoundedCache:
    """
    Кэш ключ → значение с ограничением по суммарной стоимости.

    - set() кладёт запись в буфер, её применяет фоновый поток;
      если буфер полон, запись отбрасывается и set() возвращает False
    - wait() ждёт, пока всё, что было в буфере на момент вызова, применится
    - при переполнении вытесняется самый редкий ключ из случайной выборки;
      счётчики частоты периодически делятся пополам, поэтому учитывается и давность
    - все операции безопасны из любого числа потоков и задач
    """

    def __init__(
        self,
        max_cost: int,
        num_counters: int | None = None,
        buffer_items: int = 64,
        sample_size: int = 5,
    ):
        if max_cost <= 0:
            raise ValueError("max_cost must be positive")
        if buffer_items <= 0:
            raise ValueError("buffer_items must be positive")

        self.max_cost = max_cost
        self.num_counters = num_counters or max_cost * 10
        self.sample_size = sample_size

        self._lock = threading.Lock()
        self._data: dict[Hashable, tuple[Any, int]] = {}
        self._cost = 0
        self._freq: dict[Hashable, int] = {}
        self._increments = 0
        self._stats = {"hits": 0, "misses": 0, "admitted": 0, "evicted": 0, "dropped": 0}

        self._buffer: queue.Queue = queue.Queue(maxsize=buffer_items)
        self._closed = False
        self._worker = threading.Thread(target=self._process_items, name="bounded-cache", daemon=True)
        self._worker.start()

    # ==========================================================
    # ПУБЛИЧНЫЕ МЕТОДЫ
    # ==========================================================
    def get(self, key: Hashable) -> tuple[Any, bool]:
        with self._lock:
            self._increment(key)
            entry = self._data.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None, False
            self._stats["hits"] += 1
            return entry[0], True

    def set(self, key: Hashable, value: Any, cost: int = 1) -> bool:
        """Запись видна читателям только после обработки буфера (см. wait)."""
        if self._closed or cost > self.max_cost:
            return False

        with self._lock:
            # обновление уже лежащего ключа применяется сразу
            if key in self._data:
                _, old_cost = self._data[key]
                self._data[key] = (value, cost)
                self._cost += cost - old_cost
                self._evict_over_budget(keep=key)
                return True

        try:
            self._buffer.put_nowait((key, value, cost))
        except queue.Full:
            with self._lock:
                self._stats["dropped"] += 1
            return False
        return True

    def wait(self, poll: float = 0.1) -> None:
        """
        Барьер: блокирует до применения всех ранее поставленных записей.
        Если кэш закрывается во время ожидания, возвращает управление сразу.
        """
        marker = threading.Event()
        while not self._closed:
            try:
                self._buffer.put(marker, timeout=poll)
                break
            except queue.Full:
                continue

        # close() мог выгрести буфер раньше, чем маркер туда попал
        while not self._closed:
            if marker.wait(poll):
                return

    def stats(self) -> dict:
        with self._lock:
            return dict(self._stats, cost=self._cost, size=len(self._data))

    def close(self, timeout: float | None = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.put(_STOP)
        self._worker.join(timeout)

        # отпускаем тех, кто успел встать в wait() после остановки
        while True:
            try:
                entry = self._buffer.get_nowait()
            except queue.Empty:
                break
            if isinstance(entry, threading.Event):
                entry.set()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    # ==========================================================
    # ВНУТРЕННЕЕ
    # ==========================================================
    def _process_items(self):
        while True:
            entry = self._buffer.get()
            if entry is _STOP:
                return
            if isinstance(entry, threading.Event):
                entry.set()
                continue

            key, value, cost = entry
            with self._lock:
                self._admit(key, value, cost)

    def _admit(self, key, value, cost):
        if key in self._data:
            _, old_cost = self._data[key]
            self._cost -= old_cost
        self._data[key] = (value, cost)
        self._cost += cost
        self._stats["admitted"] += 1
        self._increment(key)
        self._evict_over_budget(keep=key)

    def _evict_over_budget(self, keep):
        while self._cost > self.max_cost:
            victim = self._pick_victim(keep)
            if victim is None:
                return
            _, victim_cost = self._data.pop(victim)
            self._cost -= victim_cost
            self._stats["evicted"] += 1

    def _pick_victim(self, keep):
        candidates = [k for k in self._data if k != keep]
        if not candidates:
            return None
        sample = random.sample(candidates, min(self.sample_size, len(candidates)))
        return min(sample, key=lambda k: self._freq.get(k, 0))

    def _increment(self, key):
        self._freq[key] = self._freq.get(key, 0) + 1
        self._increments += 1
        if self._increments >= self.num_counters or len(self._freq) > self.num_counters:
            self._reset_counters()

    def _reset_counters(self):
        self._freq = {k: v // 2 for k, v in self._freq.items() if v // 2 > 0}
        self._increments = 0
