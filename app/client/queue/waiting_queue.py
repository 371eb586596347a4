from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional

from redis import Redis

import app.config.config as configs
from app.client.db.redis import get_redis_client


class WaitingQueue(ABC):
    """FIFO of complaint ids waiting for a live-chat agent."""

    @abstractmethod
    def push(self, complaint_id: int) -> None:
        ...

    @abstractmethod
    def pop(self) -> Optional[int]:
        ...

    @abstractmethod
    def peek(self) -> Optional[int]:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...


class InMemoryWaitingQueue(WaitingQueue):
    """Process-local queue. Entries are lost when the process restarts."""

    def __init__(self) -> None:
        self._items: deque[int] = deque()
        self._lock = threading.Lock()

    def push(self, complaint_id: int) -> None:
        with self._lock:
            self._items.append(complaint_id)

    def pop(self) -> Optional[int]:
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def peek(self) -> Optional[int]:
        with self._lock:
            return self._items[0] if self._items else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class RedisWaitingQueue(WaitingQueue):
    def __init__(self, redis_client: Redis, key: str = configs.WAITING_QUEUE_KEY) -> None:
        self._redis = redis_client
        self._key = key

    def push(self, complaint_id: int) -> None:
        self._redis.rpush(self._key, complaint_id)

    def pop(self) -> Optional[int]:
        value = self._redis.lpop(self._key)
        return None if value is None else int(value)

    def peek(self) -> Optional[int]:
        value = self._redis.lindex(self._key, 0)
        return None if value is None else int(value)

    def __len__(self) -> int:
        return int(self._redis.llen(self._key))


def build_waiting_queue(backend: str = configs.WAITING_QUEUE_BACKEND) -> WaitingQueue:
    if backend == "redis":
        return RedisWaitingQueue(get_redis_client())
    if backend == "memory":
        return InMemoryWaitingQueue()
    raise ValueError(f"unknown waiting queue backend: {backend}")
