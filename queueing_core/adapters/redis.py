"""Queueing Core Redis Adapter - Redis List Backed Queues.

Each named queue is a Redis list under ``<key_prefix><queue_name>``.
Enqueue pushes on the left, dequeue pops on the right, which gives FIFO
order from two single-ended commands.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar

import redis
from redis.exceptions import ReadOnlyError, RedisError

from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.settings import AdapterSettings, SettingDefinition
from queueing_core.adapters.tracker import ActivityTracker
from queueing_core.errors import BackendUnavailable
from queueing_core.events.bus import ConnectionState, EventBus, EventKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379
DEFAULT_KEY_PREFIX = "queue:"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape Redis glob metacharacters so text matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisQueue(QueueAdapter):
    """Redis-backed queue adapter.

    The client is built from settings on first use unless one is injected.
    Readiness is checked with PING before the first command. A command that
    hits a read-only replica (after a failover) resets the connection pool
    and is retried once; every other error is surfaced.
    """

    backend = "redis"

    def __init__(
        self,
        instance_name: str = "default",
        event_bus: Optional[EventBus] = None,
        client: Optional[redis.Redis] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        key_prefix: Optional[str] = None,
        max_tracked_queues: int = 100,
        **client_options: Any,
    ):
        super().__init__(instance_name=instance_name, event_bus=event_bus)
        self.settings.save({"host": host, "port": port, "key_prefix": key_prefix})

        self._client = client
        self._owns_client = client is None
        self._client_options = client_options
        self._ready = False
        self._lock = threading.RLock()
        self._tracker = ActivityTracker(max_entries=max_tracked_queues)

    def _build_settings(self) -> AdapterSettings:
        return AdapterSettings(
            description="Redis settings for distributed queue operations",
            definitions=[
                SettingDefinition("host", "string", (DEFAULT_HOST,)),
                SettingDefinition("port", "number", (DEFAULT_PORT,)),
                SettingDefinition("key_prefix", "string", (DEFAULT_KEY_PREFIX,)),
            ],
            values={
                "host": DEFAULT_HOST,
                "port": DEFAULT_PORT,
                "key_prefix": DEFAULT_KEY_PREFIX,
            },
        )

    @property
    def key_prefix(self) -> str:
        return self.settings.get("key_prefix", DEFAULT_KEY_PREFIX)

    def _key(self, queue_name: str) -> str:
        return f"{self.key_prefix}{queue_name}"

    def _get_client(self) -> redis.Redis:
        """Build the client lazily from current settings."""
        with self._lock:
            if self._client is None:
                options = {
                    "decode_responses": True,
                    "socket_connect_timeout": 10,
                    "socket_timeout": 5,
                    "socket_keepalive": True,
                }
                options.update(self._client_options)
                self._client = redis.Redis(
                    host=self.settings.get("host"),
                    port=int(self.settings.get("port")),
                    **options,
                )
            return self._client

    def _ensure_connection(self, operation: str, queue_name: Optional[str]) -> redis.Redis:
        client = self._get_client()
        if self._ready:
            return client

        self._emit_connection(ConnectionState.CONNECT)
        try:
            client.ping()
        except RedisError as e:
            self._emit_connection(ConnectionState.ERROR, e)
            raise BackendUnavailable(operation, queue_name, e) from e

        self._ready = True
        logger.info(
            f"Redis connection ready ({self.settings.get('host')}:{self.settings.get('port')})"
        )
        self._emit_connection(ConnectionState.READY)
        return client

    def _execute(
        self,
        operation: str,
        queue_name: Optional[str],
        command: Callable[[redis.Redis], T],
    ) -> T:
        client = self._ensure_connection(operation, queue_name)
        try:
            try:
                return command(client)
            except ReadOnlyError as e:
                logger.warning(f"Redis replica is read-only, reconnecting: {e}")
                self._emit_connection(ConnectionState.RECONNECTING, e)
                client.connection_pool.disconnect()
                return command(client)
        except RedisError as e:
            self._ready = False
            self._emit_connection(ConnectionState.ERROR, e)
            raise BackendUnavailable(operation, queue_name, e) from e

    def enqueue(self, queue_name: str, item: Any) -> None:
        queue_name = self._validate_queue_name(queue_name)
        self._validate_item(item)
        data = self._serializer.encode(item)
        key = self._key(queue_name)

        self._execute("enqueue", queue_name, lambda c: c.lpush(key, data))
        self._tracker.track(queue_name)
        logger.debug(f"Enqueued item to queue {queue_name}")
        self._emit(EventKind.ENQUEUE, queue_name, item)

    def dequeue(self, queue_name: str) -> Optional[Any]:
        queue_name = self._validate_queue_name(queue_name)
        key = self._key(queue_name)

        data = self._execute("dequeue", queue_name, lambda c: c.rpop(key))
        if data is None:
            return None

        self._tracker.track(queue_name)
        item = self._serializer.decode(data)
        self._emit(EventKind.DEQUEUE, queue_name, item)
        return item

    def size(self, queue_name: str) -> int:
        queue_name = self._validate_queue_name(queue_name)
        key = self._key(queue_name)
        return int(self._execute("size", queue_name, lambda c: c.llen(key)) or 0)

    def list_queues(self) -> List[str]:
        prefix = self.key_prefix

        def scan(client: redis.Redis) -> List[str]:
            names = []
            for key in client.scan_iter(match=f"{escape_glob(prefix)}*", count=100):
                if isinstance(key, bytes):
                    key = key.decode("utf-8")
                if not key.startswith(prefix):
                    continue
                names.append(key[len(prefix):])
            return names

        return self._execute("list_queues", None, scan)

    def purge(self, queue_name: str) -> None:
        queue_name = self._validate_queue_name(queue_name)
        key = self._key(queue_name)
        self._execute("purge", queue_name, lambda c: c.delete(key))
        logger.info(f"Purged queue {queue_name}")
        self._emit(EventKind.PURGE, queue_name)

    def get_analytics(self) -> List[Dict[str, Any]]:
        """Operation counts per queue touched by this adapter."""
        return self._tracker.snapshot()

    def disconnect(self) -> None:
        """Release the connection.

        Only a client built by this adapter is closed and dropped, so the
        next operation reconnects with the current host and port. An
        injected client stays open for its owner.
        """
        with self._lock:
            client = self._client
            self._ready = False
            if self._owns_client:
                self._client = None
        if client is None:
            return
        if self._owns_client:
            try:
                client.close()
            except RedisError as e:
                logger.warning(f"Error closing Redis client: {e}")
                client.connection_pool.disconnect()
        self._emit_connection(ConnectionState.CLOSE)
        self._emit_connection(ConnectionState.END)
        logger.info("Redis connection closed")

    def get_connection_info(self) -> Dict[str, Any]:
        info = super().get_connection_info()
        info.update({
            "status": "ready" if self._ready else "wait",
            "host": self.settings.get("host"),
            "port": self.settings.get("port"),
            "key_prefix": self.key_prefix,
        })
        return info


__all__ = ["RedisQueue"]
