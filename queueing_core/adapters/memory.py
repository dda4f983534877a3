"""Queueing Core Memory Adapter - In-Process FIFO Queues.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.settings import AdapterSettings
from queueing_core.events.bus import EventBus, EventKind

logger = logging.getLogger(__name__)


class MemoryQueue(QueueAdapter):
    """In-memory queue adapter.

    Exact FIFO order, exact size and exact listing. Items are stored as
    given, without serialization. Nothing survives the process.
    """

    backend = "memory"

    def __init__(
        self,
        instance_name: str = "default",
        event_bus: Optional[EventBus] = None,
        **options: Any,
    ):
        super().__init__(instance_name=instance_name, event_bus=event_bus)
        self._queues: Dict[str, Deque[Any]] = {}
        self._lock = threading.RLock()

    def _build_settings(self) -> AdapterSettings:
        return AdapterSettings(
            description="There are no settings defined for the in memory queue",
        )

    def _get_queue(self, queue_name: str) -> Deque[Any]:
        queue = self._queues.get(queue_name)
        if queue is None:
            queue = self._queues[queue_name] = deque()
        return queue

    def create_queue(self, queue_name: str) -> None:
        """Create an empty queue explicitly."""
        queue_name = self._validate_queue_name(queue_name)
        with self._lock:
            self._get_queue(queue_name)

    def enqueue(self, queue_name: str, item: Any) -> None:
        queue_name = self._validate_queue_name(queue_name)
        self._validate_item(item)
        with self._lock:
            self._get_queue(queue_name).append(item)
        logger.debug(f"Enqueued item to queue {queue_name}")
        self._emit(EventKind.ENQUEUE, queue_name, item)

    def dequeue(self, queue_name: str) -> Optional[Any]:
        queue_name = self._validate_queue_name(queue_name)
        with self._lock:
            queue = self._queues.get(queue_name)
            if not queue:
                return None
            item = queue.popleft()
        self._emit(EventKind.DEQUEUE, queue_name, item)
        return item

    def size(self, queue_name: str) -> int:
        queue_name = self._validate_queue_name(queue_name)
        with self._lock:
            queue = self._queues.get(queue_name)
            return len(queue) if queue is not None else 0

    def list_queues(self) -> List[str]:
        with self._lock:
            return list(self._queues.keys())

    def purge(self, queue_name: str) -> None:
        queue_name = self._validate_queue_name(queue_name)
        with self._lock:
            count = len(self._get_queue(queue_name))
            self._queues[queue_name].clear()
        logger.info(f"Purged {count} items from queue {queue_name}")
        self._emit(EventKind.PURGE, queue_name)

    def get_connection_info(self) -> Dict[str, Any]:
        info = super().get_connection_info()
        with self._lock:
            info["status"] = "ready"
            info["queues"] = len(self._queues)
        return info


__all__ = ["MemoryQueue"]
