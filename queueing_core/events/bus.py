"""Queueing Core Event Bus - Structured Publish/Subscribe.

Adapters publish instance-scoped activity events and backend lifecycle
events to a shared bus. Topics are hashable descriptors rather than
concatenated strings, so routing is exact and two adapter instances never
observe each other's traffic.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventKind(Enum):
    """Queue operations that produce activity events."""

    ENQUEUE = "enqueue"
    DEQUEUE = "dequeue"
    PURGE = "purge"


class ConnectionState(Enum):
    """Backend connection lifecycle states."""

    CONNECT = "connect"
    READY = "ready"
    ERROR = "error"
    CLOSE = "close"
    RECONNECTING = "reconnecting"
    END = "end"


@dataclass(frozen=True)
class QueueTopic:
    """Activity topic for one adapter instance."""

    kind: EventKind
    instance: str = "default"

    def __str__(self) -> str:
        return f"queue:{self.kind.value}:{self.instance}"


@dataclass(frozen=True)
class ConnectionTopic:
    """Lifecycle topic for one backend kind."""

    backend: str
    state: ConnectionState

    def __str__(self) -> str:
        return f"{self.backend}:{self.state.value}"


@dataclass(frozen=True)
class QueueActivity:
    """Payload of a queue activity event."""

    queue_name: str
    item: Any = None


@dataclass(frozen=True)
class ConnectionEvent:
    """Payload of a connection lifecycle event."""

    backend: str
    state: ConnectionState
    error: Optional[BaseException] = None


class EventBus:
    """Thread-safe in-process event bus."""

    def __init__(self):
        self._handlers: Dict[Hashable, List[Handler]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, topic: Hashable, handler: Handler) -> None:
        """Register a handler for a topic."""
        with self._lock:
            self._handlers[topic].append(handler)

    def unsubscribe(self, topic: Hashable, handler: Handler) -> bool:
        """Remove a handler.

        Returns:
            True if the handler was registered
        """
        with self._lock:
            handlers = self._handlers.get(topic)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            if not handlers:
                del self._handlers[topic]
            return True

    def publish(self, topic: Hashable, payload: Any = None) -> int:
        """Deliver a payload to every handler of a topic.

        Handler failures are logged and never reach the publisher.

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._handlers.get(topic, ()))

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Event handler error on {topic}: {e}")

        return len(handlers)

    def subscriber_count(self, topic: Hashable) -> int:
        """Number of handlers registered for a topic."""
        with self._lock:
            return len(self._handlers.get(topic, ()))

    def clear(self) -> None:
        """Remove all subscriptions."""
        with self._lock:
            self._handlers.clear()


__all__ = [
    "EventBus",
    "EventKind",
    "ConnectionState",
    "QueueTopic",
    "ConnectionTopic",
    "QueueActivity",
    "ConnectionEvent",
]
