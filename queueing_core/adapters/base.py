"""Queueing Core Adapter Base - Uniform Queue Contract.

Every backend implements the same five operations:

    enqueue(queue_name, item)   append an item to a named queue
    dequeue(queue_name)         remove and return the oldest visible item
    size(queue_name)            queue depth (approximate on broker/cloud)
    list_queues()               queue names known to the adapter
    purge(queue_name)           remove every item from a queue

Delivery is at-least-once on the broker and cloud backends: a message is
removed only after it has been received, so a crash between the two steps
delivers it again. Consumers should be idempotent.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from queueing_core.adapters.settings import AdapterSettings
from queueing_core.errors import ValidationError
from queueing_core.events.bus import (
    ConnectionEvent,
    ConnectionState,
    ConnectionTopic,
    EventBus,
    EventKind,
    QueueActivity,
    QueueTopic,
)
from queueing_core.protocol.serializer import ItemSerializer

logger = logging.getLogger(__name__)


class QueueAdapter(ABC):
    """Abstract base class for queue backends.

    Attributes:
        backend: Backend kind, used to namespace lifecycle events
        instance_name: Instance whose event topics this adapter publishes on
        settings: Whitelisted adapter settings
    """

    backend = "abstract"

    def __init__(
        self,
        instance_name: str = "default",
        event_bus: Optional[EventBus] = None,
        serializer: Optional[ItemSerializer] = None,
    ):
        self.instance_name = instance_name or "default"
        self._event_bus = event_bus
        self._serializer = serializer or ItemSerializer()
        self.settings = self._build_settings()

    @abstractmethod
    def _build_settings(self) -> AdapterSettings:
        """Create this adapter's settings store."""
        pass

    @abstractmethod
    def enqueue(self, queue_name: str, item: Any) -> None:
        """Add an item to the tail of a queue."""
        pass

    @abstractmethod
    def dequeue(self, queue_name: str) -> Optional[Any]:
        """Remove and return the head of a queue, or None when empty."""
        pass

    @abstractmethod
    def size(self, queue_name: str) -> int:
        """Get the number of items in a queue."""
        pass

    @abstractmethod
    def list_queues(self) -> List[str]:
        """List queue names."""
        pass

    @abstractmethod
    def purge(self, queue_name: str) -> None:
        """Remove all items from a queue."""
        pass

    def get_settings(self) -> Dict[str, Any]:
        """Get the settings document."""
        return self.settings.to_dict()

    def save_settings(self, settings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Save whitelisted settings; unknown keys are ignored."""
        return self.settings.save(settings)

    def get_connection_info(self) -> Dict[str, Any]:
        """Describe the backend connection."""
        return {"provider": self.backend, "instance": self.instance_name}

    def disconnect(self) -> None:
        """Release the backend connection."""
        pass

    @staticmethod
    def _validate_queue_name(queue_name: Any) -> str:
        if not isinstance(queue_name, str) or not queue_name.strip():
            raise ValidationError("Queue name is required")
        return queue_name

    @staticmethod
    def _validate_item(item: Any) -> None:
        if item is None:
            raise ValidationError("Item is required")

    def _emit(self, kind: EventKind, queue_name: str, item: Any = None) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            QueueTopic(kind, self.instance_name),
            QueueActivity(queue_name=queue_name, item=item),
        )

    def _emit_connection(
        self,
        state: ConnectionState,
        error: Optional[BaseException] = None,
    ) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish(
            ConnectionTopic(self.backend, state),
            ConnectionEvent(backend=self.backend, state=state, error=error),
        )

    def __enter__(self) -> "QueueAdapter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(instance={self.instance_name!r})"


__all__ = ["QueueAdapter"]
