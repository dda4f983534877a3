"""Queueing Core Analytics - Per-Instance Queue Activity Aggregator.

The aggregator subscribes to one adapter instance's activity topics and
keeps its own counters and a bounded activity history per queue. It never
touches adapter state, and adapters work the same with or without it.

Purges are counted, not applied: counters answer "how active has this
queue been", not "what is in it now".

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

from queueing_core.errors import QueueingError
from queueing_core.events.bus import EventBus, EventKind, QueueTopic

if TYPE_CHECKING:
    from queueing_core.adapters.base import QueueAdapter

logger = logging.getLogger(__name__)

MAX_ACTIVITY_ENTRIES = 1000


@dataclass
class QueueStats:
    """Cumulative counters for one queue.

    Attributes:
        enqueue_count: Enqueue events observed
        dequeue_count: Dequeue events observed
        purge_count: Purge events observed
        total_messages: Cumulative enqueues, unaffected by purges
        first_activity: First event time
        last_activity: Most recent event time
    """

    enqueue_count: int = 0
    dequeue_count: int = 0
    purge_count: int = 0
    total_messages: int = 0
    first_activity: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    @property
    def total_activity(self) -> int:
        return self.enqueue_count + self.dequeue_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enqueue_count": self.enqueue_count,
            "dequeue_count": self.dequeue_count,
            "purge_count": self.purge_count,
            "total_messages": self.total_messages,
            "first_activity": self.first_activity.isoformat(),
            "last_activity": self.last_activity.isoformat(),
        }


@dataclass(frozen=True)
class ActivityEntry:
    """One recorded operation."""

    operation: str
    timestamp: datetime

    @property
    def minute(self) -> datetime:
        """Start of the minute this entry falls in."""
        return self.timestamp.replace(second=0, microsecond=0)

    def to_dict(self) -> Dict[str, Any]:
        return {"operation": self.operation, "timestamp": self.timestamp.isoformat()}


class QueueAnalytics:
    """Queue activity aggregator for one adapter instance."""

    def __init__(
        self,
        event_bus: Optional[EventBus],
        instance_name: str = "default",
        max_activity_entries: int = MAX_ACTIVITY_ENTRIES,
    ):
        self.instance_name = instance_name
        self.max_activity_entries = max_activity_entries

        self._event_bus = event_bus
        self._stats: Dict[str, QueueStats] = {}
        self._activity: Dict[str, Deque[ActivityEntry]] = {}
        self._subscriptions: List[Tuple[QueueTopic, Callable[[Any], None]]] = []
        self._lock = threading.RLock()

        self._subscribe()

    def _subscribe(self) -> None:
        if self._event_bus is None:
            return

        for kind in EventKind:
            topic = QueueTopic(kind, self.instance_name)
            handler = self._make_handler(kind)
            self._event_bus.subscribe(topic, handler)
            self._subscriptions.append((topic, handler))

    def _make_handler(self, kind: EventKind) -> Callable[[Any], None]:
        def handle(payload: Any) -> None:
            self._on_event(kind, payload)
        return handle

    def _on_event(self, kind: EventKind, payload: Any) -> None:
        if isinstance(payload, Mapping):
            queue_name = payload.get("queue_name")
        else:
            queue_name = getattr(payload, "queue_name", None)

        if not isinstance(queue_name, str) or not queue_name:
            logger.debug(f"Dropping {kind.value} event without a queue name")
            return

        try:
            self.record(queue_name, kind)
        except Exception as e:
            logger.error(f"Failed to record {kind.value} on {queue_name}: {e}")

    def record(
        self,
        queue_name: str,
        operation: EventKind,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Record one operation on a queue."""
        now = timestamp or datetime.now()

        with self._lock:
            stats = self._stats.get(queue_name)
            if stats is None:
                stats = self._stats[queue_name] = QueueStats(first_activity=now, last_activity=now)
                self._activity[queue_name] = deque(maxlen=self.max_activity_entries)

            if operation is EventKind.ENQUEUE:
                stats.enqueue_count += 1
                stats.total_messages += 1
            elif operation is EventKind.DEQUEUE:
                stats.dequeue_count += 1
            elif operation is EventKind.PURGE:
                stats.purge_count += 1

            stats.last_activity = now
            # Newest first; the deque drops the oldest entry past maxlen.
            self._activity[queue_name].appendleft(ActivityEntry(operation.value, now))

    def get_stats(self) -> Dict[str, Any]:
        """Counters for every queue."""
        with self._lock:
            return {
                "total_queues": len(self._stats),
                "queues": {name: stats.to_dict() for name, stats in self._stats.items()},
            }

    def get_queue_stats(self, queue_name: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            stats = self._stats.get(queue_name)
            return stats.to_dict() if stats else None

    def get_queue_count(self) -> int:
        with self._lock:
            return len(self._stats)

    def get_activity(self, queue_name: str) -> List[Dict[str, Any]]:
        """Activity entries for a queue, newest first."""
        with self._lock:
            return [entry.to_dict() for entry in self._activity.get(queue_name, ())]

    def get_distribution(self) -> Dict[str, List[Any]]:
        """Total messages per queue as parallel label/value lists."""
        with self._lock:
            return {
                "labels": list(self._stats.keys()),
                "data": [stats.total_messages for stats in self._stats.values()],
            }

    def get_top_queues(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Queues ranked by enqueue + dequeue count."""
        with self._lock:
            queues = [
                {
                    "name": name,
                    "total_activity": stats.total_activity,
                    "enqueue_count": stats.enqueue_count,
                    "dequeue_count": stats.dequeue_count,
                    "total_messages": stats.total_messages,
                }
                for name, stats in self._stats.items()
            ]
        queues.sort(key=lambda q: q["total_activity"], reverse=True)
        return queues[:limit]

    def get_timeline(self, top_n: int = 10) -> Dict[str, Any]:
        """Per-minute operation counts for the most active queues."""
        top_queues = [q["name"] for q in self.get_top_queues(top_n)]
        if not top_queues:
            return {"labels": [], "datasets": []}

        buckets: Dict[datetime, Dict[str, int]] = {}
        with self._lock:
            for name in top_queues:
                for entry in self._activity.get(name, ()):
                    counts = buckets.setdefault(entry.minute, dict.fromkeys(top_queues, 0))
                    counts[name] += 1

        minutes = sorted(buckets)
        return {
            "labels": [minute.strftime("%H:%M") for minute in minutes],
            "datasets": [
                {"name": name, "data": [buckets[minute][name] for minute in minutes]}
                for name in top_queues
            ],
        }

    def get_queue_list(
        self,
        adapter: Optional["QueueAdapter"] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Queues with cached counters and, given an adapter, live sizes.

        Without an adapter the current size is unknown and reported as None.
        A backend failure while sizing is logged and yields an empty list.
        """
        if adapter is None:
            return [
                {
                    "name": q["name"],
                    "current_size": None,
                    "total_enqueued": q["enqueue_count"],
                    "total_dequeued": q["dequeue_count"],
                    "total_messages": q["total_messages"],
                    "stats": self.get_queue_stats(q["name"]),
                }
                for q in self.get_top_queues(limit)
            ]

        try:
            queue_list = []
            for name in adapter.list_queues()[:limit]:
                stats = self.get_queue_stats(name) or {
                    "enqueue_count": 0,
                    "dequeue_count": 0,
                    "purge_count": 0,
                    "total_messages": 0,
                }
                queue_list.append({
                    "name": name,
                    "current_size": adapter.size(name),
                    "total_enqueued": stats["enqueue_count"],
                    "total_dequeued": stats["dequeue_count"],
                    "total_messages": stats["total_messages"],
                    "stats": stats,
                })
        except QueueingError as e:
            logger.error(f"Failed to build queue list for {self.instance_name}: {e}")
            return []

        queue_list.sort(key=lambda q: q["current_size"], reverse=True)
        return queue_list

    def get_dashboard(
        self,
        adapter: Optional["QueueAdapter"] = None,
        top_n: int = 10,
    ) -> Dict[str, Any]:
        """Everything the analytics view needs in one document."""
        return {
            "stats": self.get_stats(),
            "distribution": self.get_distribution(),
            "timeline": self.get_timeline(top_n),
            "queue_list": self.get_queue_list(adapter),
        }

    def clear(self) -> None:
        """Drop all counters and history."""
        with self._lock:
            self._stats.clear()
            self._activity.clear()

    def close(self) -> None:
        """Stop listening for events."""
        if self._event_bus is None:
            return
        for topic, handler in self._subscriptions:
            self._event_bus.unsubscribe(topic, handler)
        self._subscriptions.clear()


__all__ = ["QueueAnalytics", "QueueStats", "ActivityEntry", "MAX_ACTIVITY_ENTRIES"]
