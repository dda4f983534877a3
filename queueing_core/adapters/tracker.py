"""Queueing Core Tracker - Bounded LRU Activity Maps.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional


@dataclass
class ActivityRecord:
    """Operation count and last activity for one queue."""

    queue_name: str
    operations: int = 0
    last_activity: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queue_name": self.queue_name,
            "operations": self.operations,
            "last_activity": self.last_activity.isoformat(),
        }


@dataclass
class CachedQueueUrl:
    """A resolved queue URL with its usage."""

    queue_name: str
    queue_url: str
    operations: int = 0
    last_activity: datetime = field(default_factory=datetime.now)


class ActivityTracker:
    """Per-queue operation counters bounded by least-recently-used eviction.

    Touching a queue moves it to the most recent end; inserting past
    ``max_entries`` evicts the least recently touched queue.
    """

    def __init__(self, max_entries: int = 100):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, ActivityRecord]" = OrderedDict()
        self._lock = threading.RLock()

    def track(self, queue_name: str) -> ActivityRecord:
        """Record one operation on a queue."""
        with self._lock:
            record = self._entries.get(queue_name)
            if record is None:
                record = ActivityRecord(queue_name=queue_name)
                self._entries[queue_name] = record
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)
            else:
                self._entries.move_to_end(queue_name)
            record.operations += 1
            record.last_activity = datetime.now()
            return record

    def get(self, queue_name: str) -> Optional[ActivityRecord]:
        with self._lock:
            return self._entries.get(queue_name)

    def queue_names(self) -> List[str]:
        """Tracked queues, least recently used first."""
        with self._lock:
            return list(self._entries.keys())

    def snapshot(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [record.to_dict() for record in self._entries.values()]

    def discard(self, queue_name: str) -> None:
        with self._lock:
            self._entries.pop(queue_name, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, queue_name: object) -> bool:
        with self._lock:
            return queue_name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.queue_names())


class QueueUrlCache:
    """Resolved queue URLs bounded by least-recently-used eviction."""

    def __init__(self, max_entries: int = 100):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CachedQueueUrl]" = OrderedDict()
        self._lock = threading.RLock()

    def get(self, queue_name: str) -> Optional[str]:
        """Look up a URL, refreshing its recency on a hit."""
        with self._lock:
            entry = self._entries.get(queue_name)
            if entry is None:
                return None
            self._entries.move_to_end(queue_name)
            entry.operations += 1
            entry.last_activity = datetime.now()
            return entry.queue_url

    def put(self, queue_name: str, queue_url: str) -> None:
        with self._lock:
            if queue_name in self._entries:
                self._entries.move_to_end(queue_name)
            self._entries[queue_name] = CachedQueueUrl(
                queue_name=queue_name,
                queue_url=queue_url,
                operations=1,
            )
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def entry(self, queue_name: str) -> Optional[CachedQueueUrl]:
        with self._lock:
            return self._entries.get(queue_name)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, queue_name: object) -> bool:
        with self._lock:
            return queue_name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["ActivityTracker", "ActivityRecord", "QueueUrlCache", "CachedQueueUrl"]
