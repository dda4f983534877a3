"""Queueing Core Events Module - Activity & Lifecycle Events.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from queueing_core.events.bus import (
    ConnectionEvent,
    ConnectionState,
    ConnectionTopic,
    EventBus,
    EventKind,
    QueueActivity,
    QueueTopic,
)

__all__ = [
    "EventBus",
    "EventKind",
    "ConnectionState",
    "QueueTopic",
    "ConnectionTopic",
    "QueueActivity",
    "ConnectionEvent",
]
