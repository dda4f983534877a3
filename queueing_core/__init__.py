"""Queueing Core - Multi-Backend Queue Adapters & Analytics.

Queueing Core puts one FIFO task-queue contract in front of four backends
and keeps per-instance activity analytics alongside it.

Architecture Overview:
┌─────────────────────────────────────────────────────────────────────────┐
│                           Queueing Core                                 │
├─────────────────────────────────────────────────────────────────────────┤
│  caller ──▶ QueueAdapter ──▶ backend (memory / Redis / RabbitMQ / SQS)  │
│                  │                                                      │
│                  └──▶ EventBus ──▶ QueueAnalytics                       │
├─────────────────────────────────────────────────────────────────────────┤
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                       Adapters Module                             │ │
│  │  • QueueAdapter - enqueue / dequeue / size / list / purge         │ │
│  │  • MemoryQueue - In-process deques                                │ │
│  │  • RedisQueue - Redis lists (LPUSH / RPOP)                        │ │
│  │  • RabbitMQQueue - Durable queues, pull + explicit ack            │ │
│  │  • SQSQueue - SQS receive + delete, visibility timeout            │ │
│  │  • ActivityTracker / QueueUrlCache - Bounded LRU maps             │ │
│  │  • AdapterSettings - Whitelisted settings                         │ │
│  └───────────────────────────────────────────────────────────────────┘ │
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                       Events Module                               │ │
│  │  • EventBus - Topic based publish/subscribe                       │ │
│  │  • QueueTopic - (operation, instance) activity topics             │ │
│  │  • ConnectionTopic - Backend lifecycle topics                     │ │
│  └───────────────────────────────────────────────────────────────────┘ │
│  ┌───────────────────────────────────────────────────────────────────┐ │
│  │                      Analytics Module                             │ │
│  │  • QueueAnalytics - Counters, top queues, timeline                │ │
│  └───────────────────────────────────────────────────────────────────┘ │
└─────────────────────────────────────────────────────────────────────────┘

Delivery on the RabbitMQ and SQS backends is at-least-once, never
exactly-once. Consumers should tolerate seeing an item twice.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

# Errors
from queueing_core.errors import (
    BackendUnavailable,
    PartialFailure,
    QueueingError,
    ValidationError,
)

# Events
from queueing_core.events.bus import (
    ConnectionEvent,
    ConnectionState,
    ConnectionTopic,
    EventBus,
    EventKind,
    QueueActivity,
    QueueTopic,
)

# Protocol
from queueing_core.protocol.serializer import ItemSerializer

# Analytics
from queueing_core.analytics.aggregator import QueueAnalytics, QueueStats

# Adapters
from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.settings import AdapterSettings, SettingDefinition
from queueing_core.adapters.tracker import ActivityTracker, QueueUrlCache
from queueing_core.adapters.memory import MemoryQueue
from queueing_core.adapters.redis import RedisQueue
from queueing_core.adapters.rabbitmq import RabbitMQQueue
from queueing_core.adapters.sqs import SQSQueue
from queueing_core.adapters.factory import (
    available_backends,
    create_analytics,
    create_queue,
)

__version__ = "1.0.0"
__author__ = "BlackRoad OS"
__license__ = "Proprietary"

__all__ = [
    # Version
    "__version__",
    # Errors
    "QueueingError",
    "ValidationError",
    "BackendUnavailable",
    "PartialFailure",
    # Events
    "EventBus",
    "EventKind",
    "ConnectionState",
    "QueueTopic",
    "ConnectionTopic",
    "QueueActivity",
    "ConnectionEvent",
    # Protocol
    "ItemSerializer",
    # Analytics
    "QueueAnalytics",
    "QueueStats",
    # Adapters
    "QueueAdapter",
    "AdapterSettings",
    "SettingDefinition",
    "ActivityTracker",
    "QueueUrlCache",
    "MemoryQueue",
    "RedisQueue",
    "RabbitMQQueue",
    "SQSQueue",
    "available_backends",
    "create_queue",
    "create_analytics",
]
