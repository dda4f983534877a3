"""Queueing Core Adapters Module - Queue Backends.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

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

__all__ = [
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
