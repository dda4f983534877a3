"""Queueing Core Factory - Adapter Construction.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.memory import MemoryQueue
from queueing_core.adapters.rabbitmq import RabbitMQQueue
from queueing_core.adapters.redis import RedisQueue
from queueing_core.adapters.sqs import SQSQueue
from queueing_core.analytics.aggregator import QueueAnalytics
from queueing_core.errors import ValidationError
from queueing_core.events.bus import EventBus

logger = logging.getLogger(__name__)

ADAPTERS: Dict[str, Type[QueueAdapter]] = {
    "memory": MemoryQueue,
    "redis": RedisQueue,
    "rabbitmq": RabbitMQQueue,
    "sqs": SQSQueue,
}

# Name of the constructor argument each backend takes its client through.
_CLIENT_ARGUMENTS = {
    "redis": "client",
    "rabbitmq": "connection_factory",
    "sqs": "client",
}


def available_backends() -> List[str]:
    """Backend kinds accepted by create_queue."""
    return list(ADAPTERS.keys())


def create_queue(
    kind: str,
    instance_name: str = "default",
    event_bus: Optional[EventBus] = None,
    client: Any = None,
    **options: Any,
) -> QueueAdapter:
    """Create a queue adapter.

    Args:
        kind: Backend kind (memory, redis, rabbitmq, sqs)
        instance_name: Instance used to scope events and settings
        event_bus: Bus to publish activity events on
        client: Pre-built backend client (redis client, pika connection
            factory or boto3 SQS client); built from settings when omitted
        **options: Adapter specific options

    Returns:
        The adapter
    """
    adapter_cls = ADAPTERS.get(kind)
    if adapter_cls is None:
        raise ValidationError(f"Unsupported queue type: {kind}")

    if client is not None:
        if kind not in _CLIENT_ARGUMENTS:
            raise ValidationError(f"Queue type {kind} does not take a client")
        options[_CLIENT_ARGUMENTS[kind]] = client

    adapter = adapter_cls(instance_name=instance_name, event_bus=event_bus, **options)
    logger.info(f"Queue service initialized (provider={kind}, instance={adapter.instance_name})")
    return adapter


def create_analytics(
    event_bus: EventBus,
    instance_name: str = "default",
) -> QueueAnalytics:
    """Create an analytics aggregator for one adapter instance."""
    return QueueAnalytics(event_bus, instance_name=instance_name)


__all__ = ["ADAPTERS", "available_backends", "create_queue", "create_analytics"]
