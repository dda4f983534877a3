"""Queueing Core RabbitMQ Adapter - AMQP Broker Backed Queues.

Each named queue is declared durable with a message TTL before it is used
(declaration is idempotent). Messages are published persistent with
publisher confirms, and pulled one at a time with explicit acknowledgment
on a channel limited to a prefetch of one.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPChannelError, AMQPConnectionError, AMQPError

from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.settings import AdapterSettings, SettingDefinition
from queueing_core.adapters.tracker import ActivityTracker
from queueing_core.errors import BackendUnavailable, PartialFailure
from queueing_core.events.bus import ConnectionState, EventBus, EventKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

ConnectionFactory = Callable[[], pika.BlockingConnection]

DEFAULT_URL = "amqp://localhost"
DEFAULT_MESSAGE_TTL_MS = 3600000
DEFAULT_PREFETCH = 1


class RabbitMQQueue(QueueAdapter):
    """RabbitMQ-backed queue adapter.

    The connection and channel are opened on first use and cached. A
    connection or channel failure marks the adapter disconnected, and the
    next operation dials again.

    Sizes are the broker's message counts and may lag. The broker offers no
    cheap queue listing, so ``list_queues`` returns the queues this adapter
    has touched.
    """

    backend = "rabbitmq"

    def __init__(
        self,
        instance_name: str = "default",
        event_bus: Optional[EventBus] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        url: Optional[str] = None,
        message_ttl_ms: Optional[int] = None,
        prefetch_count: Optional[int] = None,
        max_tracked_queues: int = 100,
    ):
        super().__init__(instance_name=instance_name, event_bus=event_bus)
        self.settings.save({
            "url": url,
            "message_ttl_ms": message_ttl_ms,
            "prefetch_count": prefetch_count,
        })

        self._connection_factory = connection_factory
        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None
        self._connected = False
        self._lock = threading.RLock()
        self._tracker = ActivityTracker(max_entries=max_tracked_queues)

    def _build_settings(self) -> AdapterSettings:
        return AdapterSettings(
            description="RabbitMQ settings for distributed queue operations",
            definitions=[
                SettingDefinition("url", "string", (DEFAULT_URL,)),
                SettingDefinition("message_ttl_ms", "number", (DEFAULT_MESSAGE_TTL_MS,)),
                SettingDefinition("prefetch_count", "number", (DEFAULT_PREFETCH,)),
            ],
            values={
                "url": DEFAULT_URL,
                "message_ttl_ms": DEFAULT_MESSAGE_TTL_MS,
                "prefetch_count": DEFAULT_PREFETCH,
            },
        )

    @property
    def connected(self) -> bool:
        return self._connected

    def _dial(self) -> pika.BlockingConnection:
        if self._connection_factory is not None:
            return self._connection_factory()
        return pika.BlockingConnection(pika.URLParameters(self.settings.get("url")))

    def _ensure_channel(self, operation: str, queue_name: Optional[str]) -> BlockingChannel:
        with self._lock:
            if self._connected and self._channel is not None and self._channel.is_open:
                return self._channel

            self._close_quietly()
            self._emit_connection(ConnectionState.CONNECT)
            connection = None
            try:
                connection = self._dial()
                channel = connection.channel()
                channel.basic_qos(prefetch_count=int(self.settings.get("prefetch_count")))
                channel.confirm_delivery()
            except (AMQPError, ValueError) as e:
                self._connected = False
                if connection is not None:
                    self._close_resource(connection)
                self._emit_connection(ConnectionState.ERROR, e)
                raise BackendUnavailable(operation, queue_name, e) from e

            self._connection = connection
            self._channel = channel
            self._connected = True
            logger.info("RabbitMQ channel ready")
            self._emit_connection(ConnectionState.READY)
            return channel

    def _mark_failed(self, error: AMQPError) -> None:
        if isinstance(error, (AMQPConnectionError, AMQPChannelError)):
            self._connected = False
            self._emit_connection(ConnectionState.ERROR, error)
            self._emit_connection(ConnectionState.CLOSE)

    def _run(
        self,
        operation: str,
        queue_name: Optional[str],
        action: Callable[[BlockingChannel], T],
    ) -> T:
        # Blocking channels are not thread-safe; one caller at a time.
        with self._lock:
            channel = self._ensure_channel(operation, queue_name)
            try:
                return action(channel)
            except AMQPError as e:
                self._mark_failed(e)
                raise BackendUnavailable(operation, queue_name, e) from e

    def _declare(self, channel: BlockingChannel, queue_name: str) -> Any:
        return channel.queue_declare(
            queue=queue_name,
            durable=True,
            arguments={"x-message-ttl": int(self.settings.get("message_ttl_ms"))},
        )

    def enqueue(self, queue_name: str, item: Any) -> None:
        queue_name = self._validate_queue_name(queue_name)
        self._validate_item(item)
        body = self._serializer.encode(item).encode("utf-8")
        properties = pika.BasicProperties(
            content_type=self._serializer.content_type,
            delivery_mode=pika.DeliveryMode.Persistent,
        )

        def publish(channel: BlockingChannel) -> None:
            self._declare(channel, queue_name)
            channel.basic_publish(
                exchange="",
                routing_key=queue_name,
                body=body,
                properties=properties,
            )

        self._run("enqueue", queue_name, publish)
        self._tracker.track(queue_name)
        logger.debug(f"Published item to queue {queue_name}")
        self._emit(EventKind.ENQUEUE, queue_name, item)

    def dequeue(self, queue_name: str) -> Optional[Any]:
        """Pull one message and acknowledge it.

        Raises:
            PartialFailure: The message was received but the ack failed; it
                will be redelivered by the broker.
        """
        queue_name = self._validate_queue_name(queue_name)

        def pull(channel: BlockingChannel):
            self._declare(channel, queue_name)
            return channel, channel.basic_get(queue=queue_name, auto_ack=False)

        with self._lock:
            channel, (method, _properties, body) = self._run("dequeue", queue_name, pull)
            self._tracker.track(queue_name)
            if method is None:
                return None

            item = self._serializer.decode(body)
            try:
                channel.basic_ack(delivery_tag=method.delivery_tag)
            except AMQPError as e:
                self._mark_failed(e)
                raise PartialFailure("dequeue", queue_name, e, item=item) from e

        self._emit(EventKind.DEQUEUE, queue_name, item)
        return item

    def size(self, queue_name: str) -> int:
        queue_name = self._validate_queue_name(queue_name)
        result = self._run("size", queue_name, lambda ch: self._declare(ch, queue_name))
        self._tracker.track(queue_name)
        return int(result.method.message_count or 0)

    def list_queues(self) -> List[str]:
        return self._tracker.queue_names()

    def purge(self, queue_name: str) -> None:
        queue_name = self._validate_queue_name(queue_name)

        def purge_queue(channel: BlockingChannel) -> None:
            self._declare(channel, queue_name)
            channel.queue_purge(queue=queue_name)

        self._run("purge", queue_name, purge_queue)
        self._tracker.track(queue_name)
        logger.info(f"Purged queue {queue_name}")
        self._emit(EventKind.PURGE, queue_name)

    def get_analytics(self) -> List[Dict[str, Any]]:
        """Operation counts per queue touched by this adapter."""
        return self._tracker.snapshot()

    def _close_quietly(self) -> None:
        channel, connection = self._channel, self._connection
        self._channel = None
        self._connection = None
        self._connected = False
        for resource in (channel, connection):
            if resource is not None:
                self._close_resource(resource)

    @staticmethod
    def _close_resource(resource: Any) -> None:
        if not resource.is_open:
            return
        try:
            resource.close()
        except AMQPError as e:
            logger.warning(f"Error closing RabbitMQ resource: {e}")

    def disconnect(self) -> None:
        """Close channel then connection, best effort."""
        with self._lock:
            had_connection = self._connection is not None
            self._close_quietly()
        if had_connection:
            logger.info("RabbitMQ connection closed")
            self._emit_connection(ConnectionState.CLOSE)

    def get_connection_info(self) -> Dict[str, Any]:
        info = super().get_connection_info()
        info.update({
            "status": "connected" if self._connected else "disconnected",
            "connected": self._connected,
            "url": self.settings.get("url"),
        })
        return info


__all__ = ["RabbitMQQueue", "ConnectionFactory"]
