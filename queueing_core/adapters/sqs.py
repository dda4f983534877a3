"""Queueing Core SQS Adapter - AWS SQS Backed Queues.

Queue names resolve to queue URLs built from region, account id and an
optional name prefix. Dequeue is receive-then-delete: if the process dies
between the two calls the message reappears after the visibility timeout,
so delivery is at-least-once.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from queueing_core.adapters.base import QueueAdapter
from queueing_core.adapters.settings import AdapterSettings, SettingDefinition
from queueing_core.adapters.tracker import ActivityTracker, QueueUrlCache
from queueing_core.errors import BackendUnavailable, PartialFailure
from queueing_core.events.bus import EventBus, EventKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

AWS_ERRORS = (ClientError, BotoCoreError)

DEFAULT_REGION = "us-east-1"
DEFAULT_VISIBILITY_TIMEOUT = 30
DEFAULT_WAIT_TIME = 0
DEFAULT_RETENTION_PERIOD = 345600


class SQSQueue(QueueAdapter):
    """AWS SQS-backed queue adapter.

    Sizes come from ApproximateNumberOfMessages and may lag. ``list_queues``
    asks SQS directly, filtered to this adapter's prefix. Purge returns as
    soon as SQS accepts the request; the purge itself completes later.
    """

    backend = "sqs"

    def __init__(
        self,
        instance_name: str = "default",
        event_bus: Optional[EventBus] = None,
        client: Any = None,
        region: Optional[str] = None,
        account_id: Optional[str] = None,
        queue_name_prefix: Optional[str] = None,
        visibility_timeout: Optional[int] = None,
        receive_wait_time_seconds: Optional[int] = None,
        message_retention_period: Optional[int] = None,
        max_cached_urls: int = 100,
        max_tracked_queues: int = 100,
        **client_options: Any,
    ):
        super().__init__(instance_name=instance_name, event_bus=event_bus)
        self.settings.save({
            "region": region,
            "account_id": account_id,
            "queue_name_prefix": queue_name_prefix,
            "visibility_timeout": visibility_timeout,
            "receive_wait_time_seconds": receive_wait_time_seconds,
            "message_retention_period": message_retention_period,
        })

        self._client = client
        self._owns_client = client is None
        self._client_options = client_options
        self._lock = threading.RLock()
        self._url_cache = QueueUrlCache(max_entries=max_cached_urls)
        self._tracker = ActivityTracker(max_entries=max_tracked_queues)

    def _build_settings(self) -> AdapterSettings:
        return AdapterSettings(
            description="AWS SQS configuration for distributed queue operations",
            definitions=[
                SettingDefinition("region", "string", ("us-east-1", "us-west-2", "eu-west-1")),
                SettingDefinition("account_id", "string", description="AWS Account ID"),
                SettingDefinition("queue_name_prefix", "string", description="Prefix for queue names"),
                SettingDefinition("visibility_timeout", "number", (DEFAULT_VISIBILITY_TIMEOUT,)),
                SettingDefinition("receive_wait_time_seconds", "number", (DEFAULT_WAIT_TIME,)),
                SettingDefinition("message_retention_period", "number", (DEFAULT_RETENTION_PERIOD,)),
            ],
            values={
                "region": os.environ.get("AWS_REGION") or DEFAULT_REGION,
                "account_id": os.environ.get("AWS_ACCOUNT_ID", ""),
                "queue_name_prefix": "",
                "visibility_timeout": DEFAULT_VISIBILITY_TIMEOUT,
                "receive_wait_time_seconds": DEFAULT_WAIT_TIME,
                "message_retention_period": DEFAULT_RETENTION_PERIOD,
            },
        )

    def save_settings(self, settings: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        changes = super().save_settings(settings)
        if {"region", "account_id", "queue_name_prefix"} & set(changes):
            self._url_cache.clear()
        return changes

    @property
    def queue_name_prefix(self) -> str:
        return self.settings.get("queue_name_prefix") or ""

    def _get_client(self) -> Any:
        with self._lock:
            if self._client is None:
                self._client = boto3.client(
                    "sqs",
                    region_name=self.settings.get("region"),
                    **self._client_options,
                )
            return self._client

    def _full_name(self, queue_name: str) -> str:
        prefix = self.queue_name_prefix
        return f"{prefix}-{queue_name}" if prefix else queue_name

    def _queue_url(self, operation: str, queue_name: str) -> str:
        """Resolve a queue URL, caching the result."""
        cached = self._url_cache.get(queue_name)
        if cached is not None:
            return cached

        account_id = self.settings.get("account_id")
        if not account_id:
            raise BackendUnavailable(
                operation,
                queue_name,
                ValueError("AWS account ID is required; set AWS_ACCOUNT_ID or pass account_id"),
            )

        region = self.settings.get("region")
        queue_url = f"https://sqs.{region}.amazonaws.com/{account_id}/{self._full_name(queue_name)}"
        self._url_cache.put(queue_name, queue_url)
        return queue_url

    def _call(self, operation: str, queue_name: Optional[str], request: Callable[[Any], T]) -> T:
        try:
            return request(self._get_client())
        except AWS_ERRORS as e:
            raise BackendUnavailable(operation, queue_name, e) from e

    def enqueue(self, queue_name: str, item: Any) -> None:
        queue_name = self._validate_queue_name(queue_name)
        self._validate_item(item)
        body = self._serializer.encode(item)
        queue_url = self._queue_url("enqueue", queue_name)

        self._call(
            "enqueue",
            queue_name,
            lambda c: c.send_message(QueueUrl=queue_url, MessageBody=body, DelaySeconds=0),
        )
        self._tracker.track(queue_name)
        logger.debug(f"Sent item to queue {queue_name}")
        self._emit(EventKind.ENQUEUE, queue_name, item)

    def dequeue(self, queue_name: str) -> Optional[Any]:
        """Receive one message and delete it.

        Raises:
            PartialFailure: The message was received but could not be
                deleted; it becomes visible again after the timeout.
        """
        queue_name = self._validate_queue_name(queue_name)
        queue_url = self._queue_url("dequeue", queue_name)

        response = self._call(
            "dequeue",
            queue_name,
            lambda c: c.receive_message(
                QueueUrl=queue_url,
                MaxNumberOfMessages=1,
                WaitTimeSeconds=int(self.settings.get("receive_wait_time_seconds")),
                VisibilityTimeout=int(self.settings.get("visibility_timeout")),
            ),
        )
        messages = response.get("Messages") or []
        if not messages:
            return None

        message = messages[0]
        item = self._serializer.decode(message.get("Body", ""))
        try:
            self._get_client().delete_message(
                QueueUrl=queue_url,
                ReceiptHandle=message["ReceiptHandle"],
            )
        except AWS_ERRORS as e:
            raise PartialFailure("dequeue", queue_name, e, item=item) from e

        self._tracker.track(queue_name)
        self._emit(EventKind.DEQUEUE, queue_name, item)
        return item

    def size(self, queue_name: str) -> int:
        queue_name = self._validate_queue_name(queue_name)
        queue_url = self._queue_url("size", queue_name)
        response = self._call(
            "size",
            queue_name,
            lambda c: c.get_queue_attributes(
                QueueUrl=queue_url,
                AttributeNames=["ApproximateNumberOfMessages"],
            ),
        )
        attributes = response.get("Attributes") or {}
        return int(attributes.get("ApproximateNumberOfMessages", 0))

    def list_queues(self) -> List[str]:
        prefix = f"{self.queue_name_prefix}-" if self.queue_name_prefix else ""

        def list_all(client: Any) -> List[str]:
            urls: List[str] = []
            params: Dict[str, Any] = {"MaxResults": 1000}
            if prefix:
                params["QueueNamePrefix"] = prefix
            while True:
                response = client.list_queues(**params)
                urls.extend(response.get("QueueUrls") or [])
                token = response.get("NextToken")
                if not token:
                    return urls
                params["NextToken"] = token

        names = []
        for url in self._call("list_queues", None, list_all):
            name = url.rstrip("/").rsplit("/", 1)[-1]
            if prefix and name.startswith(prefix):
                name = name[len(prefix):]
            names.append(name)
        return names

    def purge(self, queue_name: str) -> None:
        queue_name = self._validate_queue_name(queue_name)
        queue_url = self._queue_url("purge", queue_name)
        self._call("purge", queue_name, lambda c: c.purge_queue(QueueUrl=queue_url))
        logger.info(f"Purge requested for queue {queue_name}")
        self._emit(EventKind.PURGE, queue_name)

    def get_analytics(self) -> List[Dict[str, Any]]:
        """Operation counts per queue touched by this adapter."""
        return self._tracker.snapshot()

    def disconnect(self) -> None:
        """Close the HTTP client if this adapter built it."""
        with self._lock:
            if not self._owns_client:
                return
            client = self._client
            self._client = None
        if client is None:
            return
        try:
            client.close()
        except AWS_ERRORS as e:
            logger.warning(f"Error closing SQS client: {e}")
        logger.info("SQS client closed")

    def get_connection_info(self) -> Dict[str, Any]:
        info = super().get_connection_info()
        info.update({
            "region": self.settings.get("region"),
            "account_id": self.settings.get("account_id"),
            "queue_name_prefix": self.queue_name_prefix,
            "visibility_timeout": self.settings.get("visibility_timeout"),
            "message_retention_period": self.settings.get("message_retention_period"),
            "cache_size": len(self._url_cache),
        })
        return info


__all__ = ["SQSQueue"]
