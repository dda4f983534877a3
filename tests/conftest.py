"""Pytest configuration and fixtures for queueing core tests."""

from __future__ import annotations

import itertools
from collections import defaultdict, deque
from types import SimpleNamespace
from typing import Any, Deque, Dict, List, Optional, Tuple

import fakeredis
import pytest
from botocore.exceptions import ClientError
from pika.exceptions import AMQPConnectionError, ChannelClosedByBroker

from queueing_core import (
    EventBus,
    MemoryQueue,
    QueueAnalytics,
    RabbitMQQueue,
    RedisQueue,
    SQSQueue,
)

ACCOUNT_ID = "123456789012"


class FakeChannel:
    """Blocking channel double backed by a FakeBroker."""

    def __init__(self, broker: "FakeBroker"):
        self.broker = broker
        self.is_open = True
        self.prefetch_count: Optional[int] = None
        self.confirms = False
        self.declarations: Dict[str, Dict[str, Any]] = {}
        self.unacked: Dict[int, Tuple[str, bytes, Any]] = {}
        self._tags = itertools.count(1)

    def basic_qos(self, prefetch_count: int = 0) -> None:
        self.prefetch_count = prefetch_count

    def confirm_delivery(self) -> None:
        self.confirms = True

    def queue_declare(self, queue: str, durable: bool = False, arguments=None):
        self.declarations[queue] = {"durable": durable, "arguments": arguments}
        messages = self.broker.queues[queue]
        return SimpleNamespace(method=SimpleNamespace(queue=queue, message_count=len(messages)))

    def basic_publish(self, exchange: str, routing_key: str, body: bytes, properties=None) -> None:
        if self.broker.reject_publish:
            raise ChannelClosedByBroker(406, "PRECONDITION_FAILED")
        self.broker.queues[routing_key].append((body, properties))

    def basic_get(self, queue: str, auto_ack: bool = False):
        messages = self.broker.queues[queue]
        if not messages:
            return None, None, None
        body, properties = messages.popleft()
        tag = next(self._tags)
        self.unacked[tag] = (queue, body, properties)
        return SimpleNamespace(delivery_tag=tag), properties, body

    def basic_ack(self, delivery_tag: int) -> None:
        if self.broker.fail_ack:
            queue, body, properties = self.unacked.pop(delivery_tag)
            self.broker.queues[queue].appendleft((body, properties))
            self.is_open = False
            raise ChannelClosedByBroker(406, "PRECONDITION_FAILED - unknown delivery tag")
        del self.unacked[delivery_tag]

    def queue_purge(self, queue: str) -> None:
        self.broker.queues[queue].clear()

    def close(self) -> None:
        self.is_open = False


class FakeConnection:
    def __init__(self, broker: "FakeBroker"):
        self.broker = broker
        self.is_open = True
        self.channels: List[FakeChannel] = []

    def channel(self) -> FakeChannel:
        channel = FakeChannel(self.broker)
        self.channels.append(channel)
        return channel

    def close(self) -> None:
        self.is_open = False


class FakeBroker:
    """In-test stand-in for a RabbitMQ server."""

    def __init__(self):
        self.queues: Dict[str, Deque[Tuple[bytes, Any]]] = defaultdict(deque)
        self.connections: List[FakeConnection] = []
        self.down = False
        self.fail_ack = False
        self.reject_publish = False

    def connect(self) -> FakeConnection:
        if self.down:
            raise AMQPConnectionError("Connection refused")
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection

    def publish_raw(self, queue: str, body: bytes) -> None:
        self.queues[queue].append((body, None))


class FakeSQSClient:
    """In-test stand-in for a boto3 SQS client."""

    def __init__(self, page_size: int = 1000):
        self.page_size = page_size
        self.queues: Dict[str, Deque[str]] = {}
        self.in_flight: Dict[str, Tuple[str, str]] = {}
        self.missing: set = set()
        self.fail_delete = False
        self.closed = False
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self._handles = itertools.count(1)

    def create_queue(self, url: str) -> None:
        self.queues.setdefault(url, deque())

    def _queue(self, operation: str, url: str) -> Deque[str]:
        if url.rsplit("/", 1)[-1] in self.missing:
            raise ClientError(
                {"Error": {"Code": "AWS.SimpleQueueService.NonExistentQueue",
                           "Message": "The specified queue does not exist."}},
                operation,
            )
        return self.queues.setdefault(url, deque())

    def send_message(self, **kwargs):
        self.calls.append(("send_message", kwargs))
        self._queue("SendMessage", kwargs["QueueUrl"]).append(kwargs["MessageBody"])
        return {"MessageId": str(next(self._handles))}

    def receive_message(self, **kwargs):
        self.calls.append(("receive_message", kwargs))
        queue = self._queue("ReceiveMessage", kwargs["QueueUrl"])
        if not queue:
            return {}
        body = queue.popleft()
        handle = f"handle-{next(self._handles)}"
        self.in_flight[handle] = (kwargs["QueueUrl"], body)
        return {"Messages": [{"MessageId": handle, "ReceiptHandle": handle, "Body": body}]}

    def delete_message(self, **kwargs):
        self.calls.append(("delete_message", kwargs))
        if self.fail_delete:
            raise ClientError(
                {"Error": {"Code": "ReceiptHandleIsInvalid", "Message": "invalid handle"}},
                "DeleteMessage",
            )
        self.in_flight.pop(kwargs["ReceiptHandle"])
        return {}

    def get_queue_attributes(self, **kwargs):
        self.calls.append(("get_queue_attributes", kwargs))
        queue = self._queue("GetQueueAttributes", kwargs["QueueUrl"])
        return {"Attributes": {"ApproximateNumberOfMessages": str(len(queue))}}

    def list_queues(self, **kwargs):
        self.calls.append(("list_queues", kwargs))
        prefix = kwargs.get("QueueNamePrefix", "")
        urls = sorted(u for u in self.queues if u.rsplit("/", 1)[-1].startswith(prefix))
        start = int(kwargs.get("NextToken") or 0)
        page = urls[start:start + self.page_size]
        response: Dict[str, Any] = {}
        if page:
            response["QueueUrls"] = page
        if start + self.page_size < len(urls):
            response["NextToken"] = str(start + self.page_size)
        return response

    def purge_queue(self, **kwargs):
        self.calls.append(("purge_queue", kwargs))
        self._queue("PurgeQueue", kwargs["QueueUrl"]).clear()
        return {}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def analytics(event_bus: EventBus) -> QueueAnalytics:
    aggregator = QueueAnalytics(event_bus, instance_name="default")
    yield aggregator
    aggregator.close()


@pytest.fixture
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def sqs_client() -> FakeSQSClient:
    return FakeSQSClient()


@pytest.fixture
def memory_queue(event_bus: EventBus) -> MemoryQueue:
    return MemoryQueue(event_bus=event_bus)


@pytest.fixture
def redis_queue(event_bus: EventBus, redis_client: fakeredis.FakeRedis) -> RedisQueue:
    queue = RedisQueue(event_bus=event_bus, client=redis_client)
    yield queue
    queue.disconnect()


@pytest.fixture
def rabbitmq_queue(event_bus: EventBus, broker: FakeBroker) -> RabbitMQQueue:
    queue = RabbitMQQueue(event_bus=event_bus, connection_factory=broker.connect)
    yield queue
    queue.disconnect()


@pytest.fixture
def sqs_queue(event_bus: EventBus, sqs_client: FakeSQSClient, monkeypatch: pytest.MonkeyPatch) -> SQSQueue:
    monkeypatch.delenv("AWS_ACCOUNT_ID", raising=False)
    monkeypatch.delenv("AWS_REGION", raising=False)
    return SQSQueue(event_bus=event_bus, client=sqs_client, account_id=ACCOUNT_ID)


@pytest.fixture(params=["memory", "redis", "rabbitmq", "sqs"])
def any_queue(request: pytest.FixtureRequest):
    """Each adapter in turn, all publishing on the same event bus."""
    return request.getfixturevalue(f"{request.param}_queue")
