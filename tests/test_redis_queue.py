"""Tests for the Redis adapter."""

from __future__ import annotations

import json

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ReadOnlyError

from queueing_core import (
    BackendUnavailable,
    ConnectionState,
    ConnectionTopic,
    EventBus,
    RedisQueue,
)
from queueing_core.adapters import redis as redis_module
from queueing_core.adapters.redis import escape_glob


class FailoverRedis(fakeredis.FakeRedis):
    """Rejects the first N writes as if talking to a demoted primary."""

    def __init__(self, *args, readonly_failures: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.readonly_failures = readonly_failures

    def lpush(self, name, *values):
        if self.readonly_failures:
            self.readonly_failures -= 1
            raise ReadOnlyError("READONLY You can't write against a read only replica.")
        return super().lpush(name, *values)


class UnreachableRedis(fakeredis.FakeRedis):
    def ping(self, **kwargs):
        raise RedisConnectionError("Error 111 connecting to 127.0.0.1:6379. Connection refused.")


def test_items_stored_as_json_under_prefixed_key(redis_queue, redis_client):
    redis_queue.enqueue("jobs", {"id": 7})

    assert redis_client.lrange("queue:jobs", 0, -1) == [json.dumps({"id": 7})]


def test_lpush_rpop_order(redis_queue, redis_client):
    redis_queue.enqueue("jobs", "first")
    redis_queue.enqueue("jobs", "second")

    assert redis_client.lindex("queue:jobs", -1) == json.dumps("first")
    assert redis_queue.dequeue("jobs") == "first"


def test_foreign_non_json_payload_returned_as_text(redis_queue, redis_client):
    redis_client.lpush("queue:jobs", "plain text, not json")

    assert redis_queue.dequeue("jobs") == "plain text, not json"


def test_list_queues_strips_prefix_and_ignores_other_keys(redis_queue, redis_client):
    redis_client.set("session:abc", "x")
    redis_queue.enqueue("emails", 1)
    redis_queue.enqueue("reports", 2)

    assert sorted(redis_queue.list_queues()) == ["emails", "reports"]


def test_custom_key_prefix(redis_client):
    queue = RedisQueue(client=redis_client, key_prefix="app:q:")
    queue.enqueue("jobs", 1)

    assert redis_client.exists("app:q:jobs") == 1
    assert queue.list_queues() == ["jobs"]


def test_purge_deletes_key(redis_queue, redis_client):
    redis_queue.enqueue("jobs", 1)
    redis_queue.purge("jobs")

    assert redis_client.exists("queue:jobs") == 0
    assert "jobs" not in redis_queue.list_queues()


def test_connection_ready_events_on_first_use(redis_client):
    bus = EventBus()
    states = []
    for state in ConnectionState:
        bus.subscribe(ConnectionTopic("redis", state), lambda e: states.append(e.state))

    queue = RedisQueue(event_bus=bus, client=redis_client)
    assert queue.get_connection_info()["status"] == "wait"

    queue.size("jobs")
    queue.size("jobs")

    assert states == [ConnectionState.CONNECT, ConnectionState.READY]
    assert queue.get_connection_info()["status"] == "ready"


def test_read_only_replica_error_retried_once():
    client = FailoverRedis(server=fakeredis.FakeServer(), decode_responses=True)
    bus = EventBus()
    reconnects = []
    bus.subscribe(ConnectionTopic("redis", ConnectionState.RECONNECTING), reconnects.append)
    queue = RedisQueue(event_bus=bus, client=client)

    queue.enqueue("jobs", "after-failover")

    assert len(reconnects) == 1
    assert queue.dequeue("jobs") == "after-failover"


def test_repeated_read_only_error_surfaces():
    client = FailoverRedis(server=fakeredis.FakeServer(), decode_responses=True, readonly_failures=2)
    queue = RedisQueue(client=client)

    with pytest.raises(BackendUnavailable) as exc_info:
        queue.enqueue("jobs", 1)

    assert isinstance(exc_info.value.cause, ReadOnlyError)
    assert exc_info.value.operation == "enqueue"


def test_unreachable_server_raises_backend_unavailable():
    bus = EventBus()
    errors = []
    bus.subscribe(ConnectionTopic("redis", ConnectionState.ERROR), errors.append)
    queue = RedisQueue(event_bus=bus, client=UnreachableRedis(server=fakeredis.FakeServer()))

    with pytest.raises(BackendUnavailable) as exc_info:
        queue.enqueue("jobs", 1)

    assert 'Failed to enqueue item to queue "jobs"' in str(exc_info.value)
    assert "Connection refused" in str(exc_info.value)
    assert len(errors) == 1


def test_tracker_counts_successful_operations(redis_queue):
    redis_queue.enqueue("jobs", 1)
    redis_queue.dequeue("jobs")
    redis_queue.dequeue("jobs")

    (entry,) = redis_queue.get_analytics()
    assert entry["queue_name"] == "jobs"
    assert entry["operations"] == 2


def test_settings_defaults_and_overrides(redis_client):
    queue = RedisQueue(client=redis_client, host="10.0.0.5", port="6380")
    settings = queue.get_settings()

    assert settings["host"] == "10.0.0.5"
    assert settings["port"] == 6380
    assert [d["setting"] for d in settings["list"]] == ["host", "port", "key_prefix"]


def test_client_built_lazily_from_settings():
    queue = RedisQueue(host="redis.internal", port=6390)

    assert queue._client is None
    client = queue._get_client()
    kwargs = client.connection_pool.connection_kwargs
    assert kwargs["host"] == "redis.internal"
    assert kwargs["port"] == 6390


def test_disconnect_emits_close_and_end(redis_client):
    bus = EventBus()
    states = []
    for state in (ConnectionState.CLOSE, ConnectionState.END):
        bus.subscribe(ConnectionTopic("redis", state), lambda e: states.append(e.state))
    queue = RedisQueue(event_bus=bus, client=redis_client)
    queue.size("jobs")

    queue.disconnect()

    assert states == [ConnectionState.CLOSE, ConnectionState.END]
    assert queue.get_connection_info()["status"] == "wait"


def test_disconnect_keeps_injected_client(redis_queue, redis_client):
    redis_queue.enqueue("jobs", 1)
    redis_queue.disconnect()

    assert redis_queue._client is redis_client
    assert redis_queue.dequeue("jobs") == 1


def test_reconnect_after_disconnect_uses_new_settings(monkeypatch):
    server = fakeredis.FakeServer()
    built = []

    def fake_redis(**kwargs):
        built.append(kwargs)
        return fakeredis.FakeRedis(server=server, decode_responses=True)

    monkeypatch.setattr(redis_module.redis, "Redis", fake_redis)
    queue = RedisQueue(host="cache-a")
    queue.enqueue("jobs", 1)

    queue.save_settings({"host": "cache-b", "port": "6380"})
    queue.disconnect()
    assert queue._client is None

    assert queue.dequeue("jobs") == 1
    assert [(kw["host"], kw["port"]) for kw in built] == [("cache-a", 6379), ("cache-b", 6380)]


@pytest.mark.parametrize("prefix", ["q*:", "q?:", "q[ab]:"])
def test_list_queues_treats_prefix_literally(redis_client, prefix):
    queue = RedisQueue(client=redis_client, key_prefix=prefix)
    queue.enqueue("jobs", 1)
    for unrelated in ("qx:other", "qa:other", "q:other"):
        redis_client.lpush(unrelated, "x")

    assert queue.list_queues() == ["jobs"]


def test_escape_glob():
    assert escape_glob("a*b?c[d]e\\f") == "a\\*b\\?c\\[d\\]e\\\\f"
    assert escape_glob("queue:") == "queue:"
