"""Queueing Core Errors - Adapter Error Taxonomy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Optional

_OPERATION_PHRASES = {
    "enqueue": "enqueue item to",
    "dequeue": "dequeue item from",
    "size": "get size of",
    "list_queues": "list",
}


class QueueingError(Exception):
    """Base class for all queueing errors."""


class ValidationError(QueueingError, ValueError):
    """Invalid input rejected before any backend call.

    Raised for a missing or empty queue name, a missing payload, a payload
    that cannot be serialized, or a malformed setting value. Never retried.
    """


class BackendUnavailable(QueueingError):
    """The transport could not be reached or rejected the call.

    Attributes:
        operation: Operation that failed (enqueue, dequeue, size, ...)
        queue_name: Queue involved, if any
        cause: Underlying transport exception
    """

    def __init__(
        self,
        operation: str,
        queue_name: Optional[str] = None,
        cause: Optional[BaseException] = None,
        message: Optional[str] = None,
    ):
        self.operation = operation
        self.queue_name = queue_name
        self.cause = cause
        if message is None:
            phrase = _OPERATION_PHRASES.get(operation, operation)
            target = f'queue "{queue_name}"' if queue_name else "queues"
            message = f"Failed to {phrase} {target}"
            if cause is not None:
                message = f"{message}: {cause}"
        super().__init__(message)


class PartialFailure(BackendUnavailable):
    """A receive succeeded but the acknowledgment or delete did not.

    The message stays on the backend and will be delivered again, so the
    decoded item is attached for callers that want to process it anyway.
    """

    def __init__(
        self,
        operation: str,
        queue_name: Optional[str] = None,
        cause: Optional[BaseException] = None,
        item: Any = None,
    ):
        super().__init__(operation, queue_name, cause)
        self.item = item


__all__ = [
    "QueueingError",
    "ValidationError",
    "BackendUnavailable",
    "PartialFailure",
]
