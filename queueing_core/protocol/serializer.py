"""Queueing Core Serializer - Item Marshaling.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
from typing import Any, Union

from queueing_core.errors import ValidationError


class ItemSerializer:
    """JSON text serializer for queue items.

    Every item is JSON-encoded on the way in, so a string item comes back as
    the same string. Payloads that are not valid JSON (written by another
    producer) are returned as raw text.
    """

    content_type = "application/json"

    def encode(self, item: Any) -> str:
        """Encode an item to JSON text."""
        try:
            return json.dumps(item)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Item is not JSON serializable: {e}") from e

    def decode(self, data: Union[str, bytes, bytearray]) -> Any:
        """Decode JSON text, falling back to the raw text."""
        if isinstance(data, (bytes, bytearray)):
            data = data.decode("utf-8")
        try:
            return json.loads(data)
        except ValueError:
            return data


__all__ = ["ItemSerializer"]
