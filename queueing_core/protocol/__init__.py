"""Queueing Core Protocol Module - Item Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from queueing_core.protocol.serializer import ItemSerializer

__all__ = ["ItemSerializer"]
