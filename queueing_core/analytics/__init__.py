"""Queueing Core Analytics Module - Queue Activity Statistics.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from queueing_core.analytics.aggregator import (
    ActivityEntry,
    QueueAnalytics,
    QueueStats,
)

__all__ = ["QueueAnalytics", "QueueStats", "ActivityEntry"]
