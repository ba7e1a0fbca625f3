"""Timeline aggregation module."""

from .aggregator import (
    AGGREGATED_SOURCES,
    DEFAULT_RECOVERY_POLICIES,
    TimelineAggregator,
    accumulation_key,
    merge_timeline,
)

__all__ = [
    "AGGREGATED_SOURCES",
    "DEFAULT_RECOVERY_POLICIES",
    "TimelineAggregator",
    "accumulation_key",
    "merge_timeline",
]
