"""Upstream API access for the timeline aggregator."""

from .client import UpstreamClient
from .constants import DEFAULT_OPERATION_IDS, features_for

__all__ = ["DEFAULT_OPERATION_IDS", "UpstreamClient", "features_for"]
