"""Upstream timeline sources: adapters, normalization and pagination."""

from .adapters import MediaTimelineSource, SourceAdapter, TimelineSource, build_sources
from .cache import SourceResultCache
from .models import BOTTOM, TOP, Identity, Page, RawItem
from .pagination import PaginationWalker

__all__ = [
    "BOTTOM",
    "TOP",
    "Identity",
    "MediaTimelineSource",
    "Page",
    "PaginationWalker",
    "RawItem",
    "SourceAdapter",
    "SourceResultCache",
    "TimelineSource",
    "build_sources",
]
