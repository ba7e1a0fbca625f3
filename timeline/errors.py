"""Error taxonomy for timeline aggregation."""

from enum import Enum


class TimelineError(Exception):
    """Base class for all timeline aggregation errors."""


class NotFoundError(TimelineError):
    """The requested account handle does not resolve to an identity."""

    def __init__(self, handle: str):
        super().__init__(f"User not found: {handle}")
        self.handle = handle


class UpstreamError(TimelineError):
    """The upstream API failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SourceError(TimelineError):
    """A source adapter could not produce a page from the upstream response."""


class CacheCorruptionError(TimelineError):
    """A stored accumulation payload could not be deserialized."""


class RecoveryPolicy(str, Enum):
    """How the aggregator recovers when a single source fails.

    ISOLATE: the failure is logged as a warning and the source contributes
    zero items.
    BEST_EFFORT: the source is known to be unstable; the failure is logged
    at info level and the source contributes zero items.
    """

    ISOLATE = "isolate"
    BEST_EFFORT = "best_effort"
