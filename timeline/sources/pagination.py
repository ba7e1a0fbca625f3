"""Cursor-driven pagination over a source adapter."""

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from timeline.sources.models import BOTTOM, Page, RawItem

if TYPE_CHECKING:
    from timeline.sources.adapters import SourceAdapter

logger = logging.getLogger(__name__)


class PaginationWalker:
    """Drives a source across pages until exhaustion or a page ceiling.

    Cursors stay inside the walker; callers only ever see items.
    """

    def __init__(self, max_pages: int = 1):
        self.max_pages = max_pages

    async def iter_pages(
        self,
        source: "SourceAdapter",
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
        cursor: str | None = None,
        stop_cursor: str | None = None,
    ) -> AsyncIterator[Page]:
        """Yield pages lazily.

        Stops when the source is exhausted (no new bottom cursor, or a page
        with no content entries at all), when a page carries ``stop_cursor``, or after ``max_pages``.
        Restart by calling again without a cursor.
        """
        seen: set[str] = set()
        if cursor:
            seen.add(cursor)

        for _ in range(self.max_pages):
            page = await source.fetch_page(subject_id, params, cursor)
            yield page

            if stop_cursor and stop_cursor in page.cursors:
                return

            next_cursor = page.cursors.get(BOTTOM)
            if page.exhausted or not next_cursor or next_cursor in seen:
                return
            seen.add(next_cursor)
            cursor = next_cursor

        logger.debug(f"{source.name}: page ceiling of {self.max_pages} reached")

    async def walk(
        self,
        source: "SourceAdapter",
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
        cursor: str | None = None,
        stop_cursor: str | None = None,
    ) -> list[RawItem]:
        """Collect the items of every page.

        An error on any page propagates and discards the pages already read.
        """
        items: list[RawItem] = []
        async for page in self.iter_pages(source, subject_id, params, cursor, stop_cursor):
            items.extend(page.items)
        return items

    async def find_cursor(
        self,
        source: "SourceAdapter",
        subject_id: int | str | None,
        params: dict[str, Any] | None,
        cursor_type: str,
    ) -> str | None:
        """Walk until a page carries a cursor of ``cursor_type`` and return it."""
        async for page in self.iter_pages(source, subject_id, params, stop_cursor=cursor_type):
            if cursor_type in page.cursors:
                return page.cursors[cursor_type]
        return None
