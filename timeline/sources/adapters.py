"""Source adapters: one upstream timeline stream each."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from timeline.errors import SourceError
from timeline.sources.models import TOP, Page, RawItem
from timeline.sources.normalize import (
    PathElement,
    collect_entries,
    extract_instructions,
    gather_items,
)
from timeline.upstream.client import UpstreamClient

if TYPE_CHECKING:
    from timeline.sources.pagination import PaginationWalker

USER_TIMELINE_PATH: tuple[PathElement, ...] = (
    "user",
    "result",
    ("timeline_v2", "timeline"),
    "timeline",
)


class SourceAdapter(ABC):
    """Uniform capability: fetch one normalized page for a subject."""

    name: str

    @abstractmethod
    async def fetch_page(
        self,
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
        cursor: str | None = None,
    ) -> Page:
        """
        Fetch one page.

        Args:
            subject_id: Account id, focal tweet id or list id; None for
                query-based sources
            params: Caller parameter set
            cursor: Continuation cursor from a previous page

        Returns:
            Normalized items plus the cursors found on the page
        """
        pass

    async def collect(
        self,
        walker: "PaginationWalker",
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
    ) -> list[RawItem]:
        """Walk this source and return every item it yields."""
        return await walker.walk(self, subject_id, params)


class TimelineSource(SourceAdapter):
    """A GraphQL timeline operation described as data."""

    def __init__(
        self,
        client: UpstreamClient,
        name: str,
        operation: str,
        variables: dict[str, Any],
        instructions_path: tuple[PathElement, ...] = USER_TIMELINE_PATH,
        subject_variable: str | None = "userId",
        nested_prefixes: tuple[str, ...] = (),
        own_items_only: bool = False,
    ):
        self.client = client
        self.name = name
        self.operation = operation
        self.variables = variables
        self.instructions_path = instructions_path
        self.subject_variable = subject_variable
        self.nested_prefixes = nested_prefixes
        self.own_items_only = own_items_only

    def build_variables(
        self,
        subject_id: int | str | None,
        params: dict[str, Any] | None,
        cursor: str | None,
    ) -> dict[str, Any]:
        # Fixed variables take precedence over caller parameters
        variables = {**(params or {}), **self.variables}
        if self.subject_variable and subject_id is not None:
            variables[self.subject_variable] = str(subject_id)
        if cursor:
            variables["cursor"] = cursor
        return variables

    async def fetch_page(
        self,
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
        cursor: str | None = None,
    ) -> Page:
        data = await self.client.graphql(
            self.operation, self.build_variables(subject_id, params, cursor)
        )
        entries, cursors = collect_entries(
            extract_instructions(data, self.instructions_path)
        )
        items = gather_items(
            entries,
            self.nested_prefixes,
            owner_id=subject_id if self.own_items_only else None,
        )
        return Page(items=items, cursors=cursors, entry_count=len(entries))


class MediaTimelineSource(TimelineSource):
    """Media timeline: the first page only locates the ``Top`` cursor.

    The data-bearing request is issued afterwards with that cursor seeded.
    """

    async def collect(
        self,
        walker: "PaginationWalker",
        subject_id: int | str | None,
        params: dict[str, Any] | None = None,
    ) -> list[RawItem]:
        cursor = await walker.find_cursor(self, subject_id, params, TOP)
        if cursor is None:
            raise SourceError(f"{self.name}: no {TOP} cursor in first response")
        return await walker.walk(self, subject_id, params, cursor=cursor)


def build_sources(client: UpstreamClient) -> dict[str, SourceAdapter]:
    """Create every known source adapter keyed by name."""
    sources: list[SourceAdapter] = [
        TimelineSource(
            client,
            "tweets",
            "UserTweets",
            {
                "count": 20,
                "includePromotedContent": True,
                "withQuickPromoteEligibilityTweetFields": True,
                "withVoice": True,
                "withV2Timeline": True,
            },
        ),
        TimelineSource(
            client,
            "replies",
            "UserTweetsAndReplies",
            {
                "count": 20,
                "includePromotedContent": True,
                "withCommunity": True,
                "withVoice": True,
                "withV2Timeline": True,
            },
            nested_prefixes=("profile-conversation-",),
            own_items_only=True,
        ),
        MediaTimelineSource(
            client,
            "media",
            "UserMedia",
            {
                "count": 20,
                "includePromotedContent": False,
                "withClientEventToken": False,
                "withBirdwatchNotes": False,
                "withVoice": True,
                "withV2Timeline": True,
            },
            nested_prefixes=("profile-grid-",),
        ),
        TimelineSource(
            client,
            "likes",
            "Likes",
            {
                "includeHasBirdwatchNotes": False,
                "includePromotedContent": False,
                "withBirdwatchNotes": False,
                "withVoice": False,
                "withV2Timeline": True,
            },
        ),
        TimelineSource(
            client,
            "tweet",
            "TweetDetail",
            {
                "includeHasBirdwatchNotes": False,
                "includePromotedContent": False,
                "withBirdwatchNotes": False,
                "withVoice": False,
                "withV2Timeline": True,
            },
            instructions_path=("threaded_conversation_with_injections_v2",),
            subject_variable="focalTweetId",
            nested_prefixes=("homeConversation-", "conversationthread-"),
        ),
        TimelineSource(
            client,
            "search",
            "SearchTimeline",
            {"count": 20, "querySource": "typed_query", "product": "Latest"},
            instructions_path=("search_by_raw_query", "search_timeline", "timeline"),
            subject_variable=None,
        ),
        TimelineSource(
            client,
            "list",
            "ListLatestTweetsTimeline",
            {"count": 20},
            instructions_path=("list", "tweets_timeline", "timeline"),
            subject_variable="listId",
        ),
    ]
    for name, operation in (("home", "HomeTimeline"), ("home_latest", "HomeLatestTimeline")):
        sources.append(
            TimelineSource(
                client,
                name,
                operation,
                {
                    "count": 20,
                    "includePromotedContent": True,
                    "latestControlAvailable": True,
                    "requestContext": "launch",
                    "withCommunity": True,
                },
                instructions_path=("home", "home_timeline_urt"),
                subject_variable=None,
            )
        )
    return {source.name: source for source in sources}
