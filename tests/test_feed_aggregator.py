"""Tests for timeline merging and aggregation."""

import asyncio
import json
import logging

import pytest

from timeline.cache import CacheService, MemoryCacheBackend
from timeline.errors import RecoveryPolicy, UpstreamError
from timeline.feed import TimelineAggregator, accumulation_key, merge_timeline
from timeline.sources import (
    Identity,
    Page,
    PaginationWalker,
    RawItem,
    SourceAdapter,
    SourceResultCache,
)

OWNER = 111


def make_item(item_id: int, in_reply_to_id: int | None = None, text: str = "") -> RawItem:
    """Helper to create a RawItem for testing."""
    return RawItem(id=item_id, in_reply_to_id=in_reply_to_id, text=text or f"item {item_id}")


def ids(items) -> list[int]:
    return [i.id for i in items]


class FakeSource(SourceAdapter):
    """Source returning a fixed list of items, or raising."""

    def __init__(self, name: str, items=None, error: Exception | None = None, delay: float = 0):
        self.name = name
        self.items = items or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch_page(self, subject_id, params=None, cursor=None):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return Page(items=list(self.items))


@pytest.fixture
def cache():
    return CacheService(MemoryCacheBackend(), content_expire=3600, route_expire=300)


@pytest.fixture
def identity():
    return Identity(rest_id=OWNER, screen_name="abc")


def make_aggregator(cache, sources, **kwargs) -> TimelineAggregator:
    return TimelineAggregator(
        cache,
        SourceResultCache(cache),
        PaginationWalker(max_pages=1),
        sources,
        **kwargs,
    )


class TestMergeTimeline:
    """Tests for the pure merge step."""

    def test_sorted_descending(self):
        result = merge_timeline([], [make_item(1), make_item(3), make_item(2)], OWNER)
        assert ids(result) == [3, 2, 1]

    def test_deduplicates_keeping_first_occurrence(self):
        stored = [make_item(30, text="stored")]
        fresh = [make_item(50), make_item(30, text="fresh")]

        result = merge_timeline(stored, fresh, OWNER)

        assert ids(result) == [50, 30]
        assert result[1].text == "stored"

    def test_drops_replies_to_other_accounts(self):
        fresh = [make_item(5), make_item(4, in_reply_to_id=OWNER), make_item(3, in_reply_to_id=999)]

        result = merge_timeline([], fresh, OWNER)

        assert ids(result) == [5, 4]

    def test_drops_items_without_id(self):
        assert ids(merge_timeline([], [make_item(0), make_item(2)], OWNER)) == [2]

    def test_truncates_to_limit(self):
        fresh = [make_item(i) for i in range(1, 31)]

        result = merge_timeline([], fresh, OWNER, limit=20)

        assert len(result) == 20
        assert ids(result) == list(range(30, 10, -1))

    def test_ids_beyond_float_precision_order_exactly(self):
        # Both ids round to the same float
        low = 1790000000000000001
        high = 1790000000000000002
        assert float(low) == float(high)

        result = merge_timeline([], [make_item(low), make_item(high)], OWNER)

        assert ids(result) == [high, low]

    def test_scenario_backfill_union(self):
        stored = [make_item(30), make_item(20)]
        fresh = [make_item(50), make_item(30)]

        assert ids(merge_timeline(stored, fresh, OWNER)) == [50, 30, 20]


class TestTimelineAggregator:
    """Tests for fan-out, backfill and write-through."""

    @pytest.mark.asyncio
    async def test_failing_best_effort_source_contributes_nothing(self, cache, identity):
        aggregator = make_aggregator(
            cache,
            [
                FakeSource("tweets", [make_item(50), make_item(40), make_item(30)]),
                FakeSource("media", [make_item(45)]),
                FakeSource("replies", error=UpstreamError("HTTP 404", 404)),
            ],
        )

        result = await aggregator.aggregate(identity)

        assert ids(result) == [50, 45, 40, 30]

    @pytest.mark.asyncio
    async def test_any_single_source_failure_is_isolated(self, cache, identity, caplog):
        aggregator = make_aggregator(
            cache,
            [
                FakeSource("tweets", error=RuntimeError("boom")),
                FakeSource("media", [make_item(45)]),
            ],
        )

        with caplog.at_level(logging.INFO, logger="timeline.feed.aggregator"):
            result = await aggregator.aggregate(identity)

        assert ids(result) == [45]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("tweets" in r.getMessage() for r in warnings)

    @pytest.mark.asyncio
    async def test_best_effort_failure_is_not_a_warning(self, cache, identity, caplog):
        aggregator = make_aggregator(
            cache,
            [FakeSource("replies", error=UpstreamError("HTTP 404", 404))],
        )

        with caplog.at_level(logging.INFO, logger="timeline.feed.aggregator"):
            await aggregator.aggregate(identity)

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
        assert any("replies" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_policy_table_decides_recovery(self, cache, identity, caplog):
        aggregator = make_aggregator(
            cache,
            [FakeSource("likes", error=RuntimeError("flaky"))],
            policies={"likes": RecoveryPolicy.BEST_EFFORT},
        )

        with caplog.at_level(logging.INFO, logger="timeline.feed.aggregator"):
            assert await aggregator.aggregate(identity) == []

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    @pytest.mark.asyncio
    async def test_backfills_from_accumulation_cache(self, cache, identity):
        await cache.set(
            accumulation_key(OWNER),
            json.dumps([make_item(30).model_dump(mode="json"), make_item(20).model_dump(mode="json")]),
        )
        aggregator = make_aggregator(cache, [FakeSource("tweets", [make_item(50), make_item(30)])])

        result = await aggregator.aggregate(identity)

        assert ids(result) == [50, 30, 20]

    @pytest.mark.asyncio
    async def test_all_sources_down_returns_accumulated(self, cache, identity):
        await cache.set(
            accumulation_key(OWNER), json.dumps([make_item(20).model_dump(mode="json")])
        )
        aggregator = make_aggregator(
            cache,
            [
                FakeSource("tweets", error=UpstreamError("HTTP 500", 500)),
                FakeSource("media", error=UpstreamError("HTTP 500", 500)),
            ],
        )

        assert ids(await aggregator.aggregate(identity)) == [20]

    @pytest.mark.asyncio
    async def test_write_through_stores_result(self, cache, identity):
        aggregator = make_aggregator(cache, [FakeSource("tweets", [make_item(2), make_item(1)])])

        await aggregator.aggregate(identity)

        stored = json.loads(await cache.get(accumulation_key(OWNER)))
        assert [item["id"] for item in stored] == ["2", "1"]

    @pytest.mark.asyncio
    async def test_write_through_stores_empty_result(self, cache, identity):
        aggregator = make_aggregator(cache, [FakeSource("tweets", [])])

        await aggregator.aggregate(identity)

        assert json.loads(await cache.get(accumulation_key(OWNER))) == []

    @pytest.mark.asyncio
    async def test_corrupt_accumulation_is_ignored(self, cache, identity):
        await cache.set(accumulation_key(OWNER), "{not json")
        aggregator = make_aggregator(cache, [FakeSource("tweets", [make_item(5)])])

        result = await aggregator.aggregate(identity)

        assert ids(result) == [5]
        # The corrupt entry is replaced by the new result
        assert json.loads(await cache.get(accumulation_key(OWNER)))[0]["id"] == "5"

    @pytest.mark.asyncio
    async def test_accumulation_with_invalid_items_is_ignored(self, cache, identity):
        await cache.set(accumulation_key(OWNER), json.dumps([{"text": "no id"}]))
        aggregator = make_aggregator(cache, [FakeSource("tweets", [make_item(5)])])

        assert ids(await aggregator.aggregate(identity)) == [5]

    @pytest.mark.asyncio
    async def test_idempotent_without_new_data(self, cache, identity):
        aggregator = make_aggregator(
            cache,
            [
                FakeSource("tweets", [make_item(9), make_item(7)]),
                FakeSource("media", [make_item(8)]),
            ],
        )

        first = await aggregator.aggregate(identity)
        second = await aggregator.aggregate(identity)

        assert ids(first) == ids(second) == [9, 8, 7]

    @pytest.mark.asyncio
    async def test_source_results_are_memoized(self, cache, identity):
        tweets = FakeSource("tweets", [make_item(1)])
        aggregator = make_aggregator(cache, [tweets])

        await aggregator.aggregate(identity)
        await aggregator.aggregate(identity)

        assert tweets.calls == 1

    @pytest.mark.asyncio
    async def test_different_params_do_not_share_entries(self, cache, identity):
        tweets = FakeSource("tweets", [make_item(1)])
        aggregator = make_aggregator(cache, [tweets])

        await aggregator.aggregate(identity, {"count": 5})
        await aggregator.aggregate(identity, {"count": 10})

        assert tweets.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_source_fetches(self, cache, identity):
        tweets = FakeSource("tweets", [make_item(1)], delay=0.01)
        aggregator = make_aggregator(cache, [tweets])

        await asyncio.gather(aggregator.aggregate(identity), aggregator.aggregate(identity))

        assert tweets.calls == 1

    @pytest.mark.asyncio
    async def test_failed_source_is_retried_next_cycle(self, cache, identity):
        tweets = FakeSource("tweets", error=UpstreamError("HTTP 500", 500))
        aggregator = make_aggregator(cache, [tweets])

        await aggregator.aggregate(identity)
        tweets.error = None
        tweets.items = [make_item(3)]

        assert ids(await aggregator.aggregate(identity)) == [3]

    @pytest.mark.asyncio
    async def test_timeout_aborts_without_writing(self, cache, identity):
        aggregator = make_aggregator(
            cache, [FakeSource("tweets", [make_item(1)], delay=1)], timeout=0.01
        )

        with pytest.raises(asyncio.TimeoutError):
            await aggregator.aggregate(identity)

        assert await cache.get(accumulation_key(OWNER)) is None
        await cache.close()

    @pytest.mark.asyncio
    async def test_result_invariants(self, cache, identity):
        stored = [make_item(i) for i in range(1, 15)]
        await cache.set(
            accumulation_key(OWNER), json.dumps([i.model_dump(mode="json") for i in stored])
        )
        aggregator = make_aggregator(
            cache,
            [
                FakeSource("tweets", [make_item(i) for i in range(10, 30)]),
                FakeSource("media", [make_item(i, in_reply_to_id=222) for i in range(30, 35)]),
                FakeSource("replies", [make_item(i, in_reply_to_id=OWNER) for i in range(35, 38)]),
            ],
        )

        result = await aggregator.aggregate(identity)

        assert len(result) <= 20
        assert len(set(ids(result))) == len(result)
        assert ids(result) == sorted(ids(result), reverse=True)
        assert all(i.in_reply_to_id in (None, OWNER) for i in result)
        assert ids(result)[:3] == [37, 36, 35]
