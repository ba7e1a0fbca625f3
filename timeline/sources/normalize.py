"""Flatten nested upstream timeline responses into RawItems.

Upstream timelines arrive as a list of *instructions*; each instruction
carries *entries* which are either tweets, cursors, or modules holding
further tweet items (conversation threads, media grids). Nothing in this
module's output depends on that shape.
"""

from typing import Any, Iterable

from timeline.errors import SourceError
from timeline.sources.models import RawItem

# Entry id prefixes of top-level tweet entries
TWEET_ENTRY_PREFIXES = ("tweet-", "profile-grid-0-tweet-")

# A path element may be a tuple of alternative keys, tried in order
PathElement = str | tuple[str, ...]


def dig(data: Any, path: Iterable[PathElement]) -> Any:
    """Walk nested dicts along ``path``; returns None if any step is missing."""
    node = data
    for element in path:
        if not isinstance(node, dict):
            return None
        if isinstance(element, tuple):
            node = next((node[k] for k in element if node.get(k) is not None), None)
        else:
            node = node.get(element)
    return node


def extract_instructions(data: dict[str, Any], path: Iterable[PathElement]) -> list[dict]:
    """Locate the timeline instruction list inside a GraphQL response.

    Raises:
        SourceError: If the response does not contain a timeline at ``path``
    """
    timeline = dig(data.get("data"), path)
    if not isinstance(timeline, dict) or not isinstance(timeline.get("instructions"), list):
        raise SourceError("Upstream response has no timeline instructions")
    return timeline["instructions"]


def _cursor(entry: dict) -> dict | None:
    # Module items carry their payload under "item" and wrap cursors in itemContent
    content = entry.get("content") or entry.get("item") or {}
    for candidate in (content, content.get("itemContent") or {}):
        if candidate.get("cursorType") and candidate.get("value"):
            return candidate
    return None


def collect_entries(instructions: list[dict]) -> tuple[list[dict], dict[str, str]]:
    """Split instructions into content entries and cursors keyed by type."""
    entries: list[dict] = []
    cursors: dict[str, str] = {}

    for instruction in instructions:
        kind = instruction.get("type")
        if kind == "TimelineAddEntries":
            batch = instruction.get("entries") or []
        elif kind in ("TimelinePinEntry", "TimelineReplaceEntry"):
            batch = [instruction["entry"]] if instruction.get("entry") else []
        elif kind == "TimelineAddToModule":
            batch = instruction.get("moduleItems") or []
        else:
            continue

        for entry in batch:
            cursor = _cursor(entry)
            if cursor:
                cursors[cursor["cursorType"]] = cursor["value"]
            else:
                entries.append(entry)

    return entries, cursors


def _tweet_result(entry: dict) -> dict | None:
    content = entry.get("content") or entry.get("item") or {}
    result = dig(content, ("content", "tweetResult", "result")) or dig(
        content, ("itemContent", "tweet_results", "result")
    )
    if isinstance(result, dict) and isinstance(result.get("tweet"), dict):
        # TweetWithVisibilityResults wraps the actual tweet
        result = result["tweet"]
    return result if isinstance(result, dict) else None


def _flatten(result: dict) -> dict | None:
    """Return a copy of the tweet's legacy record with user, quote and note text inlined."""
    if not isinstance(result.get("legacy"), dict):
        return None

    legacy = dict(result["legacy"])
    if result.get("rest_id"):
        legacy["id_str"] = result["rest_id"]

    user = dig(result, ("core", ("user_result", "user_results"), "result"))
    if isinstance(user, dict):
        legacy["user"] = {**(user.get("legacy") or {}), **(user.get("core") or {})}

    note = dig(result, ("note_tweet", "note_tweet_results", "result", "text"))
    if note:
        legacy["full_text"] = note

    quote = dig(result, ("quoted_status_result", "result"))
    if isinstance(quote, dict):
        quoted = _flatten(quote.get("tweet") if isinstance(quote.get("tweet"), dict) else quote)
        if quoted:
            legacy["quoted_status"] = quoted

    retweet = dig(legacy, ("retweeted_status_result", "result"))
    if isinstance(retweet, dict):
        retweeted = _flatten(
            retweet.get("tweet") if isinstance(retweet.get("tweet"), dict) else retweet
        )
        if retweeted:
            legacy["retweeted_status"] = retweeted
        del legacy["retweeted_status_result"]

    return legacy


def gather_items(
    entries: list[dict],
    nested_prefixes: tuple[str, ...] = (),
    owner_id: int | str | None = None,
) -> list[RawItem]:
    """Turn timeline entries into RawItems.

    Args:
        entries: Content entries from ``collect_entries``
        nested_prefixes: Entry id prefixes of modules whose items are tweets
        owner_id: When set, keep only items authored by this account

    Returns:
        Items in entry order; entries without a tweet or an id are skipped
    """
    candidates: list[dict] = []
    for entry in entries:
        entry_id = entry.get("entryId") or ""
        if entry_id.startswith(TWEET_ENTRY_PREFIXES):
            candidates.append(entry)
        if nested_prefixes and entry_id.startswith(nested_prefixes):
            candidates.extend(dig(entry, ("content", "items")) or [])

    items: list[RawItem] = []
    for entry in candidates:
        result = _tweet_result(entry)
        if result is None:
            continue
        legacy = _flatten(result)
        if not legacy or not str(legacy.get("id_str") or "").isdigit():
            continue
        if owner_id is not None and str(legacy.get("user_id_str")) != str(owner_id):
            continue
        items.append(RawItem.from_legacy(legacy))

    return items
