"""Pydantic models for identities, normalized items and adapter pages."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer

# Cursor types carried by timeline cursor entries
TOP = "Top"
BOTTOM = "Bottom"


class Identity(BaseModel):
    """A resolved account: stable numeric id plus its profile fields."""

    model_config = ConfigDict(frozen=True)

    rest_id: int
    screen_name: str | None = None
    name: str | None = None
    description: str | None = None
    profile_image_url: str | None = None
    followers_count: int | None = None
    friends_count: int | None = None
    statuses_count: int | None = None

    @field_serializer("rest_id", when_used="json")
    def _id_as_str(self, value: int) -> str:
        return str(value)

    @classmethod
    def from_user_data(cls, data: dict[str, Any]) -> "Identity | None":
        """Build an identity from a UserByScreenName/UserByRestId response.

        Returns None when the payload carries no numeric ``rest_id``.
        """
        payload = data.get("data") or {}
        user = payload.get("user") or payload.get("user_result") or {}
        result = user.get("result") or {}
        rest_id = result.get("rest_id")
        if rest_id is None or not str(rest_id).isdigit():
            return None

        legacy = result.get("legacy") or {}
        core = result.get("core") or {}
        avatar = result.get("avatar") or {}
        return cls(
            rest_id=int(rest_id),
            screen_name=core.get("screen_name") or legacy.get("screen_name"),
            name=core.get("name") or legacy.get("name"),
            description=legacy.get("description"),
            profile_image_url=avatar.get("image_url") or legacy.get("profile_image_url_https"),
            followers_count=legacy.get("followers_count"),
            friends_count=legacy.get("friends_count"),
            statuses_count=legacy.get("statuses_count"),
        )


class RawItem(BaseModel):
    """A normalized timeline item.

    Ids are exact Python ints. In JSON they are written as decimal strings
    so consumers without 64-bit integers keep full precision; both strings
    and ints are accepted on input.
    """

    id: int
    user_id: int | None = None
    in_reply_to_id: int | None = None  # account the item replies to
    in_reply_to_status_id: int | None = None
    conversation_id: int | None = None
    text: str = ""
    created_at: str | None = None
    media: list[dict[str, Any]] = Field(default_factory=list)
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_serializer(
        "id", "user_id", "in_reply_to_id", "in_reply_to_status_id", "conversation_id",
        when_used="json",
    )
    def _ids_as_str(self, value: int | None) -> str | None:
        return None if value is None else str(value)

    @classmethod
    def from_legacy(cls, legacy: dict[str, Any]) -> "RawItem":
        """Build an item from a flattened upstream ``legacy`` tweet record."""
        entities = legacy.get("extended_entities") or legacy.get("entities") or {}
        return cls(
            id=legacy["id_str"],
            user_id=legacy.get("user_id_str") or None,
            in_reply_to_id=legacy.get("in_reply_to_user_id_str") or None,
            in_reply_to_status_id=legacy.get("in_reply_to_status_id_str") or None,
            conversation_id=legacy.get("conversation_id_str") or None,
            text=legacy.get("full_text") or legacy.get("text") or "",
            created_at=legacy.get("created_at"),
            media=entities.get("media") or [],
            payload=legacy,
        )


class Page(BaseModel):
    """One page produced by a source adapter.

    ``entry_count`` is the number of content entries upstream returned,
    before normalization dropped or filtered any of them.
    """

    items: list[RawItem] = Field(default_factory=list)
    cursors: dict[str, str] = Field(default_factory=dict)
    entry_count: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.items and not self.entry_count
