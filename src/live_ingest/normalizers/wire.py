"""
Wire schemas of both providers.

Field names on the wire are mapped to Python names on read (``event`` becomes
``event_type``); nothing outside the normalizers sees the wire names.
Values of the wrong type are coerced to empty defaults instead of failing the
whole message.
"""

import math
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lenient_int(v: Any) -> int:
    if v is None or isinstance(v, bool):
        return 0
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        if math.isinf(v) or math.isnan(v):
            return 0
        return int(v)
    try:
        return int(str(v).strip())
    except ValueError:
        try:
            return int(float(str(v).strip()))
        except (ValueError, OverflowError):
            return 0


def _lenient_str(v: Any) -> str:
    if v is None or isinstance(v, (dict, list)):
        return ""
    return str(v)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# TikTok broker


class TikTokBadge(WireModel):
    type: str = Field("", alias="type")
    level: int = Field(0, alias="level")
    name: str = Field("", alias="name")

    @field_validator("type", "name", mode="before")
    def coerce_str(cls, v):
        return _lenient_str(v)

    @field_validator("level", mode="before")
    def coerce_int(cls, v):
        return _lenient_int(v)


class TikTokUser(WireModel):
    unique_id: str = Field("", alias="uniqueId")
    user_id: str = Field("", alias="userId")
    nickname: str = Field("", alias="nickname")
    profile_picture_url: str = Field("", alias="profilePictureUrl")
    badges: List[TikTokBadge] = Field([], alias="badges")

    @field_validator("unique_id", "user_id", "nickname", "profile_picture_url", mode="before")
    def coerce_str(cls, v):
        return _lenient_str(v)

    @field_validator("badges", mode="before")
    def coerce_badges(cls, v):
        if not isinstance(v, list):
            return []
        return [b for b in v if isinstance(b, dict)]


class TikTokMessage(WireModel):
    event_type: str = Field("", alias="event")
    user: Optional[TikTokUser] = Field(None, alias="user")
    comment: str = Field("", alias="comment")
    message: str = Field("", alias="message")
    reason: str = Field("", alias="reason")
    room_id: str = Field("", alias="roomId")
    gift_name: str = Field("", alias="giftName")
    diamond_count: int = Field(0, alias="diamondCount")
    repeat_count: int = Field(0, alias="repeatCount")
    total_diamond_count: int = Field(0, alias="totalDiamondCount")
    like_count: int = Field(0, alias="likeCount")
    total_like_count: int = Field(0, alias="totalLikeCount")

    @field_validator(
        "event_type", "comment", "message", "reason", "room_id", "gift_name", mode="before"
    )
    def coerce_str(cls, v):
        return _lenient_str(v)

    @field_validator(
        "diamond_count",
        "repeat_count",
        "total_diamond_count",
        "like_count",
        "total_like_count",
        mode="before",
    )
    def coerce_int(cls, v):
        return _lenient_int(v)

    @field_validator("user", mode="before")
    def coerce_user(cls, v):
        return v if isinstance(v, dict) else None


# YouTube Data API v3


class AuthorDetails(WireModel):
    channel_id: str = Field("", alias="channelId")
    display_name: str = Field("", alias="displayName")
    profile_image_url: str = Field("", alias="profileImageUrl")
    is_chat_sponsor: bool = Field(False, alias="isChatSponsor")

    @field_validator("channel_id", "display_name", "profile_image_url", mode="before")
    def coerce_str(cls, v):
        return _lenient_str(v)

    @field_validator("is_chat_sponsor", mode="before")
    def coerce_bool(cls, v):
        return v is True or (isinstance(v, str) and v.lower() == "true")


class PaidDetails(WireModel):
    """``superChatDetails`` and ``superStickerDetails`` share these fields."""

    amount_micros: str = Field("", alias="amountMicros")
    currency: str = Field("", alias="currency")
    amount_display_string: str = Field("", alias="amountDisplayString")

    @field_validator("amount_micros", "currency", "amount_display_string", mode="before")
    def coerce_str(cls, v):
        return _lenient_str(v)


class ChatSnippet(WireModel):
    type: str = Field("textMessageEvent", alias="type")
    display_message: str = Field("", alias="displayMessage")
    super_chat_details: Optional[PaidDetails] = Field(None, alias="superChatDetails")
    super_sticker_details: Optional[PaidDetails] = Field(None, alias="superStickerDetails")

    @field_validator("type", mode="before")
    def default_type(cls, v):
        return _lenient_str(v) or "textMessageEvent"

    @field_validator("display_message", mode="before")
    def coerce_str(cls, v):
        return _lenient_str(v)

    @property
    def paid_details(self) -> Optional[PaidDetails]:
        return self.super_chat_details or self.super_sticker_details


class LiveChatMessage(WireModel):
    kind: str = Field("", alias="kind")
    id: str = Field("", alias="id")
    snippet: ChatSnippet = Field(ChatSnippet(), alias="snippet")
    author_details: AuthorDetails = Field(AuthorDetails(), alias="authorDetails")

    @field_validator("snippet", "author_details", mode="before")
    def coerce_section(cls, v):
        return v if isinstance(v, dict) else {}


class LiveStreamingDetails(WireModel):
    active_live_chat_id: str = Field("", alias="activeLiveChatId")


class VideoStatistics(WireModel):
    like_count: Optional[int] = Field(None, alias="likeCount")

    @field_validator("like_count", mode="before")
    def parse_count(cls, v):
        # The API sends counts as strings
        return None if v is None else _lenient_int(v)


class VideoResource(WireModel):
    kind: str = Field("", alias="kind")
    id: str = Field("", alias="id")
    live_streaming_details: Optional[LiveStreamingDetails] = Field(
        None, alias="liveStreamingDetails"
    )
    statistics: Optional[VideoStatistics] = Field(None, alias="statistics")
