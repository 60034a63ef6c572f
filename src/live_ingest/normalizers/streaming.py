"""
TikTok broker payloads -> signals.
"""

from typing import Any, Callable, Dict, List

from loguru import logger

from ..events import Provider, Viewer
from .base import EventNormalizer
from .signals import (
    BadgeSignal,
    ChatSignal,
    ConnectedSignal,
    ErrorSignal,
    FollowSignal,
    GiftSignal,
    LikeSignal,
    ShareSignal,
    Signal,
    StreamEndSignal,
    SubscribeSignal,
    ViewerBadges,
)
from .text_scan import extract_json_string
from .wire import TikTokMessage


ANONYMOUS = "Anonymous"
DEFAULT_GIFT_LABEL = "Gift"
FAN_CLUB_BADGE = "fan_club"
SUBSCRIBER_BADGE = "subscriber"


def gift_total(msg: TikTokMessage) -> int:
    """Cumulative total when present and positive, else unit value times repeats."""
    if msg.total_diamond_count > 0:
        return msg.total_diamond_count
    return msg.diamond_count * max(msg.repeat_count, 1)


class StreamingEventNormalizer(EventNormalizer):
    provider = Provider.TIKTOK

    def __init__(self):
        self._handlers: Dict[str, Callable[[TikTokMessage], List[Signal]]] = {
            "connected": lambda m: [ConnectedSignal(room_id=m.room_id)],
            "chat": lambda m: [ChatSignal(self.viewer(m), m.comment, self.badges(m))],
            "gift": self._gift,
            "like": self._like,
            "subscribe": lambda m: [SubscribeSignal(self.viewer(m))],
            "follow": lambda m: [FollowSignal(self.viewer(m))],
            "share": lambda m: [ShareSignal(self.viewer(m))],
            "member": self._member,
            "streamEnd": lambda m: [StreamEndSignal()],
            "error": lambda m: [ErrorSignal(m.message or "Unknown error")],
        }

    def _normalize(self, data: Dict[str, Any], raw: str) -> List[Signal]:
        msg = TikTokMessage.model_validate(data)

        if msg.user is not None and not msg.user.profile_picture_url:
            avatar = extract_json_string(raw, "profilePictureUrl")
            if avatar:
                msg.user.profile_picture_url = avatar

        handler = self._handlers.get(msg.event_type)
        if handler is None:
            logger.debug(f"[TikTok] Ignoring event type '{msg.event_type}'")
            return []
        return handler(msg)

    @staticmethod
    def viewer(msg: TikTokMessage) -> Viewer:
        user = msg.user
        if user is None:
            return Viewer(id=ANONYMOUS, name=ANONYMOUS)
        name = user.nickname or user.unique_id or ANONYMOUS
        return Viewer(
            id=user.user_id or name,
            name=name,
            avatar_url=user.profile_picture_url,
        )

    @staticmethod
    def badges(msg: TikTokMessage) -> ViewerBadges:
        if msg.user is None or not msg.user.badges:
            return ViewerBadges()
        fan_club_level = None
        is_subscriber = False
        for badge in msg.user.badges:
            if badge.type == FAN_CLUB_BADGE and fan_club_level is None:
                fan_club_level = max(badge.level, 1)
            elif badge.type == SUBSCRIBER_BADGE:
                is_subscriber = True
        return ViewerBadges(is_subscriber=is_subscriber, fan_club_level=fan_club_level)

    def _gift(self, msg: TikTokMessage) -> List[Signal]:
        return [
            GiftSignal(
                viewer=self.viewer(msg),
                value=gift_total(msg),
                label=msg.gift_name or DEFAULT_GIFT_LABEL,
                badges=self.badges(msg),
            )
        ]

    def _like(self, msg: TikTokMessage) -> List[Signal]:
        if msg.total_like_count <= 0:
            return []
        return [LikeSignal(total=msg.total_like_count, delta=msg.like_count)]

    def _member(self, msg: TikTokMessage) -> List[Signal]:
        badges = self.badges(msg)
        if badges == ViewerBadges():
            return []
        return [BadgeSignal(self.viewer(msg), badges)]
