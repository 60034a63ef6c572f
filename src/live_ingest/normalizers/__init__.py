from .base import EventNormalizer
from .polling import PollingEventNormalizer
from .signals import (
    BadgeSignal,
    ChatSignal,
    ConnectedSignal,
    DisconnectedSignal,
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
from .streaming import StreamingEventNormalizer

__all__ = [
    "EventNormalizer",
    "PollingEventNormalizer",
    "StreamingEventNormalizer",
    "Signal",
    "BadgeSignal",
    "ChatSignal",
    "ConnectedSignal",
    "DisconnectedSignal",
    "ErrorSignal",
    "FollowSignal",
    "GiftSignal",
    "LikeSignal",
    "ShareSignal",
    "StreamEndSignal",
    "SubscribeSignal",
    "ViewerBadges",
]
