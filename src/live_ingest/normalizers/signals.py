"""
Provider-neutral intermediate signals.

Normalizers turn one raw payload into zero or more signals; the pipeline
applies aggregation, de-duplication and throttling to them before anything
becomes a canonical event.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..events import Viewer
from ..transport.base import DisconnectReason


@dataclass(frozen=True)
class ViewerBadges:
    """Support relationship markers carried on a viewer."""

    is_subscriber: bool = False
    fan_club_level: Optional[int] = None


@dataclass(frozen=True)
class ChatSignal:
    viewer: Viewer
    text: str
    badges: ViewerBadges = field(default_factory=ViewerBadges)


@dataclass(frozen=True)
class GiftSignal:
    viewer: Viewer
    value: int
    label: str
    display: str = ""
    badges: ViewerBadges = field(default_factory=ViewerBadges)


@dataclass(frozen=True)
class LikeSignal:
    total: int
    delta: Optional[int] = None
    viewer: Optional[Viewer] = None


@dataclass(frozen=True)
class SubscribeSignal:
    """A subscription or membership that started during the stream."""

    viewer: Viewer


@dataclass(frozen=True)
class BadgeSignal:
    """Badge information without any other effect (membership updates)."""

    viewer: Viewer
    badges: ViewerBadges


@dataclass(frozen=True)
class FollowSignal:
    viewer: Viewer


@dataclass(frozen=True)
class ShareSignal:
    viewer: Viewer


@dataclass(frozen=True)
class ConnectedSignal:
    room_id: str = ""


@dataclass(frozen=True)
class StreamEndSignal:
    pass


@dataclass(frozen=True)
class DisconnectedSignal:
    reason: DisconnectReason
    message: str = ""


@dataclass(frozen=True)
class ErrorSignal:
    message: str


Signal = Union[
    ChatSignal,
    GiftSignal,
    LikeSignal,
    SubscribeSignal,
    BadgeSignal,
    FollowSignal,
    ShareSignal,
    ConnectedSignal,
    StreamEndSignal,
    DisconnectedSignal,
    ErrorSignal,
]
