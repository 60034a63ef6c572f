"""
Canonical events delivered to the game simulation.

Every provider-specific payload ends up as exactly one of the event classes
below. Events are immutable and are handed to each registered sink once.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from loguru import logger


class Provider(str, Enum):
    """Live-streaming platforms the pipeline understands."""

    TIKTOK = "tiktok"
    YOUTUBE = "youtube"

    @property
    def label(self) -> str:
        """Log prefix, e.g. ``TikTok``."""
        return {"tiktok": "TikTok", "youtube": "YouTube"}[self.value]


class EventKind(str, Enum):
    """Tag of a canonical event."""

    CHAT = "chat"
    GIFT = "gift"
    SUBSCRIBE = "subscribe"  # existing subscriber/member observed
    NEW_SUBSCRIBER = "new_subscriber"  # subscription happened during the stream
    FOLLOW = "follow"
    SHARE = "share"
    TEAM_MEMBERSHIP = "team_membership"
    LIKE_MILESTONE = "like_milestone"
    STREAM_CONNECTED = "stream_connected"
    STREAM_ENDED = "stream_ended"
    ERROR = "error"


@dataclass(frozen=True)
class Viewer:
    """Identity of the viewer an event is attributed to."""

    id: str
    name: str
    avatar_url: str = ""

    @classmethod
    def system(cls) -> "Viewer":
        """Placeholder viewer for lifecycle events that have no author."""
        return cls(id="", name="")


@dataclass(frozen=True, kw_only=True)
class CanonicalEvent:
    """Common fields shared by every event variant."""

    kind: ClassVar[EventKind]

    provider: Provider
    viewer: Viewer = field(default_factory=Viewer.system)
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True, kw_only=True)
class ChatEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.CHAT

    text: str


@dataclass(frozen=True, kw_only=True)
class GiftEvent(CanonicalEvent):
    """One aggregated gift burst from a single viewer."""

    kind: ClassVar[EventKind] = EventKind.GIFT

    tier: int
    total_value: int
    display_text: str
    label: str
    gift_count: int = 1


@dataclass(frozen=True, kw_only=True)
class SubscribeEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.SUBSCRIBE


@dataclass(frozen=True, kw_only=True)
class NewSubscriberEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.NEW_SUBSCRIBER


@dataclass(frozen=True, kw_only=True)
class FollowEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.FOLLOW


@dataclass(frozen=True, kw_only=True)
class ShareEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.SHARE


@dataclass(frozen=True, kw_only=True)
class TeamMembershipEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.TEAM_MEMBERSHIP

    level: int


@dataclass(frozen=True, kw_only=True)
class LikeMilestoneEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.LIKE_MILESTONE

    milestone_index: int
    like_count: int


@dataclass(frozen=True, kw_only=True)
class StreamConnectedEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.STREAM_CONNECTED

    room_id: str = ""


@dataclass(frozen=True, kw_only=True)
class StreamEndedEvent(CanonicalEvent):
    kind: ClassVar[EventKind] = EventKind.STREAM_ENDED


@dataclass(frozen=True, kw_only=True)
class ErrorEvent(CanonicalEvent):
    """Lifecycle error. ``terminal`` means no further retries are scheduled."""

    kind: ClassVar[EventKind] = EventKind.ERROR

    message: str
    terminal: bool = False


AnyCanonicalEvent = Union[
    ChatEvent,
    GiftEvent,
    SubscribeEvent,
    NewSubscriberEvent,
    FollowEvent,
    ShareEvent,
    TeamMembershipEvent,
    LikeMilestoneEvent,
    StreamConnectedEvent,
    StreamEndedEvent,
    ErrorEvent,
]


class EventSink(ABC):
    """
    Consumer of canonical events.

    The game simulation implements this interface; it is the only contract the
    ingestion pipeline has with it.
    """

    @abstractmethod
    def on_canonical_event(self, event: AnyCanonicalEvent) -> None:
        """Handle one canonical event. Called on the tick thread."""
        pass


class EventDispatcher:
    """
    Ordered fan-out of canonical events to registered sinks.

    Sinks are called in registration order. A sink that raises is logged and
    skipped; the remaining sinks still receive the event.
    """

    def __init__(self, sinks: list[EventSink] | None = None):
        self._sinks: list[EventSink] = list(sinks or [])

    def subscribe(self, sink: EventSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def unsubscribe(self, sink: EventSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    @property
    def sink_count(self) -> int:
        return len(self._sinks)

    def dispatch(self, event: AnyCanonicalEvent) -> None:
        for sink in list(self._sinks):
            try:
                sink.on_canonical_event(event)
            except Exception as e:
                logger.error(
                    f"[Ingest] Sink {type(sink).__name__} failed on {event.kind.value}: {e}"
                )
