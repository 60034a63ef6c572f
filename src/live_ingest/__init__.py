"""
Live event ingestion for TikTok LIVE and YouTube Live.

Raw provider traffic is received on a background network thread, handed over
through a bounded queue and turned into canonical events on the caller's tick.
"""

from .commands import ChatCommandHandler, NullCommandHandler
from .cooldown import CooldownPolicy, CooldownThrottle
from .events import (
    AnyCanonicalEvent,
    CanonicalEvent,
    ChatEvent,
    ErrorEvent,
    EventDispatcher,
    EventKind,
    EventSink,
    FollowEvent,
    GiftEvent,
    LikeMilestoneEvent,
    NewSubscriberEvent,
    Provider,
    ShareEvent,
    StreamConnectedEvent,
    StreamEndedEvent,
    SubscribeEvent,
    TeamMembershipEvent,
    Viewer,
)
from .gift_aggregator import GiftAggregator
from .ingest_manager import IngestManager
from .message_queue import CrossThreadMessageQueue, RawMessage
from .milestones import MilestoneTracker
from .pipeline import ProviderPipeline
from .viewer_registry import ViewerRegistry

__version__ = "0.1.0"

__all__ = [
    "AnyCanonicalEvent",
    "CanonicalEvent",
    "ChatEvent",
    "ChatCommandHandler",
    "CooldownPolicy",
    "CooldownThrottle",
    "CrossThreadMessageQueue",
    "ErrorEvent",
    "EventDispatcher",
    "EventKind",
    "EventSink",
    "FollowEvent",
    "GiftAggregator",
    "GiftEvent",
    "IngestManager",
    "LikeMilestoneEvent",
    "MilestoneTracker",
    "NewSubscriberEvent",
    "NullCommandHandler",
    "Provider",
    "ProviderPipeline",
    "RawMessage",
    "ShareEvent",
    "StreamConnectedEvent",
    "StreamEndedEvent",
    "SubscribeEvent",
    "TeamMembershipEvent",
    "Viewer",
    "ViewerRegistry",
]
