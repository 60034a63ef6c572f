"""
live_ingest test fixtures
Shared fakes and pipeline builders
"""
from typing import Optional
from unittest.mock import MagicMock

import pytest

from live_ingest.commands import ChatCommandHandler
from live_ingest.connection import ConnectionStateMachine, ReconnectPolicy
from live_ingest.cooldown import CooldownPolicy, CooldownThrottle
from live_ingest.events import EventDispatcher, EventSink, Provider
from live_ingest.gift_aggregator import GiftAggregator, amount_display, coin_display
from live_ingest.message_queue import CrossThreadMessageQueue
from live_ingest.milestones import MilestoneTracker
from live_ingest.normalizers import PollingEventNormalizer, StreamingEventNormalizer
from live_ingest.pipeline import ProviderPipeline
from live_ingest.transport.base import TransportAdapter
from live_ingest.viewer_registry import ViewerRegistry


TIKTOK_GIFT_TIERS = [1, 10, 99, 500, 5000, 44999]
TIKTOK_LIKE_MILESTONES = [50, 200, 500, 1000, 3000]
SUPER_CHAT_TIERS = [200, 500, 1000, 5000, 10000]
YOUTUBE_LIKE_MILESTONES = [50, 100, 200, 500, 1000]


class RecordingSink(EventSink):
    """Collects every delivered event"""

    def __init__(self):
        self.events = []

    def on_canonical_event(self, event):
        self.events.append(event)

    def of_kind(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def transport():
    """Transport stand-in; connect/disconnect only record calls"""
    return MagicMock(spec=TransportAdapter)


@pytest.fixture
def commands():
    """Command handler recognizing nothing as a stance command and everything as spawn"""
    handler = MagicMock(spec=ChatCommandHandler)
    handler.try_stance_command.return_value = False
    handler.try_spawn_command.return_value = True
    return handler


def _pipeline(
    provider: Provider,
    transport,
    sink,
    commands=None,
    policy: Optional[ReconnectPolicy] = None,
) -> ProviderPipeline:
    queue = CrossThreadMessageQueue(max_size=200, drain_per_tick=20)
    registry = ViewerRegistry()
    tiktok = provider == Provider.TIKTOK
    cooldown_policy = (
        CooldownPolicy() if tiktok else CooldownPolicy(subscriber_seconds=15.0)
    )
    return ProviderPipeline(
        provider=provider,
        transport=transport,
        queue=queue,
        normalizer=StreamingEventNormalizer() if tiktok else PollingEventNormalizer(),
        state_machine=ConnectionStateMachine(
            provider, transport, policy or ReconnectPolicy(), connecting_timeout=30.0
        ),
        dispatcher=EventDispatcher([sink]),
        gift_aggregator=GiftAggregator(
            provider,
            TIKTOK_GIFT_TIERS if tiktok else SUPER_CHAT_TIERS,
            window_seconds=2.0,
            display_formatter=coin_display if tiktok else amount_display,
        ),
        cooldown=CooldownThrottle(cooldown_policy, classifier=registry),
        milestones=MilestoneTracker(
            TIKTOK_LIKE_MILESTONES if tiktok else YOUTUBE_LIKE_MILESTONES,
            relative_to_baseline=tiktok,
        ),
        registry=registry,
        commands=commands,
        connect_on_activity=tiktok,
    )


@pytest.fixture
def tiktok_pipeline(transport, sink, commands):
    return _pipeline(Provider.TIKTOK, transport, sink, commands)


@pytest.fixture
def youtube_pipeline(transport, sink, commands):
    return _pipeline(Provider.YOUTUBE, transport, sink, commands)

