"""
One provider's tick-side pipeline.

Everything here runs on the simulation tick thread: draining the queue,
normalizing, badge detection, gift batching, cooldown gating, milestone
detection and the connection state machine.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from loguru import logger

from .commands import ChatCommandHandler, NullCommandHandler
from .connection import ConnectionState, ConnectionStateMachine
from .cooldown import CooldownThrottle
from .events import (
    AnyCanonicalEvent,
    ChatEvent,
    ErrorEvent,
    EventDispatcher,
    FollowEvent,
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
from .message_queue import CrossThreadMessageQueue
from .milestones import MilestoneTracker
from .normalizers import (
    BadgeSignal,
    ChatSignal,
    ConnectedSignal,
    DisconnectedSignal,
    ErrorSignal,
    EventNormalizer,
    FollowSignal,
    GiftSignal,
    LikeSignal,
    ShareSignal,
    Signal,
    StreamEndSignal,
    SubscribeSignal,
    ViewerBadges,
)
from .transport.base import DisconnectReason, TransportAdapter
from .viewer_registry import DetectedSet, ViewerRegistry


class ProviderPipeline:
    """
    Wires transport, queue, normalizer and the per-session trackers of one
    provider, and turns drained payloads into canonical events.
    """

    def __init__(
        self,
        provider: Provider,
        transport: TransportAdapter,
        queue: CrossThreadMessageQueue,
        normalizer: EventNormalizer,
        state_machine: ConnectionStateMachine,
        dispatcher: EventDispatcher,
        gift_aggregator: GiftAggregator,
        cooldown: CooldownThrottle,
        milestones: MilestoneTracker,
        registry: ViewerRegistry,
        commands: Optional[ChatCommandHandler] = None,
        connect_on_activity: bool = False,
    ):
        """
        Args:
            provider: Provider served by this pipeline
            transport: Network side, producing into ``queue``
            queue: Hand-off between the network thread and the tick
            normalizer: Raw payload to signals
            state_machine: Connection lifecycle driving ``transport``
            dispatcher: Delivers canonical events to the sinks
            gift_aggregator: Gift burst batching
            cooldown: Spawn command rate limiting; reads ``registry``
            milestones: Like milestone detection
            registry: Per-session viewer classification
            commands: Game command parser
            connect_on_activity: Treat the first chat or gift as the
                connection acknowledgement
        """
        self.provider = provider
        self.transport = transport
        self.queue = queue
        self.normalizer = normalizer
        self.state_machine = state_machine
        self.dispatcher = dispatcher
        self.gift_aggregator = gift_aggregator
        self.cooldown = cooldown
        self.milestones = milestones
        self.registry = registry
        self.commands = commands or NullCommandHandler()
        self.connect_on_activity = connect_on_activity

        self.subscribers = DetectedSet("subscriber")
        self.fan_club = DetectedSet("fan_club")
        self.followers = DetectedSet("follow")
        self.sharers = DetectedSet("share")

        self.total_commands = 0
        self.failed_messages = 0
        self._tag = f"[{provider.label}]"

    # Session control

    def _reset_session(self) -> None:
        self.queue.clear()
        self.gift_aggregator.clear()
        self.cooldown.clear()
        self.milestones.reset()
        self.registry.clear()
        for detected in (self.subscribers, self.fan_club, self.followers, self.sharers):
            detected.clear()
        self.total_commands = 0

    def connect(self, credentials: str, now: Optional[float] = None) -> bool:
        """Start a new session. Only valid while disconnected."""
        if self.state_machine.state == ConnectionState.DISCONNECTED and (credentials or "").strip():
            self._reset_session()
        return self.state_machine.request_connect(credentials, self._now(now))

    def disconnect(self) -> None:
        """Explicit disconnect. Pending gifts are discarded."""
        self.state_machine.disconnect()
        self.queue.clear()
        self.gift_aggregator.clear()

    @property
    def state(self) -> ConnectionState:
        return self.state_machine.state

    @staticmethod
    def _now(now: Optional[float]) -> float:
        return time.time() if now is None else now

    # Tick

    def tick(self, now: Optional[float] = None) -> List[AnyCanonicalEvent]:
        """
        Process one simulation frame.

        Returns:
            List[AnyCanonicalEvent]: Events delivered during this tick, in order
        """
        now = self._now(now)
        events: List[AnyCanonicalEvent] = []

        for message in self.queue.drain():
            try:
                for signal in self.normalizer.normalize(message.payload):
                    events.extend(self._apply(signal, now))
            except Exception as e:
                self.failed_messages += 1
                logger.warning(f"{self._tag} Skipped unprocessable message: {e}")
                logger.debug(f"{self._tag} Payload: {message.payload[:500]}")

        try:
            events.extend(self.gift_aggregator.flush(now))
        except Exception as e:
            logger.error(f"{self._tag} Gift flush failed: {e}")
        self.cooldown.sweep(now)
        events.extend(self.state_machine.tick(now))

        for event in events:
            self.dispatcher.dispatch(event)
        return events

    # Signal handling

    def _apply(self, signal: Signal, now: float) -> List[AnyCanonicalEvent]:
        if isinstance(signal, ChatSignal):
            return self._on_chat(signal, now)
        if isinstance(signal, GiftSignal):
            return self._on_gift(signal, now)
        if isinstance(signal, LikeSignal):
            return self._on_like(signal, now)
        if isinstance(signal, SubscribeSignal):
            return self._on_subscribe(signal.viewer, now)
        if isinstance(signal, BadgeSignal):
            self.registry.touch(signal.viewer.id, signal.viewer.name, signal.viewer.avatar_url)
            return self._detect_badges(signal.viewer, signal.badges, now)
        if isinstance(signal, FollowSignal):
            if self.followers.first_time(signal.viewer.id):
                return [FollowEvent(provider=self.provider, viewer=signal.viewer, timestamp=now)]
            return []
        if isinstance(signal, ShareSignal):
            if self.sharers.first_time(signal.viewer.id):
                return [ShareEvent(provider=self.provider, viewer=signal.viewer, timestamp=now)]
            return []
        if isinstance(signal, ConnectedSignal):
            return self._on_connected(now, signal.room_id)
        if isinstance(signal, StreamEndSignal):
            logger.info(f"{self._tag} Stream ended")
            events: List[AnyCanonicalEvent] = [
                StreamEndedEvent(provider=self.provider, timestamp=now)
            ]
            events.extend(
                self.state_machine.on_transport_lost(
                    DisconnectReason.TRANSIENT, "Stream ended", now
                )
            )
            return events
        if isinstance(signal, DisconnectedSignal):
            return self.state_machine.on_transport_lost(signal.reason, signal.message, now)
        if isinstance(signal, ErrorSignal):
            return self._on_error(signal.message, now)
        return []

    def _on_connected(self, now: float, room_id: str = "") -> List[AnyCanonicalEvent]:
        if not self.state_machine.on_connected(now):
            return []
        return [StreamConnectedEvent(provider=self.provider, timestamp=now, room_id=room_id)]

    def _on_activity(self, now: float) -> List[AnyCanonicalEvent]:
        if self.connect_on_activity and self.state_machine.state == ConnectionState.CONNECTING:
            return self._on_connected(now)
        return []

    def _on_error(self, message: str, now: float) -> List[AnyCanonicalEvent]:
        if self.state_machine.state == ConnectionState.CONNECTING:
            return self.state_machine.on_transport_lost(
                DisconnectReason.TRANSIENT, message, now
            )
        logger.warning(f"{self._tag} Provider error: {message}")
        return [ErrorEvent(provider=self.provider, timestamp=now, message=message)]

    def _detect_badges(
        self, viewer: Viewer, badges: ViewerBadges, now: float
    ) -> List[AnyCanonicalEvent]:
        events: List[AnyCanonicalEvent] = []
        if badges.fan_club_level is not None:
            self.registry.set_fan_club_level(viewer.id, badges.fan_club_level, viewer.name)
            if self.fan_club.first_time(viewer.id):
                logger.info(
                    f"{self._tag} Fan club member: {viewer.name} (Lv{badges.fan_club_level})"
                )
                events.append(
                    TeamMembershipEvent(
                        provider=self.provider,
                        viewer=viewer,
                        timestamp=now,
                        level=badges.fan_club_level,
                    )
                )
        if badges.is_subscriber:
            self.registry.set_subscriber(viewer.id, viewer.name)
            if self.subscribers.first_time(viewer.id):
                logger.info(f"{self._tag} Subscriber detected: {viewer.name}")
                events.append(SubscribeEvent(provider=self.provider, viewer=viewer, timestamp=now))
        return events

    def _on_subscribe(self, viewer: Viewer, now: float) -> List[AnyCanonicalEvent]:
        self.registry.set_subscriber(viewer.id, viewer.name)
        if not self.subscribers.first_time(viewer.id):
            return []
        logger.info(f"{self._tag} New subscriber: {viewer.name}")
        return [NewSubscriberEvent(provider=self.provider, viewer=viewer, timestamp=now)]

    def _on_chat(self, signal: ChatSignal, now: float) -> List[AnyCanonicalEvent]:
        viewer = signal.viewer
        events = self._on_activity(now)
        self.registry.touch(viewer.id, viewer.name, viewer.avatar_url)
        events.extend(self._detect_badges(viewer, signal.badges, now))
        events.append(
            ChatEvent(provider=self.provider, viewer=viewer, timestamp=now, text=signal.text)
        )

        try:
            self._run_commands(signal.text, viewer, now)
        except Exception as e:
            logger.error(f"{self._tag} Command handler failed for {viewer.name}: {e}")
        return events

    def _run_commands(self, text: str, viewer: Viewer, now: float) -> None:
        if self.commands.try_stance_command(text, viewer):
            self.total_commands += 1
        elif not self.cooldown.is_cooling_down(viewer.id, now):
            if self.commands.try_spawn_command(text, viewer):
                self.total_commands += 1
                self.cooldown.start(viewer.id, now)

    def _on_gift(self, signal: GiftSignal, now: float) -> List[AnyCanonicalEvent]:
        viewer = signal.viewer
        events = self._on_activity(now)
        self.registry.touch(viewer.id, viewer.name, viewer.avatar_url)
        events.extend(self._detect_badges(viewer, signal.badges, now))
        self.gift_aggregator.add(viewer, signal.value, signal.label, now, signal.display)
        return events

    def _on_like(self, signal: LikeSignal, now: float) -> List[AnyCanonicalEvent]:
        crossing = self.milestones.update(signal.total, signal.delta)
        if crossing is None:
            return []
        logger.info(
            f"{self._tag} Like milestone: {crossing.count} likes "
            f"({self.milestones.name_of(crossing.index)})"
        )
        return [
            LikeMilestoneEvent(
                provider=self.provider,
                timestamp=now,
                milestone_index=crossing.index,
                like_count=crossing.count,
            )
        ]

    # Introspection

    def set_ingestion_enabled(self, enabled: bool) -> None:
        """Pause or resume message intake where the transport supports it."""
        setter = getattr(self.transport, "set_ingestion_enabled", None)
        if setter is not None:
            setter(enabled)

    def get_status(self) -> Dict[str, Any]:
        status: Dict[str, Any] = dict(self.state_machine.get_status())
        status.update(
            {
                "provider": self.provider.value,
                "queue": self.queue.get_metrics(),
                "total_commands": self.total_commands,
                "failed_messages": self.failed_messages,
                "pending_gifts": self.gift_aggregator.pending_count(),
                "active_cooldowns": self.cooldown.active_count(),
                "like_diff": self.milestones.diff(),
                "like_milestone_index": self.milestones.highest_index,
                "likes_until_next": self.milestones.likes_until_next(),
                "viewers": len(self.registry),
            }
        )
        return status
