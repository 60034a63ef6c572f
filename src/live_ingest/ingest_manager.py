"""
Ingest manager for coordinating the provider pipelines.
"""

from __future__ import annotations

import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional

from loguru import logger

from .commands import ChatCommandHandler
from .config_manager import Config, TikTokConfig, YouTubeConfig
from .connection import ConnectionState, ConnectionStateMachine, ReconnectPolicy
from .cooldown import CooldownPolicy, CooldownThrottle
from .events import AnyCanonicalEvent, EventDispatcher, EventSink, Provider
from .gift_aggregator import GiftAggregator, amount_display, coin_display
from .message_queue import CrossThreadMessageQueue
from .milestones import MilestoneTracker
from .normalizers import PollingEventNormalizer, StreamingEventNormalizer
from .pipeline import ProviderPipeline
from .transport import (
    BackgroundLoop,
    BrokerProcess,
    LocalSettings,
    OAuthManager,
    PollingTransport,
    StreamingTransport,
)
from .transport.settings_store import TIKTOK_USERNAME_KEY, VIDEO_ID_KEY
from .viewer_registry import ViewerRegistry


def cooldown_policy_from_config(config) -> CooldownPolicy:
    return CooldownPolicy(
        base_seconds=config.base,
        subscriber_seconds=config.subscriber,
        fan_club_seconds=tuple(config.fan_club),
        fan_club_level_floors=tuple(config.fan_club_levels),
    )


class IngestManager:
    """
    Builds one pipeline per enabled provider, connects them, and ticks them
    from the simulation thread.
    """

    def __init__(
        self,
        config: Config,
        sinks: Optional[List[EventSink]] = None,
        commands: Optional[ChatCommandHandler] = None,
        settings: Optional[LocalSettings] = None,
        loop: Optional[BackgroundLoop] = None,
    ):
        """
        Args:
            config: Validated root configuration
            sinks: Consumers of canonical events
            commands: Game command parser shared by all providers
            settings: Durable key-value settings (defaults to ``config.settings_path``)
            loop: Network loop shared by all transports
        """
        self.config = config
        self.dispatcher = EventDispatcher(sinks)
        self.commands = commands
        self.settings = settings or LocalSettings(config.settings_path)
        self.loop = loop or BackgroundLoop()
        self.pipelines: Dict[Provider, ProviderPipeline] = {}
        self.oauth: Optional[OAuthManager] = None
        self.is_running = False

    def _state_machine(self, provider: Provider, transport) -> ConnectionStateMachine:
        return ConnectionStateMachine(
            provider=provider,
            transport=transport,
            policy=ReconnectPolicy.from_config(self.config.reconnect),
            connecting_timeout=self.config.reconnect.connecting_timeout,
        )

    def _queue(self, provider: Provider) -> CrossThreadMessageQueue:
        return CrossThreadMessageQueue(
            max_size=self.config.queue.max_size,
            drain_per_tick=self.config.queue.drain_per_tick,
            name=f"{provider.label} queue",
        )

    def create_tiktok_pipeline(self, tiktok_config: TikTokConfig) -> ProviderPipeline:
        provider = Provider.TIKTOK
        queue = self._queue(provider)
        broker_config = tiktok_config.broker
        transport = StreamingTransport(
            queue=queue,
            loop=self.loop,
            broker=BrokerProcess(
                command=broker_config.command,
                host=broker_config.host,
                port=broker_config.port,
                working_dir=broker_config.working_dir,
                startup_delay=broker_config.startup_delay,
            ),
            url=broker_config.url,
            connect_retries=broker_config.connect_retries,
            connect_retry_interval=broker_config.connect_retry_interval,
            reconnect_retries=broker_config.reconnect_retries,
        )
        registry = ViewerRegistry()
        return ProviderPipeline(
            provider=provider,
            transport=transport,
            queue=queue,
            normalizer=StreamingEventNormalizer(),
            state_machine=self._state_machine(provider, transport),
            dispatcher=self.dispatcher,
            gift_aggregator=GiftAggregator(
                provider,
                tiktok_config.gift_tiers,
                window_seconds=tiktok_config.gift_window,
                display_formatter=coin_display,
                tier_names=tiktok_config.gift_tier_names,
            ),
            cooldown=CooldownThrottle(
                cooldown_policy_from_config(tiktok_config.cooldown), classifier=registry
            ),
            milestones=MilestoneTracker(tiktok_config.like_milestones, relative_to_baseline=True),
            registry=registry,
            commands=self.commands,
            connect_on_activity=True,
        )

    def create_youtube_pipeline(self, youtube_config: YouTubeConfig) -> ProviderPipeline:
        provider = Provider.YOUTUBE
        queue = self._queue(provider)
        oauth_config = youtube_config.oauth
        self.oauth = OAuthManager(
            client_id=oauth_config.client_id,
            client_secret=oauth_config.client_secret,
            redirect_uri=oauth_config.redirect_uri,
            settings=self.settings,
            refresh_margin=oauth_config.refresh_margin,
            timeout=youtube_config.request_timeout,
        )
        transport = PollingTransport(
            queue=queue,
            loop=self.loop,
            oauth=self.oauth,
            api_base_url=youtube_config.api_base_url,
            poll_interval=youtube_config.poll_interval,
            like_poll_interval=youtube_config.like_poll_interval,
            request_timeout=youtube_config.request_timeout,
            max_consecutive_failures=youtube_config.max_consecutive_failures,
            skip_initial_backlog=youtube_config.skip_initial_backlog,
        )
        registry = ViewerRegistry()
        return ProviderPipeline(
            provider=provider,
            transport=transport,
            queue=queue,
            normalizer=PollingEventNormalizer(
                youtube_config.currency_rates, youtube_config.default_currency_rate
            ),
            state_machine=self._state_machine(provider, transport),
            dispatcher=self.dispatcher,
            gift_aggregator=GiftAggregator(
                provider,
                youtube_config.super_chat_tiers,
                window_seconds=youtube_config.gift_window,
                display_formatter=amount_display,
            ),
            cooldown=CooldownThrottle(
                cooldown_policy_from_config(youtube_config.cooldown), classifier=registry
            ),
            milestones=MilestoneTracker(
                youtube_config.like_milestones, relative_to_baseline=False
            ),
            registry=registry,
            commands=self.commands,
        )

    def initialize(self) -> bool:
        """
        Create the pipelines of every enabled provider.

        Returns:
            bool: True if at least one pipeline was created
        """
        logger.info("=" * 60)
        logger.info("[Ingest] Initializing live event ingestion")
        logger.info("=" * 60)

        if self.config.tiktok.enabled:
            self.pipelines[Provider.TIKTOK] = self.create_tiktok_pipeline(self.config.tiktok)
        else:
            logger.debug("[Ingest] TikTok ingestion is disabled")

        if self.config.youtube.enabled:
            self.pipelines[Provider.YOUTUBE] = self.create_youtube_pipeline(self.config.youtube)
        else:
            logger.debug("[Ingest] YouTube ingestion is disabled")

        if not self.pipelines:
            logger.warning("[Ingest] No provider is enabled")
            return False

        logger.info(
            f"[Ingest] Initialized {len(self.pipelines)} pipeline(s): "
            f"{[p.label for p in self.pipelines]}"
        )
        return True

    def credentials_for(self, provider: Provider) -> str:
        """Configured target, falling back to the last one used."""
        if provider == Provider.TIKTOK:
            return self.config.tiktok.username or self.settings.get(TIKTOK_USERNAME_KEY, "")
        return self.config.youtube.video_id or self.settings.get(VIDEO_ID_KEY, "")

    def connect(self, provider: Provider, credentials: Optional[str] = None) -> bool:
        pipeline = self.pipelines.get(provider)
        if pipeline is None:
            logger.error(f"[Ingest] {provider.label} is not enabled")
            return False

        credentials = credentials if credentials is not None else self.credentials_for(provider)
        self.loop.start()
        if not pipeline.connect(credentials):
            return False

        key = TIKTOK_USERNAME_KEY if provider == Provider.TIKTOK else VIDEO_ID_KEY
        self.settings.set(key, credentials.strip())
        return True

    def start(self) -> bool:
        """
        Connect every initialized pipeline.

        Returns:
            bool: True if at least one connect sequence started
        """
        if self.is_running:
            logger.warning("[Ingest] Manager is already running")
            return True
        if not self.pipelines:
            logger.error("[Ingest] No pipelines to start. Call initialize() first.")
            return False

        started = sum(1 for provider in self.pipelines if self.connect(provider))
        if started == 0:
            logger.error("[Ingest] Failed to start any pipeline")
            return False

        self.is_running = True
        logger.success(f"[Ingest] Started {started}/{len(self.pipelines)} pipeline(s)")
        return True

    def tick(self, now: Optional[float] = None) -> List[AnyCanonicalEvent]:
        """Run one frame of every pipeline. Call from the simulation thread."""
        now = time.time() if now is None else now
        events: List[AnyCanonicalEvent] = []
        for pipeline in self.pipelines.values():
            events.extend(pipeline.tick(now))
        return events

    def set_ingestion_enabled(self, enabled: bool) -> None:
        for pipeline in self.pipelines.values():
            pipeline.set_ingestion_enabled(enabled)

    def stop(self) -> None:
        """Disconnect every pipeline, stop the broker and the network loop."""
        logger.info("[Ingest] Stopping all pipelines...")
        for pipeline in self.pipelines.values():
            pipeline.disconnect()

        tiktok = self.pipelines.get(Provider.TIKTOK)
        if tiktok is not None and self.loop.is_running:
            try:
                self.loop.submit(tiktok.transport.shutdown()).result(timeout=5)
            except FutureTimeoutError:
                logger.warning("[Ingest] Broker shutdown timed out")

        self.loop.stop()
        self.is_running = False
        logger.info("[Ingest] All pipelines stopped")

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        return {
            provider.value: pipeline.get_status()
            for provider, pipeline in self.pipelines.items()
        }

    def is_any_connected(self) -> bool:
        return any(
            pipeline.state == ConnectionState.CONNECTED for pipeline in self.pipelines.values()
        )

    def __enter__(self) -> "IngestManager":
        self.initialize()
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
