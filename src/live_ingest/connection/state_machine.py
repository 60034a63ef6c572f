"""
Per-provider connection lifecycle.

The state machine lives on the tick thread. The network side never touches
it directly: transport loss arrives as a ``_disconnected`` marker through the
message queue and is fed in by the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from loguru import logger

from ..events import AnyCanonicalEvent, ErrorEvent, Provider
from ..transport.base import DisconnectReason, TransportAdapter
from .reconnect_policy import ReconnectPolicy


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass
class ConnectionSession:
    """Mutable lifecycle record, owned by one ConnectionStateMachine."""

    provider: Provider
    state: ConnectionState = ConnectionState.DISCONNECTED
    attempts: int = 0
    next_retry_at: Optional[float] = None
    connecting_since: Optional[float] = None
    last_error: str = ""
    credentials: str = ""
    terminal: bool = False


StateListener = Callable[[ConnectionState, ConnectionState], None]


class ConnectionStateMachine:
    """
    Drives Disconnected -> Connecting -> Connected and the reconnect loop.

    Retries and the connecting watchdog are evaluated in ``tick``; nothing here
    sleeps or spawns threads.
    """

    def __init__(
        self,
        provider: Provider,
        transport: TransportAdapter,
        policy: ReconnectPolicy | None = None,
        connecting_timeout: float = 30.0,
        on_state_change: StateListener | None = None,
    ):
        """
        Args:
            provider: Provider this session belongs to
            transport: Adapter whose connect sequence is started on each attempt
            policy: Backoff schedule and attempt cap
            connecting_timeout: Watchdog limit for the Connecting state
            on_state_change: Called with (old, new) on every transition
        """
        self.provider = provider
        self.transport = transport
        self.policy = policy or ReconnectPolicy()
        self.connecting_timeout = connecting_timeout
        self.on_state_change = on_state_change
        self.session = ConnectionSession(provider=provider)
        self._tag = f"[{provider.label}]"

    @property
    def state(self) -> ConnectionState:
        return self.session.state

    @property
    def is_connected(self) -> bool:
        return self.session.state == ConnectionState.CONNECTED

    def _transition(self, new_state: ConnectionState) -> None:
        old_state = self.session.state
        if old_state == new_state:
            return
        self.session.state = new_state
        logger.debug(f"{self._tag} State: {old_state.value} -> {new_state.value}")
        if self.on_state_change:
            try:
                self.on_state_change(old_state, new_state)
            except Exception as e:
                logger.error(f"{self._tag} State listener failed: {e}")

    def _start_attempt(self, now: float, reconnect: bool) -> None:
        self.session.connecting_since = now
        self.session.next_retry_at = None
        self._transition(ConnectionState.CONNECTING)
        self.transport.connect(self.session.credentials, reconnect=reconnect)

    def request_connect(self, credentials: str, now: float) -> bool:
        """
        Start a new session.

        Only valid from Disconnected. Empty credentials fail fast without any
        transition.

        Returns:
            bool: True if the connect sequence was started
        """
        if self.session.state != ConnectionState.DISCONNECTED:
            logger.warning(
                f"{self._tag} Connect ignored: already {self.session.state.value}"
            )
            return False

        credentials = (credentials or "").strip()
        if not credentials:
            self.session.last_error = "Credentials are empty"
            logger.error(f"{self._tag} Cannot connect: credentials are empty")
            return False

        self.session = ConnectionSession(provider=self.provider, credentials=credentials)
        logger.info(f"{self._tag} Connecting to {credentials}")
        self._start_attempt(now, reconnect=False)
        return True

    def disconnect(self) -> None:
        """Explicit user disconnect from any state. Resets the session."""
        old = self.session.state
        self.transport.disconnect()
        self._transition(ConnectionState.DISCONNECTED)
        self.session = ConnectionSession(provider=self.provider)
        if old != ConnectionState.DISCONNECTED:
            logger.info(f"{self._tag} Disconnected")

    def on_connected(self, now: float) -> bool:
        """
        Connection acknowledgement observed in the normalized stream.

        Returns:
            bool: True if this moved the session into Connected
        """
        if self.session.state not in (
            ConnectionState.CONNECTING,
            ConnectionState.RECONNECTING,
        ):
            return False
        self.session.attempts = 0
        self.session.last_error = ""
        self.session.connecting_since = None
        self.session.next_retry_at = None
        self._transition(ConnectionState.CONNECTED)
        logger.success(f"{self._tag} Connected to {self.session.credentials}")
        return True

    def on_transport_lost(
        self,
        reason: DisconnectReason,
        message: str,
        now: float,
    ) -> List[AnyCanonicalEvent]:
        """
        Handle a failure reported by the transport.

        Transient failures schedule a retry; auth, quota and fatal failures end
        the session.

        Returns:
            List[AnyCanonicalEvent]: Error events to deliver
        """
        if self.session.state not in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        ):
            logger.debug(
                f"{self._tag} Ignoring transport loss in state {self.session.state.value}"
            )
            return []

        self.session.last_error = message or reason.value
        if reason != DisconnectReason.TRANSIENT:
            return self._fail_terminal(self.session.last_error, now)
        return self._schedule_retry(now)

    def _schedule_retry(self, now: float) -> List[AnyCanonicalEvent]:
        self.session.attempts += 1
        attempt = self.session.attempts
        if self.policy.exhausted(attempt):
            return self._fail_terminal(
                f"Reconnect attempts exhausted ({self.policy.max_attempts}): "
                f"{self.session.last_error}",
                now,
            )

        delay = self.policy.delay_for(attempt)
        self.session.next_retry_at = now + delay
        self.session.connecting_since = None
        self._transition(ConnectionState.RECONNECTING)
        logger.warning(
            f"{self._tag} Connection lost ({self.session.last_error}); "
            f"retry {attempt}/{self.policy.max_attempts} in {delay:.0f}s"
        )
        return [
            ErrorEvent(
                provider=self.provider,
                timestamp=now,
                message=self.session.last_error,
                terminal=False,
            )
        ]

    def _fail_terminal(self, message: str, now: float) -> List[AnyCanonicalEvent]:
        self.transport.disconnect()
        self.session.last_error = message
        self.session.terminal = True
        self.session.next_retry_at = None
        self.session.connecting_since = None
        self._transition(ConnectionState.DISCONNECTED)
        logger.error(f"{self._tag} {message}")
        return [
            ErrorEvent(
                provider=self.provider, timestamp=now, message=message, terminal=True
            )
        ]

    def tick(self, now: float) -> List[AnyCanonicalEvent]:
        """
        Evaluate the connecting watchdog and due retries.

        Returns:
            List[AnyCanonicalEvent]: Error events produced by this tick
        """
        session = self.session

        if (
            session.state == ConnectionState.CONNECTING
            and session.connecting_since is not None
            and now - session.connecting_since >= self.connecting_timeout
        ):
            logger.warning(
                f"{self._tag} Connecting for {now - session.connecting_since:.0f}s, resetting"
            )
            self.transport.disconnect()
            session.last_error = "Connection attempt timed out"
            session.connecting_since = None
            self._transition(ConnectionState.DISCONNECTED)
            return self._schedule_retry(now)

        if (
            session.state == ConnectionState.RECONNECTING
            and session.next_retry_at is not None
            and now >= session.next_retry_at
        ):
            logger.info(
                f"{self._tag} Reconnecting (attempt {session.attempts}/{self.policy.max_attempts})"
            )
            self._start_attempt(now, reconnect=True)

        return []

    def get_status(self) -> dict:
        return {
            "state": self.session.state.value,
            "attempts": self.session.attempts,
            "next_retry_at": self.session.next_retry_at,
            "last_error": self.session.last_error,
            "terminal": self.session.terminal,
        }
