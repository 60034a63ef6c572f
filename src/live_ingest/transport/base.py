"""
Transport adapter contract shared by the streaming and polling providers.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from enum import Enum
from typing import Optional

from loguru import logger

from ..message_queue import CrossThreadMessageQueue
from .background_loop import BackgroundLoop


DISCONNECTED_EVENT = "_disconnected"


class DisconnectReason(str, Enum):
    """Why a transport gave up on its current connection."""

    TRANSIENT = "transient"  # retried per the reconnect policy
    AUTH = "auth"  # credentials rejected after a refresh attempt
    QUOTA = "quota"  # provider quota or rate limit, never retried
    FATAL = "fatal"  # stream missing or ended, configuration unusable


def disconnected_marker(reason: DisconnectReason, message: str) -> str:
    """Serialized marker the tick thread interprets as transport loss."""
    return json.dumps(
        {"event": DISCONNECTED_EVENT, "reason": reason.value, "message": message},
        ensure_ascii=False,
    )


class TransportAdapter(ABC):
    """
    Owns the network side of one provider.

    ``connect`` and ``disconnect`` are called from the tick thread and return
    immediately; the actual I/O runs as a task on the shared background loop.
    Everything received is pushed into ``queue`` as text. Failures are pushed
    as a ``_disconnected`` marker instead of being raised.
    """

    def __init__(self, queue: CrossThreadMessageQueue, loop: BackgroundLoop, tag: str):
        self.queue = queue
        self.loop = loop
        self.tag = tag
        self._cancel: Optional[threading.Event] = None
        self._future: Optional[Future] = None

    @abstractmethod
    async def _run(self, credentials: str, reconnect: bool, cancel: threading.Event):
        """Connect, then produce messages until cancelled or the connection is lost."""
        pass

    def connect(self, credentials: str, reconnect: bool = False) -> None:
        """
        Start the connect sequence for ``credentials``.

        Args:
            credentials: Provider target (broker username or video id)
            reconnect: True when retrying after a loss
        """
        self.disconnect()
        cancel = threading.Event()
        self._cancel = cancel
        self.loop.start()
        self._future = self.loop.submit(self._guarded_run(credentials, reconnect, cancel))

    def disconnect(self) -> None:
        """Cancel the running connection task. Safe to call repeatedly."""
        if self._cancel is not None:
            self._cancel.set()
        if self._future is not None and not self._future.done():
            self._future.cancel()
        self._cancel = None
        self._future = None

    async def _guarded_run(
        self, credentials: str, reconnect: bool, cancel: threading.Event
    ) -> None:
        try:
            await self._run(credentials, reconnect, cancel)
        except Exception as e:
            logger.exception(f"{self.tag} Transport task crashed: {e}")
            self.report_disconnected(cancel, DisconnectReason.TRANSIENT, str(e))

    def report_disconnected(
        self, cancel: threading.Event, reason: DisconnectReason, message: str
    ) -> None:
        """Enqueue a loss marker unless this attempt was cancelled on purpose."""
        if cancel.is_set():
            return
        logger.warning(f"{self.tag} Transport lost ({reason.value}): {message}")
        self.queue.put(disconnected_marker(reason, message))
