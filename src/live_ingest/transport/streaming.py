"""
Streaming transport: persistent WebSocket to the local broker.
"""

from __future__ import annotations

import asyncio
import json
import threading
from typing import Awaitable, Callable, Optional

from loguru import logger
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..errors import BrokerError, TransportError
from ..message_queue import CrossThreadMessageQueue
from .background_loop import BackgroundLoop
from .base import DisconnectReason, TransportAdapter
from .broker import BrokerProcess
from .frames import FrameAssembler


Connector = Callable[[str], Awaitable[ClientConnection]]


class StreamingTransport(TransportAdapter):
    """
    Connects to the broker, sends one ``connect`` command naming the target
    account and pushes every complete message into the queue.

    A fresh connect makes sure the broker runs and retries the socket
    ``connect_retries`` times. A reconnect tries ``reconnect_retries`` times,
    relaunches the broker, then tries as many times again.
    """

    def __init__(
        self,
        queue: CrossThreadMessageQueue,
        loop: BackgroundLoop,
        broker: BrokerProcess,
        url: str,
        connect_retries: int = 5,
        connect_retry_interval: float = 1.0,
        reconnect_retries: int = 3,
        open_timeout: float = 5.0,
        connector: Optional[Connector] = None,
    ):
        super().__init__(queue, loop, tag="[TikTok]")
        self.broker = broker
        self.url = url
        self.connect_retries = connect_retries
        self.connect_retry_interval = connect_retry_interval
        self.reconnect_retries = reconnect_retries
        self.open_timeout = open_timeout
        self._connector = connector or self._default_connector

    def _default_connector(self, url: str):
        return connect(url, open_timeout=self.open_timeout, max_size=None)

    async def _try_open(
        self, attempts: int, cancel: threading.Event
    ) -> Optional[ClientConnection]:
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            if cancel.is_set():
                return None
            try:
                return await self._connector(self.url)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                last_error = e
                logger.debug(
                    f"{self.tag} Connect attempt {attempt}/{attempts} to {self.url} failed: {e}"
                )
                if attempt < attempts:
                    await asyncio.sleep(self.connect_retry_interval)
        raise TransportError(f"Could not reach broker at {self.url}: {last_error}")

    async def open_connection(
        self, reconnect: bool, cancel: threading.Event
    ) -> Optional[ClientConnection]:
        """
        Open the socket, supervising the broker along the way.

        Raises:
            TransportError: When every attempt failed
            BrokerError: When the broker cannot be launched
        """
        if not reconnect:
            await self.broker.ensure_running()
            return await self._try_open(self.connect_retries, cancel)

        try:
            return await self._try_open(self.reconnect_retries, cancel)
        except TransportError:
            if self.broker.command is None:
                raise
            logger.warning(f"{self.tag} Broker not responding, relaunching")
            await self.broker.restart()
            return await self._try_open(self.reconnect_retries, cancel)

    async def _run(self, credentials: str, reconnect: bool, cancel: threading.Event):
        try:
            ws = await self.open_connection(reconnect, cancel)
        except (TransportError, BrokerError) as e:
            self.report_disconnected(cancel, DisconnectReason.TRANSIENT, str(e))
            return
        if ws is None:
            return

        try:
            await ws.send(json.dumps({"command": "connect", "username": credentials}))
            logger.info(f"{self.tag} Sent connect command for @{credentials}")
            await self._read_loop(ws, cancel)
            self.report_disconnected(
                cancel, DisconnectReason.TRANSIENT, "Broker closed the connection"
            )
        except ConnectionClosed as e:
            self.report_disconnected(
                cancel, DisconnectReason.TRANSIENT, f"Connection closed: {e}"
            )
        finally:
            await ws.close()

    async def _read_loop(self, ws: ClientConnection, cancel: threading.Event) -> None:
        assembler = FrameAssembler()
        while not cancel.is_set():
            async for fragment in ws.recv_streaming():
                assembler.feed(fragment)
            message = assembler.finish()
            if message is None:
                logger.warning(f"{self.tag} Dropped oversized message")
            elif message:
                self.queue.put(message)

    async def shutdown(self) -> None:
        """Stop the broker launched by this transport."""
        await self.broker.terminate()
