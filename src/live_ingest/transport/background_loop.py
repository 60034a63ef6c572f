"""
Asyncio event loop running on a daemon thread.

Transports schedule their coroutines here from the tick thread; the tick
thread itself never awaits anything.
"""

import asyncio
import threading
from concurrent.futures import Future
from typing import Coroutine, Optional

from loguru import logger


class BackgroundLoop:
    def __init__(self, name: str = "live-ingest-network"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread if it is not running yet."""
        with self._lock:
            if self.is_running:
                return
            self._ready.clear()
            self._thread = threading.Thread(
                target=self._run_event_loop, name=self.name, daemon=True
            )
            self._thread.start()
        self._ready.wait(timeout=5)
        logger.debug(f"[Ingest] Network loop started ({self.name})")

    def _run_event_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
            self._loop = None

    def submit(self, coro: Coroutine) -> Future:
        """Schedule ``coro`` on the loop. Returns a thread-safe future."""
        if self._loop is None:
            coro.close()
            raise RuntimeError("Network loop is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel every task, stop the loop and join the thread."""
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is None or thread is None:
                return
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("[Ingest] Network loop thread did not stop cleanly")
            self._thread = None
        logger.debug(f"[Ingest] Network loop stopped ({self.name})")
