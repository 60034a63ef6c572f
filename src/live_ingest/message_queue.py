"""
Cross-thread message queue.

The network thread pushes raw provider payloads, the simulation tick drains a
bounded number of them per frame. The queue never blocks the producer: when it
is full the oldest entry is discarded to make room for the new one.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger


DEFAULT_MAX_SIZE = 200
DEFAULT_DRAIN_PER_TICK = 20


@dataclass(frozen=True)
class RawMessage:
    """Opaque provider payload plus the time it was received."""

    payload: str
    received_at: float = field(default_factory=time.time)


class CrossThreadMessageQueue:
    """
    Bounded FIFO guarded by a short-held lock.

    Freshness is preferred over completeness: overflow drops the oldest
    messages, and a single drain call returns at most ``drain_per_tick`` items.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        drain_per_tick: int = DEFAULT_DRAIN_PER_TICK,
        name: str = "queue",
    ):
        """
        Args:
            max_size: Hard capacity; the queue never holds more than this
            drain_per_tick: Maximum number of messages returned by ``drain``
            name: Label used in log lines
        """
        if max_size <= 0 or drain_per_tick <= 0:
            raise ValueError("max_size and drain_per_tick must be positive")

        self.max_size = max_size
        self.drain_per_tick = drain_per_tick
        self.name = name
        self._lock = threading.Lock()
        self._items: deque[RawMessage] = deque()

        self._total_enqueued = 0
        self._total_dequeued = 0
        self._total_dropped = 0
        self._dropped_since_drain = 0

    def put(self, payload: str, received_at: Optional[float] = None) -> None:
        """
        Append a payload. Never blocks and never fails for lack of space.

        Args:
            payload: Raw text received from the transport
            received_at: Receipt timestamp (defaults to now)
        """
        message = RawMessage(
            payload=payload,
            received_at=received_at if received_at is not None else time.time(),
        )
        with self._lock:
            while len(self._items) >= self.max_size:
                self._items.popleft()
                self._total_dropped += 1
                self._dropped_since_drain += 1
            self._items.append(message)
            self._total_enqueued += 1

    def drain(self, limit: Optional[int] = None) -> List[RawMessage]:
        """
        Remove and return up to ``limit`` of the oldest messages.

        Args:
            limit: Per-call cap (defaults to ``drain_per_tick``)

        Returns:
            List[RawMessage]: Messages in FIFO order
        """
        limit = self.drain_per_tick if limit is None else limit
        with self._lock:
            dropped = self._dropped_since_drain
            self._dropped_since_drain = 0
            count = min(limit, len(self._items))
            batch = [self._items.popleft() for _ in range(count)]
            self._total_dequeued += count

        if dropped:
            logger.warning(f"[Ingest] {self.name} overflow: dropped {dropped} old messages")
        return batch

    def clear(self) -> int:
        """
        Discard everything currently queued.

        Returns:
            int: Number of messages removed
        """
        with self._lock:
            count = len(self._items)
            self._items.clear()
            self._dropped_since_drain = 0
            return count

    def qsize(self) -> int:
        with self._lock:
            return len(self._items)

    def empty(self) -> bool:
        return self.qsize() == 0

    def full(self) -> bool:
        return self.qsize() >= self.max_size

    def get_metrics(self) -> Dict[str, int]:
        """
        Returns:
            Dict[str, int]: Counters since creation plus the current size
        """
        with self._lock:
            return {
                "total_enqueued": self._total_enqueued,
                "total_dequeued": self._total_dequeued,
                "total_dropped": self._total_dropped,
                "current_size": len(self._items),
                "max_size": self.max_size,
            }
