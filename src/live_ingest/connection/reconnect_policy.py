"""Backoff schedule consulted by the connection state machine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Linear backoff with a ceiling and a hard attempt cap.

    Attempt ``n`` (1-based) waits ``min(base_delay * n, cap_delay)`` seconds.
    """

    base_delay: float = 5.0
    cap_delay: float = 30.0
    max_attempts: int = 50

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * max(attempt, 1), self.cap_delay)

    def exhausted(self, attempt: int) -> bool:
        """True once ``attempt`` is beyond the cap and no retry may be scheduled."""
        return attempt > self.max_attempts

    @classmethod
    def from_config(cls, config) -> "ReconnectPolicy":
        return cls(
            base_delay=config.base_delay,
            cap_delay=config.cap_delay,
            max_attempts=config.max_attempts,
        )
