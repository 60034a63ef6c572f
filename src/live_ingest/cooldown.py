"""
Per-viewer rate limiting for spawn-triggering chat commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from loguru import logger

from .tiers import level_tier
from .viewer_registry import ViewerClassifier


@dataclass(frozen=True)
class CooldownPolicy:
    """
    Cooldown durations by viewer classification.

    Precedence: subscriber > fan club (by level tier) > base.
    """

    base_seconds: float = 30.0
    subscriber_seconds: float = 20.0
    fan_club_seconds: Sequence[float] = field(default=(25.0, 25.0, 22.0, 20.0))
    fan_club_level_floors: Sequence[int] = field(default=(1, 5, 10, 18))

    def duration_for(self, viewer_id: str, classifier: ViewerClassifier | None) -> float:
        if classifier is None:
            return self.base_seconds

        if classifier.is_subscriber(viewer_id):
            return self.subscriber_seconds

        level = classifier.fan_club_level(viewer_id)
        if level > 0 and self.fan_club_seconds:
            tier = level_tier(level, self.fan_club_level_floors)
            tier = min(tier, len(self.fan_club_seconds) - 1)
            return self.fan_club_seconds[tier]

        return self.base_seconds


@dataclass
class ViewerCooldownEntry:
    viewer_id: str
    expires_at: float


class CooldownThrottle:
    """
    Cooldown map keyed by viewer id. Tick-thread only.
    """

    def __init__(
        self,
        policy: CooldownPolicy | None = None,
        classifier: ViewerClassifier | None = None,
        sweep_interval: float = 1.0,
    ):
        """
        Args:
            policy: Durations per classification
            classifier: Viewer classification lookup
            sweep_interval: Minimum time between expired-entry sweeps
        """
        self.policy = policy or CooldownPolicy()
        self.classifier = classifier
        self.sweep_interval = sweep_interval
        self._entries: Dict[str, ViewerCooldownEntry] = {}
        self._last_sweep: float | None = None

    def is_cooling_down(self, viewer_id: str, now: float) -> bool:
        """True while a previous spawn command from this viewer is still cooling down."""
        entry = self._entries.get(viewer_id)
        return entry is not None and entry.expires_at > now

    def start(self, viewer_id: str, now: float) -> float:
        """
        Start the cooldown after a successful spawn command.

        Returns:
            float: Expiry timestamp
        """
        duration = self.policy.duration_for(viewer_id, self.classifier)
        expires_at = now + duration
        self._entries[viewer_id] = ViewerCooldownEntry(viewer_id, expires_at)
        return expires_at

    def remaining(self, viewer_id: str, now: float) -> float:
        entry = self._entries.get(viewer_id)
        if entry is None:
            return 0.0
        return max(0.0, entry.expires_at - now)

    def sweep(self, now: float, force: bool = False) -> List[str]:
        """
        Remove expired entries.

        Returns:
            List[str]: Viewer ids whose entries were removed
        """
        if (
            not force
            and self._last_sweep is not None
            and now - self._last_sweep < self.sweep_interval
        ):
            return []
        self._last_sweep = now

        expired = [vid for vid, e in self._entries.items() if e.expires_at <= now]
        for vid in expired:
            del self._entries[vid]
        if expired:
            logger.debug(f"[Ingest] Cleared {len(expired)} expired cooldown(s)")
        return expired

    def active_count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._last_sweep = None
