"""
Gift batching.

Rapid repeated gifts from the same viewer are coalesced into a single pending
aggregate and delivered as one GiftEvent once the viewer has been idle for the
aggregation window.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from loguru import logger

from .events import GiftEvent, Provider, Viewer
from .tiers import classify_tier


DEFAULT_WINDOW_SECONDS = 2.0


@dataclass
class PendingGiftAggregate:
    """Running total for one viewer's current gift burst."""

    viewer: Viewer
    total_value: int
    last_label: str
    last_update: float
    gift_count: int = 1
    first_display: str = ""


DisplayFormatter = Callable[[PendingGiftAggregate], str]


def coin_display(pending: PendingGiftAggregate) -> str:
    """``"Rose (30 coins)"``"""
    return f"{pending.last_label} ({pending.total_value} coins)"


def amount_display(pending: PendingGiftAggregate) -> str:
    """Provider amount string for a single gift, converted total otherwise."""
    if pending.gift_count == 1 and pending.first_display:
        return pending.first_display
    return f"{pending.last_label} x{pending.gift_count} (¥{pending.total_value})"


class GiftAggregator:
    """
    Per-viewer gift accumulator.

    Only the tick thread touches this object.
    """

    def __init__(
        self,
        provider: Provider,
        tier_thresholds: Sequence[int],
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        display_formatter: DisplayFormatter = coin_display,
        tier_names: Sequence[str] | None = None,
    ):
        """
        Args:
            provider: Provider stamped on emitted events
            tier_thresholds: Ascending minimum totals per tier
            window_seconds: Idle time after which a burst is flushed
            display_formatter: Builds the display string on flush
            tier_names: Optional names used in log lines
        """
        self.provider = provider
        self.tier_thresholds = list(tier_thresholds)
        self.window_seconds = window_seconds
        self.display_formatter = display_formatter
        self.tier_names = list(tier_names or [])
        self._pending: Dict[str, PendingGiftAggregate] = {}

    def add(
        self,
        viewer: Viewer,
        value: int,
        label: str,
        now: float,
        display: str = "",
    ) -> PendingGiftAggregate:
        """
        Record one gift.

        Args:
            viewer: Gifting viewer (display name overwrites the stored one)
            value: Value of this gift in the provider's unit
            label: Gift display label
            now: Arrival time
            display: Provider-supplied display string for this gift, if any

        Returns:
            PendingGiftAggregate: The updated aggregate
        """
        pending = self._pending.get(viewer.id)
        if pending is None:
            pending = PendingGiftAggregate(
                viewer=viewer,
                total_value=value,
                last_label=label,
                last_update=now,
                first_display=display,
            )
            self._pending[viewer.id] = pending
        else:
            pending.total_value += value
            pending.gift_count += 1
            pending.last_label = label
            pending.last_update = now
            pending.viewer = viewer

        logger.debug(
            f"[{self.provider.label}] Gift queued: {viewer.name} +{value} "
            f"(pending: {pending.total_value})"
        )
        return pending

    def flush(self, now: float) -> List[GiftEvent]:
        """
        Emit and remove every aggregate idle for at least the window.

        Args:
            now: Current time

        Returns:
            List[GiftEvent]: One event per flushed viewer
        """
        if not self._pending:
            return []

        ready = [
            key
            for key, pending in self._pending.items()
            if now - pending.last_update >= self.window_seconds
        ]

        events = []
        for key in ready:
            pending = self._pending.pop(key)
            tier = classify_tier(pending.total_value, self.tier_thresholds)
            display_text = self.display_formatter(pending)
            events.append(
                GiftEvent(
                    provider=self.provider,
                    viewer=pending.viewer,
                    timestamp=pending.last_update,
                    tier=tier,
                    total_value=pending.total_value,
                    display_text=display_text,
                    label=pending.last_label,
                    gift_count=pending.gift_count,
                )
            )
            tier_name = self.tier_names[tier] if tier < len(self.tier_names) else tier
            logger.info(
                f"[{self.provider.label}] Gift flushed: {pending.viewer.name} -> "
                f"{display_text} (tier {tier}: {tier_name})"
            )
        return events

    def clear(self) -> None:
        self._pending.clear()

    def pending_count(self) -> int:
        return len(self._pending)

    def pending_for(self, viewer_id: str) -> PendingGiftAggregate | None:
        return self._pending.get(viewer_id)
