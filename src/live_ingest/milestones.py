"""
Like milestone detection on a monotonically growing counter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


NO_MILESTONE = -1


@dataclass
class MilestoneState:
    baseline: Optional[int] = None
    current_total: int = 0
    highest_index: int = NO_MILESTONE


@dataclass(frozen=True)
class MilestoneCrossing:
    index: int
    threshold: int
    count: int


class MilestoneTracker:
    """
    Detects threshold crossings of ``total - baseline``.

    At most one crossing is reported per update, always the richest threshold
    reached; lower thresholds implied by it are never reported afterwards, and
    the recorded index never decreases within a session.
    """

    def __init__(
        self,
        thresholds: Sequence[int],
        relative_to_baseline: bool = True,
        names: Sequence[str] | None = None,
    ):
        """
        Args:
            thresholds: Ascending milestone thresholds
            relative_to_baseline: Measure from the first observed total
                (minus its delta) instead of from zero
            names: Optional display names, one per threshold
        """
        self.thresholds = list(thresholds)
        self.relative_to_baseline = relative_to_baseline
        self.names = list(names or [])
        self.state = MilestoneState()

    def update(self, total: int, delta: Optional[int] = None) -> Optional[MilestoneCrossing]:
        """
        Feed the latest counter value.

        Args:
            total: Current cumulative count
            delta: Increment carried by the same update, where the provider sends one

        Returns:
            Optional[MilestoneCrossing]: The newly crossed milestone, if any
        """
        if self.state.baseline is None:
            if self.relative_to_baseline:
                self.state.baseline = total - (delta or 0)
            else:
                self.state.baseline = 0
        self.state.current_total = total

        diff = total - self.state.baseline
        for index in range(len(self.thresholds) - 1, -1, -1):
            if diff >= self.thresholds[index]:
                if index > self.state.highest_index:
                    self.state.highest_index = index
                    return MilestoneCrossing(
                        index=index, threshold=self.thresholds[index], count=diff
                    )
                break
        return None

    @property
    def highest_index(self) -> int:
        return self.state.highest_index

    def diff(self) -> int:
        if self.state.baseline is None:
            return 0
        return self.state.current_total - self.state.baseline

    def likes_until_next(self) -> int:
        next_index = self.state.highest_index + 1
        if next_index >= len(self.thresholds):
            return 0
        return self.thresholds[next_index] - self.diff()

    def name_of(self, index: int) -> str:
        return self.names[index] if 0 <= index < len(self.names) else str(index)

    def reset(self) -> None:
        self.state = MilestoneState()
