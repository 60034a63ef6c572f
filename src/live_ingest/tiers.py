"""Threshold-table classification helpers."""

from typing import Sequence


def classify_tier(value: int, thresholds: Sequence[int]) -> int:
    """
    Return the index of the richest threshold that ``value`` reaches.

    The table is scanned from the highest threshold downward and the first
    match wins. Values below every threshold fall into tier 0.

    Args:
        value: Cumulative value to classify
        thresholds: Ascending minimum values, one per tier

    Returns:
        int: Tier index
    """
    for index in range(len(thresholds) - 1, -1, -1):
        if value >= thresholds[index]:
            return index
    return 0


def level_tier(level: int, level_floors: Sequence[int]) -> int:
    """
    Map a fan-club level to its tier using ascending level floors.

    With floors ``[1, 5, 10, 18]``: Lv1-4 -> 0, Lv5-9 -> 1, Lv10-17 -> 2, Lv18+ -> 3.
    """
    return classify_tier(level, level_floors)
