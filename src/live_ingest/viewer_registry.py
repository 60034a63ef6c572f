"""
Viewer classification lookup and once-per-session detection sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Protocol, Set


class ViewerClassifier(Protocol):
    """Lookup consulted by the cooldown policy."""

    def is_subscriber(self, viewer_id: str) -> bool: ...

    def fan_club_level(self, viewer_id: str) -> int: ...


@dataclass
class ViewerRecord:
    viewer_id: str
    name: str
    avatar_url: str = ""
    is_subscriber: bool = False
    fan_club_level: int = 0


class ViewerRegistry:
    """
    In-memory viewer classification for one session.

    Created when a session starts and passed explicitly to the pipeline; badge
    detection writes into it, the cooldown throttle reads from it.
    """

    def __init__(self):
        self._records: Dict[str, ViewerRecord] = {}

    def _get_or_create(self, viewer_id: str, name: str = "") -> ViewerRecord:
        record = self._records.get(viewer_id)
        if record is None:
            record = ViewerRecord(viewer_id=viewer_id, name=name or viewer_id)
            self._records[viewer_id] = record
        elif name:
            record.name = name
        return record

    def touch(self, viewer_id: str, name: str, avatar_url: str = "") -> ViewerRecord:
        record = self._get_or_create(viewer_id, name)
        if avatar_url:
            record.avatar_url = avatar_url
        return record

    def set_subscriber(self, viewer_id: str, name: str = "") -> None:
        self._get_or_create(viewer_id, name).is_subscriber = True

    def set_fan_club_level(self, viewer_id: str, level: int, name: str = "") -> None:
        record = self._get_or_create(viewer_id, name)
        record.fan_club_level = max(level, 1)

    def is_subscriber(self, viewer_id: str) -> bool:
        record = self._records.get(viewer_id)
        return record is not None and record.is_subscriber

    def fan_club_level(self, viewer_id: str) -> int:
        record = self._records.get(viewer_id)
        return record.fan_club_level if record else 0

    def __len__(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        self._records.clear()


class DetectedSet:
    """Viewer ids already reported for one classification in this session."""

    def __init__(self, name: str):
        self.name = name
        self._ids: Set[str] = set()

    def first_time(self, viewer_id: str) -> bool:
        """Record ``viewer_id``; True only the first time it is seen."""
        if viewer_id in self._ids:
            return False
        self._ids.add(viewer_id)
        return True

    def __contains__(self, viewer_id: str) -> bool:
        return viewer_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()
