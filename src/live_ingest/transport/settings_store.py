"""
Durable key-value settings.

Only two things survive a restart: the OAuth refresh token and the last used
channel identifiers.
"""

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger


REFRESH_TOKEN_KEY = "youtube_refresh_token"
VIDEO_ID_KEY = "youtube_video_id"
TIKTOK_USERNAME_KEY = "tiktok_username"


class LocalSettings:
    """JSON file store. Writes go through a temp file and a rename."""

    def __init__(self, path: str = "cache/live_settings.json"):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug(f"[Settings] No settings file at {self.path}")
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[Settings] Error loading {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"[Settings] Ignoring malformed settings file {self.path}")
            return {}
        return data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)
        logger.debug(f"[Settings] Saved to {self.path}")

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if self._data.get(key) == value:
                return
            self._data[key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._save()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data
