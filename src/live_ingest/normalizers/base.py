"""Shared parsing entry point for provider normalizers."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..errors import PayloadError
from ..events import Provider
from ..transport.base import DISCONNECTED_EVENT, DisconnectReason
from .signals import DisconnectedSignal, Signal


class EventNormalizer(ABC):
    """
    Maps one raw provider payload to signals.

    Raises ``PayloadError`` only when the payload is not a JSON object at all;
    unknown tags and missing fields yield fewer signals, never an exception.
    """

    provider: Provider

    def normalize(self, raw: str) -> List[Signal]:
        data = self._load(raw)
        if data.get("event") == DISCONNECTED_EVENT:
            return [self._disconnected(data)]
        return self._normalize(data, raw)

    @abstractmethod
    def _normalize(self, data: Dict[str, Any], raw: str) -> List[Signal]:
        pass

    @staticmethod
    def _load(raw: str) -> Dict[str, Any]:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise PayloadError(f"Invalid JSON payload: {e}") from e
        if not isinstance(data, dict):
            raise PayloadError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def _disconnected(data: Dict[str, Any]) -> DisconnectedSignal:
        try:
            reason = DisconnectReason(data.get("reason") or DisconnectReason.TRANSIENT.value)
        except ValueError:
            reason = DisconnectReason.TRANSIENT
        return DisconnectedSignal(reason=reason, message=str(data.get("message") or ""))
