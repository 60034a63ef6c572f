# config_manager/tiktok.py
from typing import List, Optional

from pydantic import Field, field_validator

from .base import ConfigModel
from .cooldown import CooldownConfig


def _check_ascending(v: List[int]) -> List[int]:
    if not v:
        raise ValueError("Threshold list cannot be empty")
    if any(b <= a for a, b in zip(v, v[1:])):
        raise ValueError("Thresholds must be strictly ascending")
    return v


class BrokerConfig(ConfigModel):
    """Local broker process that relays the TikTok LIVE feed over a WebSocket."""

    host: str = Field("127.0.0.1", alias="host")
    port: int = Field(21213, alias="port", ge=1, le=65535)
    command: Optional[List[str]] = Field(None, alias="command")
    working_dir: Optional[str] = Field(None, alias="working_dir")
    startup_delay: float = Field(2.0, alias="startup_delay", ge=0)
    connect_retries: int = Field(5, alias="connect_retries", ge=1)
    connect_retry_interval: float = Field(1.0, alias="connect_retry_interval", ge=0)
    reconnect_retries: int = Field(3, alias="reconnect_retries", ge=1)

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"


class TikTokConfig(ConfigModel):
    """Configuration for TikTok LIVE ingestion."""

    enabled: bool = Field(False, alias="enabled")
    username: str = Field("", alias="username")
    broker: BrokerConfig = Field(BrokerConfig(), alias="broker")
    gift_window: float = Field(2.0, alias="gift_window", gt=0)
    gift_tiers: List[int] = Field([1, 10, 99, 500, 5000, 44999], alias="gift_tiers")
    gift_tier_names: List[str] = Field(
        ["エール", "ブルー", "グリーン", "ゴールド", "レジェンド", "ユニバ"],
        alias="gift_tier_names",
    )
    like_milestones: List[int] = Field([50, 200, 500, 1000, 3000], alias="like_milestones")
    cooldown: CooldownConfig = Field(CooldownConfig(), alias="cooldown")

    @field_validator("username")
    def strip_at(cls, v):
        return v.strip().lstrip("@")

    @field_validator("gift_tiers", "like_milestones")
    def check_ascending(cls, v):
        return _check_ascending(v)
