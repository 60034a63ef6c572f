# config_manager/main.py
from typing import Optional

from pydantic import Field

from .base import ConfigModel
from .connection import QueueConfig, ReconnectConfig
from .tiktok import TikTokConfig
from .youtube import YouTubeConfig


class LoggingConfig(ConfigModel):
    """Log sink settings applied by the command line entry point."""

    level: str = Field("INFO", alias="level")
    file: Optional[str] = Field(None, alias="file")
    rotation: str = Field("10 MB", alias="rotation")
    retention: str = Field("7 days", alias="retention")


class Config(ConfigModel):
    """Root configuration loaded from conf.yaml."""

    queue: QueueConfig = Field(QueueConfig(), alias="queue")
    reconnect: ReconnectConfig = Field(ReconnectConfig(), alias="reconnect")
    tiktok: TikTokConfig = Field(TikTokConfig(), alias="tiktok")
    youtube: YouTubeConfig = Field(YouTubeConfig(), alias="youtube")
    settings_path: str = Field("cache/live_settings.json", alias="settings_path")
    tick_rate: float = Field(30.0, alias="tick_rate", gt=0)
    logging: LoggingConfig = Field(LoggingConfig(), alias="logging")

