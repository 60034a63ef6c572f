# config_manager/__init__.py
from .base import ConfigModel
from .connection import QueueConfig, ReconnectConfig
from .cooldown import CooldownConfig
from .main import Config, LoggingConfig
from .tiktok import BrokerConfig, TikTokConfig
from .youtube import DEFAULT_CURRENCY_RATES, OAuthConfig, YouTubeConfig
from .utils import (
    read_yaml,
    validate_config,
    load_config,
    load_text_file_with_guess_encoding,
)

__all__ = [
    "ConfigModel",
    "Config",
    "LoggingConfig",
    "QueueConfig",
    "ReconnectConfig",
    "CooldownConfig",
    "BrokerConfig",
    "TikTokConfig",
    "OAuthConfig",
    "YouTubeConfig",
    "DEFAULT_CURRENCY_RATES",
    "read_yaml",
    "validate_config",
    "load_config",
    "load_text_file_with_guess_encoding",
]
