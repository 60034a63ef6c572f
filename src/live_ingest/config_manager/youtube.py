# config_manager/youtube.py
from typing import Dict, List

from pydantic import Field, field_validator

from .base import ConfigModel
from .cooldown import CooldownConfig
from .tiktok import _check_ascending


DEFAULT_CURRENCY_RATES: Dict[str, float] = {
    "JPY": 1.0,
    "USD": 150.0,
    "EUR": 165.0,
    "GBP": 190.0,
    "KRW": 0.11,
    "TWD": 4.7,
    "HKD": 19.0,
    "CAD": 110.0,
    "AUD": 100.0,
}


class OAuthConfig(ConfigModel):
    """OAuth2 client registered in the Google Cloud console."""

    client_id: str = Field("", alias="client_id")
    client_secret: str = Field("", alias="client_secret")
    redirect_host: str = Field("localhost", alias="redirect_host")
    redirect_port: int = Field(8585, alias="redirect_port", ge=1, le=65535)
    redirect_path: str = Field("/oauth/callback", alias="redirect_path")
    refresh_margin: float = Field(60.0, alias="refresh_margin", ge=0)
    authorize_timeout: float = Field(300.0, alias="authorize_timeout", gt=0)

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.redirect_host}:{self.redirect_port}{self.redirect_path}"

    @field_validator("redirect_path")
    def check_path(cls, v):
        if not v.startswith("/"):
            raise ValueError("redirect_path must start with '/'")
        return v


class YouTubeConfig(ConfigModel):
    """Configuration for YouTube Live Chat ingestion through the Data API v3."""

    enabled: bool = Field(False, alias="enabled")
    video_id: str = Field("", alias="video_id")
    oauth: OAuthConfig = Field(OAuthConfig(), alias="oauth")
    api_base_url: str = Field("https://www.googleapis.com/youtube/v3", alias="api_base_url")
    poll_interval: float = Field(12.0, alias="poll_interval", gt=0)
    like_poll_interval: float = Field(30.0, alias="like_poll_interval", gt=0)
    request_timeout: float = Field(10.0, alias="request_timeout", gt=0)
    max_consecutive_failures: int = Field(3, alias="max_consecutive_failures", ge=1)
    skip_initial_backlog: bool = Field(True, alias="skip_initial_backlog")
    gift_window: float = Field(2.0, alias="gift_window", gt=0)
    super_chat_tiers: List[int] = Field(
        [200, 500, 1000, 5000, 10000], alias="super_chat_tiers"
    )
    currency_rates: Dict[str, float] = Field(
        dict(DEFAULT_CURRENCY_RATES), alias="currency_rates"
    )
    default_currency_rate: float = Field(150.0, alias="default_currency_rate", gt=0)
    like_milestones: List[int] = Field(
        [50, 100, 200, 500, 1000], alias="like_milestones"
    )
    cooldown: CooldownConfig = Field(
        CooldownConfig(subscriber=15.0), alias="cooldown"
    )

    @field_validator("video_id")
    def strip_video_id(cls, v):
        return v.strip()

    @field_validator("currency_rates")
    def upper_currency_codes(cls, v):
        return {code.upper(): rate for code, rate in v.items()}

    @field_validator("super_chat_tiers", "like_milestones")
    def check_ascending(cls, v):
        return _check_ascending(v)
