# config_manager/connection.py
from pydantic import Field, model_validator

from .base import ConfigModel


class QueueConfig(ConfigModel):
    """Cross-thread message queue limits."""

    max_size: int = Field(200, alias="max_size", gt=0)
    drain_per_tick: int = Field(20, alias="drain_per_tick", gt=0)

    @model_validator(mode="after")
    def check_drain(cls, values):
        if values.drain_per_tick > values.max_size:
            raise ValueError("drain_per_tick cannot be larger than max_size")
        return values


class ReconnectConfig(ConfigModel):
    """Backoff schedule and attempt cap for the connection state machine."""

    base_delay: float = Field(5.0, alias="base_delay", gt=0)
    cap_delay: float = Field(30.0, alias="cap_delay", gt=0)
    max_attempts: int = Field(50, alias="max_attempts", ge=1)
    connecting_timeout: float = Field(30.0, alias="connecting_timeout", gt=0)

    @model_validator(mode="after")
    def check_delays(cls, values):
        if values.cap_delay < values.base_delay:
            raise ValueError("cap_delay must be greater than or equal to base_delay")
        return values
