# config_manager/cooldown.py
from typing import List

from pydantic import Field, model_validator

from .base import ConfigModel


class CooldownConfig(ConfigModel):
    """Spawn-command cooldown durations in seconds."""

    base: float = Field(30.0, alias="base", gt=0)
    subscriber: float = Field(20.0, alias="subscriber", gt=0)
    fan_club: List[float] = Field([25.0, 25.0, 22.0, 20.0], alias="fan_club")
    fan_club_levels: List[int] = Field([1, 5, 10, 18], alias="fan_club_levels")

    @model_validator(mode="after")
    def check_ordering(cls, values):
        if values.subscriber > values.base:
            raise ValueError("subscriber cooldown must not exceed the base cooldown")
        for duration in values.fan_club:
            if not values.subscriber <= duration <= values.base:
                raise ValueError(
                    "fan_club cooldowns must lie between the subscriber and base cooldowns"
                )
        if values.fan_club and len(values.fan_club) != len(values.fan_club_levels):
            raise ValueError("fan_club and fan_club_levels must have the same length")
        if values.fan_club_levels != sorted(values.fan_club_levels):
            raise ValueError("fan_club_levels must be ascending")
        return values
