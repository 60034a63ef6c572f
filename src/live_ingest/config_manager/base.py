# config_manager/base.py
from pydantic import BaseModel, ConfigDict


class ConfigModel(BaseModel):
    """Base for every configuration section. Fields may be set by name or alias."""

    model_config = ConfigDict(populate_by_name=True)
