from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from config import YamlConfig


class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    default_body_weight: float = Field(80.0, gt=0)
    weight_unit: Literal["kg", "lb"] = "kg"
    log_format: Literal["text", "json"] = "text"
    log_level: str = "INFO"
    rescan_near_max_on_max_change: bool = True
    max_write_retries: int = Field(3, ge=0)
    catalog_match_cutoff: float = Field(0.85, ge=0.0, le=1.0)


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(path: str | None = None) -> SettingsSchema:
    """Read the YAML settings file and return validated settings."""
    data = YamlConfig(path).load()
    validate_settings(data)
    return SettingsSchema(**data)
