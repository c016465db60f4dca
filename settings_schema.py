from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    default_session_length_min: int = Field(default=60, ge=20, le=180)
    set_duration_seconds: int = Field(default=45, gt=0)
    warmup_minutes: int = Field(default=5, ge=0)
    minutes_per_exercise: int = Field(default=8, gt=0)
    rate_limit: Optional[int] = Field(default=None, gt=0)
    rate_window: int = Field(default=60, gt=0)
    admin_api_key: Optional[str] = None


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
