from __future__ import annotations
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from bake_planner.models import BakerConfig, PlanningDirection
from bake_planner.timeutils import parse_time_of_day


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BAKE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    data_dir: Path = Path.home() / ".bake_planner"
    log_level: str = "WARNING"
    default_anchor: str = "08:00"
    planning_direction: PlanningDirection = "backward"
    shift_step_minutes: int = 5
    default_recipe: BakerConfig = BakerConfig(fermentation_balance=85)

    @field_validator("default_anchor", mode="after")
    @classmethod
    def check_anchor(cls, v: str) -> str:
        parse_time_of_day(v)
        return v.strip()

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return level
