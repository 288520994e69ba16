"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import ProximityWeighting
from .services.slot_search import SearchPolicy


class SearchDefaults(BaseModel):
    """Default and maximum values for slot searches."""
    max_days_ahead: int = 7
    limit: int = 10
    slot_interval_minutes: int = 30
    max_days_ahead_ceiling: int = 31
    limit_ceiling: int = 100

    @field_validator(
        "max_days_ahead", "limit", "slot_interval_minutes", "max_days_ahead_ceiling", "limit_ceiling"
    )
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure every setting is positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @model_validator(mode="after")
    def validate_ceilings(self) -> "SearchDefaults":
        """Ensure the defaults themselves stay within the ceilings."""
        if self.max_days_ahead > self.max_days_ahead_ceiling:
            raise ValueError("max_days_ahead must not exceed max_days_ahead_ceiling")
        if self.limit > self.limit_ceiling:
            raise ValueError("limit must not exceed limit_ceiling")
        return self


class AlternativeDefaults(BaseModel):
    """Settings for nearby alternative suggestions."""
    max_alternatives: int = 5
    highlight_threshold: int = 1500
    highlight_count: int = 3
    prefer_same_time: bool = True
    prefer_same_day: bool = False

    @field_validator("max_alternatives", "highlight_count")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    def weighting(self) -> ProximityWeighting:
        return ProximityWeighting(
            prefer_same_time=self.prefer_same_time,
            prefer_same_day=self.prefer_same_day,
        )


class DataSourceConfig(BaseModel):
    """Where salon data is read from: a JSON snapshot or the backend API."""
    snapshot_path: Optional[Path] = None
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    timeout_seconds: float = 10.0

    @model_validator(mode="after")
    def validate_single_source(self) -> "DataSourceConfig":
        """Exactly one source may be configured (or none, to be chosen later)."""
        if self.snapshot_path is not None and self.api_url:
            raise ValueError("Configure either snapshot_path or api_url, not both")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Berlin"
    log_level: str = "WARNING"
    search: SearchDefaults = Field(default_factory=SearchDefaults)
    alternatives: AlternativeDefaults = Field(default_factory=AlternativeDefaults)
    source: DataSourceConfig = Field(default_factory=DataSourceConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Ensure the log level is a standard logging level name."""
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    def to_search_policy(self) -> SearchPolicy:
        """Translate the configuration into the service's search policy."""
        return SearchPolicy(
            timezone=self.timezone,
            default_slot_interval_minutes=self.search.slot_interval_minutes,
            max_days_ahead_ceiling=self.search.max_days_ahead_ceiling,
            limit_ceiling=self.search.limit_ceiling,
            max_alternatives=self.alternatives.max_alternatives,
            weighting=self.alternatives.weighting(),
            highlight_threshold=self.alternatives.highlight_threshold,
            highlight_count=self.alternatives.highlight_count,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative snapshot paths are resolved against the config file.
        snapshot = config.source.snapshot_path
        if snapshot is not None and not snapshot.is_absolute():
            config.source.snapshot_path = config_path.parent / snapshot

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
