"""Configuration management for SeatFinder."""

import os
import sys
from pathlib import Path
from typing import Literal, Optional, Tuple

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator

from .error_handling import InvalidConfiguration, RetryPolicy
from .index import SEARCHABLE_KEYS, MatchOptions
from .sources import CsvSource, GoogleSheetSource, RowSource


class MatcherConfig(BaseModel):
    # Ranges are checked when the index is built, not here.
    threshold: float = 0.4
    distance: int = 100
    location: int = 0
    ignore_location: bool = False
    min_match_char_length: int = 1
    find_all_matches: bool = False
    include_matches: bool = False
    is_case_sensitive: bool = False
    keys: Tuple[str, ...] = SEARCHABLE_KEYS
    joint_match: bool = True

    def to_options(self) -> MatchOptions:
        return MatchOptions(**self.model_dump())


class SourceConfig(BaseModel):
    kind: Literal["google_sheet", "csv"] = "google_sheet"
    sheet_id: Optional[str] = None
    sheet_name: str = "Sheet1"
    csv_path: Optional[Path] = None
    timeout: float = 10.0
    max_retries: int = 2

    @field_validator("csv_path")
    @classmethod
    def expand_csv_path(cls, v: Optional[Path]) -> Optional[Path]:
        if v is None:
            return v
        return Path(v).expanduser()

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def check_location(self) -> "SourceConfig":
        if self.kind == "csv" and self.csv_path is None:
            raise ValueError("csv_path is required for csv sources")
        return self

    def create_source(self) -> RowSource:
        """Instantiate the row source this config describes."""
        if self.kind == "csv":
            return CsvSource(self.csv_path)
        if not self.sheet_id:
            raise ValueError("sheet_id is required for google_sheet sources")
        return GoogleSheetSource(
            self.sheet_id,
            sheet_name=self.sheet_name,
            timeout=self.timeout,
            retry=RetryPolicy(max_retries=self.max_retries),
        )


class Config(BaseModel):
    """Main configuration for SeatFinder."""

    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML, falling back to defaults."""
        data = {}

        if config_path is None:
            candidates = [
                Path("seatfinder.yaml"),
                Path.home() / ".config" / "seatfinder" / "config.yaml",
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break

        if config_path is not None:
            logger.info(f"Loading config from: {config_path}")
            try:
                with open(config_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise InvalidConfiguration(f"Cannot parse {config_path}: {e}") from e

            if not isinstance(data, dict):
                raise InvalidConfiguration(
                    f"{config_path} must contain a mapping, got {type(data).__name__}"
                )
        else:
            logger.debug("No config file found, using defaults")

        config = cls(**data)
        return config.with_env_overrides()

    def with_env_overrides(self) -> "Config":
        """Apply SEATFINDER_* environment variables on top of this config."""
        sheet_id = os.environ.get("SEATFINDER_SHEET_ID")
        log_level = os.environ.get("SEATFINDER_LOG_LEVEL")

        update = {}
        if sheet_id:
            update["source"] = self.source.model_copy(update={"sheet_id": sheet_id})
        if log_level:
            update["log_level"] = log_level.upper()

        return self.model_copy(update=update) if update else self

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)


def configure_logging(level: str = "WARNING") -> None:
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level,
    )
