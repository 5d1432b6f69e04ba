"""Configuration management for the RBP reporters."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


REPORTER_TYPES = ("steps", "specs")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "text")


class Settings(BaseSettings):
    """Reporter settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="RBP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Reporter selection
    reporter_type: str = Field(
        default="specs", description="Reporter variant (steps or specs)"
    )
    project_name: Optional[str] = Field(
        default=None,
        description="Project/browser name used when the runner does not provide one",
    )

    # Paths
    test_dir: Path = Field(
        default=Path("tests"), description="Root test directory used for grouping keys"
    )
    steps_report_dir: Path = Field(
        default=Path("steps-report"), description="Output folder of the steps report"
    )
    specs_report_dir: Path = Field(
        default=Path("specs-report"), description="Output folder of the specs report"
    )

    # Shared state
    persist_state: bool = Field(
        default=False,
        description="Persist the run summary between reporter instantiations",
    )
    state_file: Path = Field(
        default=Path(".rbp-reporter-state.json"),
        description="JSON file holding the shared reporter state",
    )
    run_id: Optional[str] = Field(
        default=None,
        description="Identifier of the current run; state of other runs is ignored",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )

    @field_validator("reporter_type")
    def validate_reporter_type(cls, v: str) -> str:
        """Validate reporter type."""
        value = v.strip().lower()
        if value not in REPORTER_TYPES:
            raise ValueError(
                f"Invalid reporter type: {v}. Allowed values: {list(REPORTER_TYPES)}"
            )
        return value

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("log_format")
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"Invalid log format: {v}. Allowed values: {list(LOG_FORMATS)}")
        return fmt

    def report_dir_for(self, reporter_type: Optional[str] = None) -> Path:
        """Return the output folder for the given (or configured) reporter type."""
        kind = (reporter_type or self.reporter_type).lower()
        if kind == "steps":
            return self.steps_report_dir
        return self.specs_report_dir


@lru_cache()
def get_settings() -> Settings:
    """Settings of this process, read once. A .env file in the working directory is loaded first."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    return Settings()
