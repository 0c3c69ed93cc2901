"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import WorkingDayPolicy
from .domain.working_days import DEFAULT_TIMEZONE


class SupabaseConfig(BaseModel):
    """Hosted data store project."""
    url: str
    key: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """Ensure the project URL is absolute."""
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Supabase url must start with http:// or https://, got {value!r}")
        return value.rstrip("/")


class WorkingDaysConfig(BaseModel):
    """Weekend rules for working-day calendars."""
    include_sunday: bool = False
    exclude_saturday: bool = False

    def to_policy(self) -> WorkingDayPolicy:
        return WorkingDayPolicy(
            include_sunday=self.include_sunday,
            exclude_saturday=self.exclude_saturday,
        )


class QueryConfig(BaseModel):
    """Paging limits for remote queries."""
    page_size: int = 10000  # rows per contiguous date range
    list_limit: int = 1000  # rows per listing page

    @field_validator("page_size", "list_limit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("page sizes must be greater than zero")
        return value


class ReportConfig(BaseModel):
    output_dir: Path = Path("reports")


class AppConfig(BaseModel):
    """Application configuration."""
    supabase: SupabaseConfig
    agent_portal: Optional[SupabaseConfig] = None
    timezone: str = DEFAULT_TIMEZONE
    working_days: WorkingDaysConfig = Field(default_factory=WorkingDaysConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    reports: ReportConfig = Field(default_factory=ReportConfig)
    user_email: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the business timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def policy(self) -> WorkingDayPolicy:
        return self.working_days.to_policy()

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        ``SUPABASE_URL`` and ``SUPABASE_KEY`` fill in the project settings
        when the file leaves them out.

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

        supabase = data.setdefault("supabase", {}) or {}
        if not isinstance(supabase, dict):
            raise ValueError("The supabase section must be a mapping.")
        data["supabase"] = supabase
        for key, env_var in (("url", "SUPABASE_URL"), ("key", "SUPABASE_KEY")):
            if not supabase.get(key) and os.environ.get(env_var):
                supabase[key] = os.environ[env_var]

        return cls(**data)


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
