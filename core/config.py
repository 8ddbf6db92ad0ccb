"""Configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ValidationError


class SheetNames(BaseModel):
    """Names of the sheets backing each record type."""

    students: str = "Students"
    companies: str = "Companies"
    placements: str = "Placements"
    activities: str = "Activities"


class Department(BaseModel):
    """Single department catalogue entry."""

    code: str = Field(..., min_length=2, max_length=2)
    name: str


DEFAULT_DEPARTMENTS = [
    Department(code="CS", name="Computer Science"),
    Department(code="IT", name="Information Technology"),
    Department(code="EC", name="Electronics Engineering"),
    Department(code="ME", name="Mechanical Engineering"),
    Department(code="CE", name="Civil Engineering"),
]


class PortalConfig(BaseModel):
    """Sheet layout and catalogue configuration (config/portal.yaml)."""

    sheets: SheetNames = Field(default_factory=SheetNames)
    company_sheet_prefix: str = "Company_"
    initial_review_status: str = "Pending Review"
    departments: list[Department] = Field(
        default_factory=lambda: list(DEFAULT_DEPARTMENTS)
    )
    successful_placement_statuses: list[str] = Field(
        default_factory=lambda: ["Selected", "Offer Letter", "Joined"]
    )

    def company_sheet(self, company_id: str) -> str:
        """Target sheet that receives distributed rows for a company."""
        return f"{self.company_sheet_prefix}{company_id}"

    def department_lookup(self) -> dict[str, str]:
        """Map lowercased codes and names to the canonical department name."""
        lookup: dict[str, str] = {}
        for dept in self.departments:
            lookup[dept.code.lower()] = dept.name
            lookup[dept.name.lower()] = dept.name
        return lookup


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Google Sheets
    spreadsheet_id: str = ""
    sheets_api_key: str = ""
    sheets_access_token: str = ""
    sheets_base_url: str = "https://sheets.googleapis.com/v4/spreadsheets"

    # Cache
    cache_ttl_seconds: float = 300.0

    # Remote store discipline
    batch_size: int = 100
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    request_timeout_seconds: float = 30.0
    rate_limit_rps: float = 1.0

    # Distribution
    distribution_pacing_seconds: float = 0.2
    import_batch_pause_seconds: float = 0.1
    activity_log_limit: int = 50

    # Storage
    fallback_dir: str = "./data/fallback"

    # Runtime
    verbose: int = 0
    log_level: str = "INFO"

    @field_validator("verbose", mode="before")
    @classmethod
    def _coerce_verbose(cls, v: Any) -> int:
        if isinstance(v, bool):
            return 2 if v else 0
        if isinstance(v, str):
            low = v.strip().lower()
            try:
                return int(low)
            except ValueError:
                pass
            if low in ("true", "yes"):
                return 2
            return 0
        return int(v)

    @field_validator("batch_size")
    @classmethod
    def _bound_batch_size(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError("batch_size must be between 1 and 100")
        return v

    @field_validator("max_retries")
    @classmethod
    def _positive_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_retries must be at least 1")
        return v


def load_portal_config(path: Path) -> PortalConfig:
    """Load sheet and department configuration from a YAML file."""
    if not path.exists():
        return PortalConfig()

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        return PortalConfig(**data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {path.name}", errors=e.errors()) from e


def load_config(
    portal_path: Path | None = None,
    settings: Settings | None = None,
) -> tuple[Settings, PortalConfig]:
    """Load all configuration.

    Returns:
        Tuple of (Settings, PortalConfig)
    """
    settings = settings or Settings()
    portal_path = portal_path or Path("config/portal.yaml")
    portal = load_portal_config(portal_path)

    return settings, portal


def snapshot_config(settings: Settings, portal: PortalConfig) -> dict[str, Any]:
    """Create a serializable snapshot of the current configuration."""
    data = settings.model_dump(mode="json")
    # Redact credentials
    for key in ("sheets_api_key", "sheets_access_token"):
        if data.get(key):
            data[key] = "***"
    return {
        "settings": data,
        "portal": portal.model_dump(mode="json"),
    }
