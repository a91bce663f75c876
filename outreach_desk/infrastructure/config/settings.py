"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclass for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To add a messaging backend: add its credentials to WhatsAppSettings
- To persist somewhere else: add a backend name to StoreSettings
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class WhatsAppSettings:
    """WhatsApp provider and pacing settings."""

    # "selenium" (WhatsApp Web automation) or "cloud_api" (Meta Cloud API)
    provider: str = field(default_factory=lambda: os.getenv("WHATSAPP_PROVIDER", "selenium"))

    # SAFETY: fixed pause between consecutive sends in a bulk run
    send_delay_seconds: float = field(
        default_factory=lambda: _env_float("WHATSAPP_SEND_DELAY", 2.0)
    )

    # Browser settings
    headless: bool = False  # MUST be False for QR code scanning
    profile_dir: Path = field(
        default_factory=lambda: Path(os.getenv("WHATSAPP_PROFILE_DIR", "whatsapp_profile"))
    )
    login_timeout: int = 30
    connect_on_startup: bool = field(
        default_factory=lambda: _env_bool("WHATSAPP_CONNECT_ON_STARTUP")
    )

    # Cloud API credentials
    api_key: str = field(default_factory=lambda: os.getenv("WHATSAPP_API_KEY", ""))
    phone_number_id: str = field(default_factory=lambda: os.getenv("WHATSAPP_PHONE_NUMBER_ID", ""))
    api_url: str = "https://graph.facebook.com/v18.0"
    request_timeout: int = 15


@dataclass(frozen=True)
class SheetsSettings:
    """Google Sheets source settings."""

    credentials_file: Path = field(
        default_factory=lambda: Path(os.getenv("GOOGLE_CREDENTIALS_FILE", "keys.json"))
    )
    spreadsheet_id: str = field(default_factory=lambda: os.getenv("GOOGLE_SPREADSHEET_ID", ""))
    worksheet: str = field(default_factory=lambda: os.getenv("GOOGLE_WORKSHEET", "Sheet1"))

    # Header names in the sheet (matched case-insensitively)
    name_header: str = "name"
    category_header: str = field(
        default_factory=lambda: os.getenv("GOOGLE_CATEGORY_HEADER", "skin problems")
    )
    phone_header: str = "phone number"
    key_header: str = "uniqueId"

    sync_on_startup: bool = field(default_factory=lambda: _env_bool("SYNC_ON_STARTUP", True))

    @property
    def is_configured(self) -> bool:
        return bool(self.spreadsheet_id)


@dataclass(frozen=True)
class StoreSettings:
    """Prospect store backend."""

    # "memory" or "sqlite"
    backend: str = field(default_factory=lambda: os.getenv("STORE_BACKEND", "sqlite"))
    database_file: Path = field(
        default_factory=lambda: Path(os.getenv("DATABASE_FILE", "outreach_desk.db"))
    )


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from outreach_desk.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.sheets.spreadsheet_id)
    """

    # Sub-settings groups
    whatsapp: WhatsAppSettings = field(default_factory=WhatsAppSettings)
    sheets: SheetsSettings = field(default_factory=SheetsSettings)
    store: StoreSettings = field(default_factory=StoreSettings)

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if self.whatsapp.provider not in ("selenium", "cloud_api"):
            issues.append(
                f"WARNING: Unknown WHATSAPP_PROVIDER '{self.whatsapp.provider}'. "
                "Use 'selenium' or 'cloud_api'."
            )

        if self.whatsapp.provider == "cloud_api" and not (
            self.whatsapp.api_key and self.whatsapp.phone_number_id
        ):
            issues.append(
                "WARNING: WHATSAPP_API_KEY / WHATSAPP_PHONE_NUMBER_ID not set. "
                "Cloud API provider will wait for credentials."
            )

        if not self.sheets.is_configured:
            issues.append(
                "WARNING: GOOGLE_SPREADSHEET_ID not set. "
                "Google Sheets import is disabled; use file upload instead."
            )
        elif not self.sheets.credentials_file.exists():
            issues.append(
                f"WARNING: Google credentials file not found: {self.sheets.credentials_file}."
            )

        if self.store.backend not in ("memory", "sqlite"):
            issues.append(
                f"WARNING: Unknown STORE_BACKEND '{self.store.backend}'. Falling back to sqlite."
            )

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
