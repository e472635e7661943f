"""Configuration management for the trmnl_agenda server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .timezone_utils import DASHBOARD_TIMEZONE

logger = logging.getLogger(__name__)

DEFAULT_LAT = 58.9997
DEFAULT_LON = 5.6187
DEFAULT_CONTACT_EMAIL = "tomas@rosbak.com"
DEFAULT_FETCH_TIMEOUT_SECONDS = 20.0

# Environment variable feeding each validated config field
ENV_VARS = {
    "ics_url": "ICS_URL",
    "lat": "LAT",
    "lon": "LON",
    "contact_email": "CONTACT_EMAIL",
    "fetch_timeout_seconds": "TRMNL_AGENDA_FETCH_TIMEOUT",
    "server_bind": "TRMNL_AGENDA_WEB_HOST",
    "server_port": "TRMNL_AGENDA_WEB_PORT",
    "log_level": "TRMNL_AGENDA_LOG_LEVEL",
}


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class AgendaConfig(BaseModel):
    """Immutable configuration passed explicitly to the fetchers and the app."""

    ics_url: Optional[str] = Field(default=None, description="ICS calendar feed URL")
    lat: float = Field(
        default=DEFAULT_LAT, ge=-90, le=90, allow_inf_nan=False, description="Forecast latitude"
    )
    lon: float = Field(
        default=DEFAULT_LON, ge=-180, le=180, allow_inf_nan=False, description="Forecast longitude"
    )
    contact_email: str = Field(
        default=DEFAULT_CONTACT_EMAIL, description="Contact address sent in the User-Agent"
    )
    timezone: str = Field(default=DASHBOARD_TIMEZONE, description="IANA zone for 'today'")
    fetch_timeout_seconds: float = Field(
        default=DEFAULT_FETCH_TIMEOUT_SECONDS,
        gt=0,
        allow_inf_nan=False,
        description="Per-request fetch deadline",
    )
    server_bind: str = "0.0.0.0"  # nosec B104 - dashboard is served on the LAN
    server_port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @field_validator("ics_url")
    @classmethod
    def _blank_url_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return value


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(
        self,
        env_file_path: Path | None = None,
        environ: Optional[dict[str, str]] = None,
    ):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
            environ: Environment mapping to read and seed (defaults to os.environ)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"
        self.environ = os.environ if environ is None else environ

    def load_env_file(self) -> list[str]:
        """Load .env file into the environment.

        Only sets variables that are not already present to avoid surprising
        overrides of the user's environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in self.environ:
                self.environ[key] = val
                set_keys.append(key)

        if set_keys:
            # Keys only, values may be secrets (the ICS URL usually is)
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def _read_float(self, name: str, default: float) -> float:
        raw = self.environ.get(name)
        if raw is None or not raw.strip():
            return default
        try:
            return float(raw)
        except ValueError:
            logger.warning("Invalid %s=%r; using default %s", name, raw, default)
            return default

    def _read_int(self, name: str, default: int) -> int:
        raw = self.environ.get(name)
        if raw is None or not raw.strip():
            return default
        try:
            return int(raw)
        except ValueError:
            logger.warning("Invalid %s=%r; using default %s", name, raw, default)
            return default

    def build_config_from_env(self) -> AgendaConfig:
        """Build configuration from environment variables.

        Recognizes:
        - ICS_URL -> ics_url
        - LAT, LON -> lat, lon (float)
        - CONTACT_EMAIL -> contact_email
        - TRMNL_AGENDA_FETCH_TIMEOUT -> fetch_timeout_seconds (float)
        - TRMNL_AGENDA_WEB_HOST -> server_bind
        - TRMNL_AGENDA_WEB_PORT -> server_port (int)
        - TRMNL_AGENDA_LOG_LEVEL -> log_level

        Returns:
            AgendaConfig instance
        """
        cfg: dict[str, Any] = {
            "ics_url": self.environ.get("ICS_URL"),
            "lat": self._read_float("LAT", DEFAULT_LAT),
            "lon": self._read_float("LON", DEFAULT_LON),
            "fetch_timeout_seconds": self._read_float(
                "TRMNL_AGENDA_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_SECONDS
            ),
            "server_port": self._read_int("TRMNL_AGENDA_WEB_PORT", 8080),
        }

        contact = self.environ.get("CONTACT_EMAIL")
        if contact and contact.strip():
            cfg["contact_email"] = contact.strip()

        host = self.environ.get("TRMNL_AGENDA_WEB_HOST")
        if host and host.strip():
            cfg["server_bind"] = host.strip()

        log_level = self.environ.get("TRMNL_AGENDA_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level

        if not cfg["ics_url"]:
            logger.warning("ICS_URL is not set; calendar fetches will fail")

        try:
            return AgendaConfig(**cfg)
        except ValidationError as e:
            # Numbers that parse but break a field constraint (range, NaN) fall back too
            for error in e.errors():
                field = str(error["loc"][0])
                if field not in cfg:
                    continue
                logger.warning(
                    "Invalid %s=%r; using default %s",
                    ENV_VARS.get(field, field),
                    cfg.pop(field),
                    AgendaConfig.model_fields[field].default,
                )
            return AgendaConfig(**cfg)

    def load_full_config(self) -> AgendaConfig:
        """Load .env file and build configuration from environment.

        Returns:
            AgendaConfig instance
        """
        self.load_env_file()
        return self.build_config_from_env()
