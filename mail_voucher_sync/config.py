"""Configuration management for the mailbox→Lexoffice sync."""

from __future__ import annotations

import math
import re
from typing import Sequence

from dotenv import load_dotenv
from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()

DEFAULT_POLL_INTERVAL_MINUTES = 5.0
DEFAULT_IMAP_PORT = 993


def _split_list(value: str | Sequence[str] | None, delimiters: str = ";") -> list[str]:
    """Turn delimiter-separated env strings into cleaned lists."""
    if value is None:
        return []
    if isinstance(value, str):
        items = re.split(delimiters, value)
    else:
        items = list(value)
    cleaned: list[str] = []
    for item in items:
        trimmed = item.strip()
        if not trimmed:
            continue
        cleaned.append(trimmed)
    return cleaned


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    imap_server: str = Field(..., alias="IMAP_SERVER")
    imap_port: int = Field(DEFAULT_IMAP_PORT, alias="IMAP_PORT")
    imap_user: str = Field(..., alias="IMAP_USER")
    imap_password: str = Field(..., alias="IMAP_PASSWORD")
    imap_inbox_folder: str = Field("INBOX", alias="IMAP_INBOX_FOLDER")
    imap_done_folder: str = Field("done", alias="IMAP_DONE_FOLDER")
    imap_timeout_seconds: float = Field(30.0, alias="IMAP_TIMEOUT_SECONDS")

    lexoffice_api_key: str = Field(..., alias="LEXOFFICE_API_KEY")
    lexoffice_base_url: HttpUrl = Field("https://api.lexoffice.io", alias="LEXOFFICE_BASE_URL")
    upload_timeout_seconds: float = Field(30.0, alias="UPLOAD_TIMEOUT_SECONDS")

    # Patterns are regular expressions, so only ';' separates them.
    ignore_patterns_raw: str = Field(r"^AGB_;\.ics$;^Receipt-", alias="IGNORE_PATTERNS")
    poll_interval_minutes: float = Field(DEFAULT_POLL_INTERVAL_MINUTES, alias="POLL_INTERVAL_MINUTES")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("imap_server", "imap_user", "imap_password", "lexoffice_api_key")
    @classmethod
    def _require_non_empty(cls, value: str, info):
        if not value or not value.strip():
            raise ValueError(f"{info.field_name.upper()} must not be empty")
        return value

    @field_validator("imap_server", "imap_user", "imap_inbox_folder", "imap_done_folder")
    @classmethod
    def _strip(cls, value: str):
        return value.strip()

    @field_validator("imap_inbox_folder", "imap_done_folder")
    @classmethod
    def _require_folder_name(cls, value: str, info):
        if not value:
            raise ValueError(f"{info.field_name.upper()} must not be empty")
        return value

    @field_validator("imap_port", mode="before")
    @classmethod
    def _blank_port_to_default(cls, value):
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return DEFAULT_IMAP_PORT
        return value

    @field_validator("poll_interval_minutes", mode="before")
    @classmethod
    def _lenient_poll_interval(cls, value):
        """Fall back to the default interval instead of refusing to start."""
        if value is None:
            return DEFAULT_POLL_INTERVAL_MINUTES
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            return DEFAULT_POLL_INTERVAL_MINUTES
        if not math.isfinite(minutes) or minutes <= 0:
            return DEFAULT_POLL_INTERVAL_MINUTES
        return minutes

    @field_validator("imap_timeout_seconds", "upload_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float, info):
        if not math.isfinite(value) or value <= 0:
            raise ValueError(f"{info.field_name.upper()} must be positive")
        return value

    @model_validator(mode="after")
    def _validate_ignore_patterns(self):
        for pattern in _split_list(self.ignore_patterns_raw):
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid IGNORE_PATTERNS entry {pattern!r}: {exc}") from exc
        return self

    @property
    def ignore_patterns(self) -> tuple[re.Pattern[str], ...]:
        """Compiled ignore patterns, in configuration order."""
        return tuple(
            re.compile(pattern) for pattern in _split_list(self.ignore_patterns_raw)
        )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_minutes * 60

    @property
    def upload_url(self) -> str:
        return f"{str(self.lexoffice_base_url).rstrip('/')}/v1/files"
