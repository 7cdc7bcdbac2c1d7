"""Tests for config module."""

import pytest
from pydantic import ValidationError

from mail_voucher_sync.config import Settings

REQUIRED = {
    "IMAP_SERVER": "imap.test.com",
    "IMAP_USER": "user",
    "IMAP_PASSWORD": "pass",
    "LEXOFFICE_API_KEY": "key",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in [
        *REQUIRED,
        "IMAP_PORT",
        "POLL_INTERVAL_MINUTES",
        "IGNORE_PATTERNS",
        "IMAP_INBOX_FOLDER",
        "IMAP_DONE_FOLDER",
        "LEXOFFICE_BASE_URL",
        "UPLOAD_TIMEOUT_SECONDS",
        "IMAP_TIMEOUT_SECONDS",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)


def _settings(**overrides) -> Settings:
    values = {**REQUIRED, **overrides}
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        settings = _settings()
        assert settings.imap_port == 993
        assert settings.imap_inbox_folder == "INBOX"
        assert settings.imap_done_folder == "done"
        assert settings.poll_interval_minutes == 5.0
        assert settings.poll_interval_seconds == 300.0
        assert settings.upload_timeout_seconds == 30.0
        assert settings.imap_timeout_seconds == 30.0
        assert settings.upload_url == "https://api.lexoffice.io/v1/files"

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch):
        for name, value in REQUIRED.items():
            monkeypatch.setenv(name, value)
        monkeypatch.setenv("IMAP_PORT", "1993")
        monkeypatch.setenv("POLL_INTERVAL_MINUTES", "10")
        settings = Settings(_env_file=None)
        assert settings.imap_server == "imap.test.com"
        assert settings.imap_port == 1993
        assert settings.poll_interval_minutes == 10.0

    @pytest.mark.parametrize("missing", list(REQUIRED))
    def test_missing_required_value_is_fatal(self, missing: str):
        values = {name: value for name, value in REQUIRED.items() if name != missing}
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **values)

    @pytest.mark.parametrize("blank", list(REQUIRED))
    def test_blank_required_value_is_fatal(self, blank: str):
        with pytest.raises(ValidationError) as exc_info:
            _settings(**{blank: "   "})
        assert "must not be empty" in str(exc_info.value)

    def test_blank_port_falls_back_to_default(self):
        assert _settings(IMAP_PORT="").imap_port == 993

    @pytest.mark.parametrize("raw", ["", "abc", "0", "-3", "nan", "inf"])
    def test_unparseable_poll_interval_falls_back_to_five_minutes(self, raw: str):
        assert _settings(POLL_INTERVAL_MINUTES=raw).poll_interval_minutes == 5.0

    def test_fractional_poll_interval(self):
        settings = _settings(POLL_INTERVAL_MINUTES="1.5")
        assert settings.poll_interval_seconds == 90.0

    def test_default_ignore_patterns(self):
        patterns = _settings().ignore_patterns
        assert [pattern.pattern for pattern in patterns] == [r"^AGB_", r"\.ics$", r"^Receipt-"]
        assert isinstance(patterns, tuple)

    def test_custom_ignore_patterns_split_on_semicolon_only(self):
        patterns = _settings(IGNORE_PATTERNS=r"^x{1,3}_; \.vcf$ ;").ignore_patterns
        assert [pattern.pattern for pattern in patterns] == [r"^x{1,3}_", r"\.vcf$"]

    def test_invalid_ignore_pattern_is_fatal(self):
        with pytest.raises(ValidationError):
            _settings(IGNORE_PATTERNS="^AGB_;([unclosed")

    def test_custom_base_url(self):
        settings = _settings(LEXOFFICE_BASE_URL="https://sandbox.lexoffice.test/")
        assert settings.upload_url == "https://sandbox.lexoffice.test/v1/files"

    def test_non_positive_upload_timeout_is_rejected(self):
        with pytest.raises(ValidationError):
            _settings(UPLOAD_TIMEOUT_SECONDS="0")

    @pytest.mark.parametrize("raw", ["0", "-5", "inf"])
    def test_non_positive_imap_timeout_is_rejected(self, raw: str):
        with pytest.raises(ValidationError, match="IMAP_TIMEOUT_SECONDS"):
            _settings(IMAP_TIMEOUT_SECONDS=raw)

    def test_settings_are_frozen(self):
        settings = _settings()
        with pytest.raises(ValidationError):
            settings.imap_server = "other.example.com"
