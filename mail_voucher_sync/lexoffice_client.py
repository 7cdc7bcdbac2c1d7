"""Lexoffice voucher uploader."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import Settings
from .utils import truncate

logger = logging.getLogger(__name__)

DOCUMENT_TYPE = "voucher"


class UploadError(Exception):
    """Raised when Lexoffice does not accept an upload."""

    def __init__(self, filename: str, reason: str, status_code: Optional[int] = None) -> None:
        self.filename = filename
        self.reason = reason
        self.status_code = status_code
        if status_code is None:
            message = f"upload of '{filename}' failed: {reason}"
        else:
            message = f"upload of '{filename}' failed with status {status_code}: {reason}"
        super().__init__(message)


class LexofficeClient:
    """Upload voucher files to the Lexoffice files endpoint."""

    def __init__(
        self,
        api_key: str,
        upload_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.upload_url = upload_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LexofficeClient":
        return cls(
            api_key=settings.lexoffice_api_key,
            upload_url=settings.upload_url,
            timeout=settings.upload_timeout_seconds,
        )

    def upload(self, filename: str, payload: bytes) -> str | None:
        """Upload one file and return the Lexoffice file id (if available).

        Any 2xx status counts as success. Everything else, including
        transport errors and timeouts, raises ``UploadError``.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        files = {"file": (filename, payload)}
        data = {"type": DOCUMENT_TYPE}

        logger.debug("Uploading '%s' (%d bytes) to %s", filename, len(payload), self.upload_url)
        try:
            response = self.session.post(
                self.upload_url, headers=headers, data=data, files=files, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise UploadError(filename, str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise UploadError(filename, truncate(response.text), status_code=response.status_code)

        return self._extract_file_id(response)

    @staticmethod
    def _extract_file_id(response) -> str | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if isinstance(payload, dict) and payload.get("id") is not None:
            return str(payload["id"])
        return None
