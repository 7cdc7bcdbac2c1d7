"""Shared test fixtures for the mailbox→Lexoffice sync tests."""

from __future__ import annotations

from email.message import EmailMessage
from typing import Callable
from unittest.mock import MagicMock

import pytest

from mail_voucher_sync.config import Settings
from mail_voucher_sync.imap_session import MailboxError
from mail_voucher_sync.lexoffice_client import LexofficeClient

REQUIRED_ENV = {
    "IMAP_SERVER": "imap.test.com",
    "IMAP_USER": "vouchers@test.com",
    "IMAP_PASSWORD": "secret",
    "LEXOFFICE_API_KEY": "lexoffice-key",
}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, **REQUIRED_ENV)


@pytest.fixture
def make_mime_email() -> Callable[..., bytes]:
    """Factory fixture to build raw MIME email bytes.

    Usage:
        raw = make_mime_email(attachments=[("invoice.pdf", "application/pdf", b"pdf-data")])
    """

    def _make(
        sender: str = "shop@example.com",
        subject: str = "Your invoice",
        body: str = "Please find the invoice attached.",
        attachments: list[tuple[str, str, bytes]] | None = None,
    ) -> bytes:
        msg = EmailMessage()
        msg["From"] = sender
        msg["To"] = "vouchers@test.com"
        msg["Subject"] = subject
        msg.set_content(body)

        for filename, content_type, data in attachments or []:
            maintype, subtype = content_type.split("/")
            msg.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)

        return msg.as_bytes()

    return _make


class FakeImapSession:
    """In-memory stand-in for ImapSession that keeps mailbox state between cycles.

    ``failures`` maps a method name to the exception it should raise;
    ``fetch_failures`` holds UIDs whose fetch fails.
    """

    def __init__(self, inbox: dict[int, bytes] | None = None, folders: tuple[str, ...] = ("INBOX",)) -> None:
        self.folders: dict[str, dict[int, bytes]] = {name: {} for name in folders}
        self.folders.setdefault("INBOX", {}).update(inbox or {})
        self.flagged: set[tuple[str, int]] = set()
        self.selected_folder: str | None = None
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}
        self.fetch_failures: set[int] = set()
        self._next_uid = 1000

    def _call(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def connect(self) -> None:
        self._call("connect")

    def login(self) -> None:
        self._call("login")

    def logout(self) -> None:
        self._call("logout")
        self.selected_folder = None

    def select(self, folder: str) -> int:
        self._call("select", folder)
        self.selected_folder = folder
        return len(self.folders[folder])

    def folder_exists(self, folder: str) -> bool:
        self._call("folder_exists", folder)
        return any(name.lower() == folder.lower() for name in self.folders)

    def create_folder(self, folder: str) -> None:
        self._call("create_folder", folder)
        self.folders[folder] = {}

    def list_uids(self, folder: str) -> list[int]:
        self._call("list_uids", folder)
        return sorted(self.folders[folder])

    def fetch_body(self, folder: str, uid: int) -> bytes:
        self._call("fetch_body", folder, uid)
        if uid in self.fetch_failures or uid not in self.folders[folder]:
            raise MailboxError(f"Message UID {uid} not found in {folder}")
        return self.folders[folder][uid]

    def copy(self, folder: str, uid: int, destination: str) -> None:
        self._call("copy", folder, uid, destination)
        self._next_uid += 1
        self.folders[destination][self._next_uid] = self.folders[folder][uid]

    def flag_deleted(self, folder: str, uid: int) -> None:
        self._call("flag_deleted", folder, uid)
        self.flagged.add((folder, uid))

    def expunge(self, folder: str) -> None:
        self._call("expunge", folder)
        for flagged_folder, uid in list(self.flagged):
            if flagged_folder == folder:
                del self.folders[folder][uid]
                self.flagged.discard((flagged_folder, uid))


@pytest.fixture
def fake_session_factory() -> Callable[..., FakeImapSession]:
    def _make(**kwargs) -> FakeImapSession:
        return FakeImapSession(**kwargs)

    return _make


@pytest.fixture
def uploader() -> MagicMock:
    mock = MagicMock(spec=LexofficeClient)
    mock.upload.return_value = "file-id"
    return mock
