"""IMAP session wrapper around the stdlib ``imaplib`` client."""

from __future__ import annotations

import base64
import imaplib
import logging
import re
import ssl
from typing import Any, Callable

from .config import Settings

logger = logging.getLogger(__name__)

# Format: (\Flags) "delimiter" "folder name"  (name may also be an unquoted atom)
_LIST_RESPONSE = re.compile(r'^\((?P<flags>[^)]*)\) (?P<delimiter>NIL|"[^"]*") (?P<name>.+)$')
# Base64 run inside a modified UTF-7 mailbox name (RFC 3501 5.1.3)
_ENCODED_RUN = re.compile(r"&([A-Za-z0-9+,]*)-")


class MailboxError(Exception):
    """Raised when an IMAP command fails or the session is misused."""

    pass


def encode_mailbox(name: str) -> str:
    """Encode a folder name as IMAP modified UTF-7.

    Printable ASCII passes through (``&`` becomes ``&-``); every other run of
    characters is written as ``&`` + base64 of its UTF-16BE bytes + ``-``,
    using ``,`` instead of ``/`` and no padding.
    """
    encoded: list[str] = []
    pending: list[str] = []

    def flush() -> None:
        if not pending:
            return
        chunk = base64.b64encode("".join(pending).encode("utf-16-be")).decode("ascii")
        encoded.append("&" + chunk.rstrip("=").replace("/", ",") + "-")
        pending.clear()

    for char in name:
        if 0x20 <= ord(char) <= 0x7E:
            flush()
            encoded.append("&-" if char == "&" else char)
        else:
            pending.append(char)
    flush()
    return "".join(encoded)


def decode_mailbox(name: str) -> str:
    """Decode an IMAP modified UTF-7 folder name; malformed runs are kept as-is."""

    def _replace(match: re.Match[str]) -> str:
        run = match.group(1)
        if not run:
            return "&"
        data = run.replace(",", "/")
        data += "=" * (-len(data) % 4)
        try:
            return base64.b64decode(data).decode("utf-16-be")
        except ValueError:
            return match.group(0)

    return _ENCODED_RUN.sub(_replace, name)


def _quote(folder: str) -> str:
    escaped = encode_mailbox(folder).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _unquote(name: str) -> str:
    name = name.strip()
    if len(name) >= 2 and name[0] == name[-1] == '"':
        return name[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return name


class ImapSession:
    """One stateful IMAP session.

    The server applies FETCH, COPY, STORE and EXPUNGE to whichever folder is
    currently selected. That selection is tracked in ``selected_folder`` and
    every folder-scoped method takes the folder it expects to operate on, so a
    call against the wrong selection fails loudly instead of touching another
    folder.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self._ssl_context = ssl_context
        self.timeout = timeout
        self._connection: imaplib.IMAP4 | None = None
        self.selected_folder: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImapSession":
        return cls(
            host=settings.imap_server,
            port=settings.imap_port,
            username=settings.imap_user,
            password=settings.imap_password,
            timeout=settings.imap_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open a TLS connection to the IMAP server."""
        if self._connection is not None:
            return
        context = self._ssl_context or ssl.create_default_context()
        try:
            self._connection = imaplib.IMAP4_SSL(
                host=self.host, port=self.port, ssl_context=context, timeout=self.timeout
            )
        except (imaplib.IMAP4.error, OSError, UnicodeError) as exc:
            raise MailboxError(f"Failed to connect to {self.host}:{self.port}: {exc}") from exc
        logger.debug("Connected to %s:%s", self.host, self.port)

    def login(self) -> None:
        self._run("LOGIN", lambda conn: conn.login(self.username, self._password))

    def logout(self) -> None:
        """Log out and drop the connection, even if the server complains."""
        if self._connection is None:
            return
        try:
            self._run("LOGOUT", lambda conn: conn.logout(), ok_statuses=("OK", "BYE"))
        finally:
            self._connection = None
            self.selected_folder = None

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def select(self, folder: str) -> int:
        """Select a folder read-write and return its message count."""
        data = self._run(f"SELECT {folder}", lambda conn: conn.select(_quote(folder)))
        self.selected_folder = folder
        try:
            raw = data[0]
            return int(raw.decode() if isinstance(raw, bytes) else raw)
        except (IndexError, TypeError, ValueError) as exc:
            raise MailboxError(f"Unexpected SELECT {folder} response: {data!r}") from exc

    def list_folders(self, pattern: str = "*") -> list[str]:
        """Return folder names matching an IMAP LIST pattern."""
        data = self._run(f"LIST {pattern}", lambda conn: conn.list('""', _quote(pattern)))
        folders: list[str] = []
        for item in data:
            if item is None:
                continue
            if isinstance(item, tuple):
                # Literal form: (b'(\\Flags) "/" {5}', b'name')
                folders.append(decode_mailbox(item[1].decode("utf-8", errors="replace")))
                continue
            line = item.decode("utf-8", errors="replace") if isinstance(item, bytes) else str(item)
            match = _LIST_RESPONSE.match(line)
            if match:
                folders.append(decode_mailbox(_unquote(match.group("name"))))
        return folders

    def folder_exists(self, folder: str) -> bool:
        return any(name.lower() == folder.lower() for name in self.list_folders(folder))

    def create_folder(self, folder: str) -> None:
        self._run(f"CREATE {folder}", lambda conn: conn.create(_quote(folder)))

    # ------------------------------------------------------------------
    # Messages in the selected folder
    # ------------------------------------------------------------------

    def list_uids(self, folder: str) -> list[int]:
        """Return the UIDs of every message in ``folder`` with one SEARCH."""
        self._require_selected(folder)
        data = self._run(f"UID SEARCH ALL in {folder}", lambda conn: conn.uid("SEARCH", None, "ALL"))
        if not data or not data[0]:
            return []
        raw = data[0].decode() if isinstance(data[0], bytes) else str(data[0])
        return [int(uid) for uid in raw.split()]

    def fetch_body(self, folder: str, uid: int) -> bytes:
        """Fetch the complete RFC822 message for ``uid``."""
        self._require_selected(folder)
        data = self._run(f"UID FETCH {uid}", lambda conn: conn.uid("FETCH", str(uid), "(RFC822)"))
        for item in data:
            if isinstance(item, tuple) and len(item) >= 2 and isinstance(item[1], bytes):
                return item[1]
        raise MailboxError(f"Message UID {uid} not found in {folder}")

    def copy(self, folder: str, uid: int, destination: str) -> None:
        self._require_selected(folder)
        self._run(
            f"UID COPY {uid} to {destination}",
            lambda conn: conn.uid("COPY", str(uid), _quote(destination)),
        )

    def flag_deleted(self, folder: str, uid: int) -> None:
        self._require_selected(folder)
        self._run(
            f"UID STORE {uid} +FLAGS (\\Deleted)",
            lambda conn: conn.uid("STORE", str(uid), "+FLAGS.SILENT", "(\\Deleted)"),
        )

    def expunge(self, folder: str) -> None:
        """Permanently remove every \\Deleted message in ``folder``."""
        self._require_selected(folder)
        self._run(f"EXPUNGE {folder}", lambda conn: conn.expunge())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_selected(self, folder: str) -> None:
        if self.selected_folder != folder:
            raise MailboxError(
                f"Operation targets folder '{folder}' but '{self.selected_folder}' is selected"
            )

    def _run(
        self,
        description: str,
        command: Callable[[imaplib.IMAP4], tuple[str, list[Any]]],
        ok_statuses: tuple[str, ...] = ("OK",),
    ) -> list[Any]:
        if self._connection is None:
            raise MailboxError(f"{description}: not connected")
        try:
            status, data = command(self._connection)
        except (imaplib.IMAP4.error, OSError, UnicodeError) as exc:
            # imaplib sends every argument as ASCII.
            raise MailboxError(f"{description} failed: {exc}") from exc
        if status not in ok_statuses:
            raise MailboxError(f"{description} failed: {status} {data!r}")
        return data
