"""Move processed messages into the done folder."""

from __future__ import annotations

import logging

from .imap_session import ImapSession, MailboxError

logger = logging.getLogger(__name__)

ENSURE_FOLDER = "ensure_folder"
COPY = "copy"
FLAG_DELETED = "flag_deleted"
EXPUNGE = "expunge"


class MoveError(Exception):
    """A step of the copy/flag/expunge sequence failed."""

    def __init__(self, step: str, uid: int, reason: str) -> None:
        self.step = step
        self.uid = uid
        self.reason = reason
        super().__init__(f"{step} failed for message {uid}: {reason}")


class MailboxMutator:
    """Relocate a message with COPY, STORE \\Deleted and EXPUNGE.

    IMAP has no atomic move here, so a failure part-way leaves one of these
    states behind:

    * ``copy`` failed: message only in the source folder.
    * ``flag_deleted`` failed: a duplicate sits in the destination and the
      original is untouched, so the next cycle uploads it again.
    * ``expunge`` failed: the original is flagged \\Deleted but still present.
      Whether the server hides or purges it later depends on the server.
    """

    def __init__(self, session: ImapSession) -> None:
        self.session = session

    def mark_processed(self, uid: int, source_folder: str, destination_folder: str) -> None:
        self._step(ENSURE_FOLDER, uid, self.ensure_folder, destination_folder)
        self._step(COPY, uid, self.session.copy, source_folder, uid, destination_folder)
        self._step(FLAG_DELETED, uid, self.session.flag_deleted, source_folder, uid)
        self._step(EXPUNGE, uid, self.session.expunge, source_folder)

    def ensure_folder(self, folder: str) -> None:
        """Create ``folder`` unless it already exists."""
        if self.session.folder_exists(folder):
            return
        logger.info("Creating folder '%s'", folder)
        try:
            self.session.create_folder(folder)
        except MailboxError:
            # Someone else may have created it in the meantime.
            if self.session.folder_exists(folder):
                return
            raise

    @staticmethod
    def _step(step: str, uid: int, action, *args) -> None:
        try:
            action(*args)
        except MailboxError as exc:
            raise MoveError(step, uid, str(exc)) from exc
