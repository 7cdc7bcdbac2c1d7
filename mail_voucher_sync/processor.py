"""Turn one inbox message into Lexoffice uploads and a move to the done folder."""

from __future__ import annotations

import logging

from .attachment_filter import AttachmentFilter
from .imap_session import ImapSession, MailboxError
from .lexoffice_client import LexofficeClient, UploadError
from .mailbox_mutator import MailboxMutator, MoveError
from .mime_parts import AttachmentReadError, MessagePart, MimeParseError, split_parts
from .models import AttachmentFailure, ProcessingOutcome, ProcessingResult
from .utils import sha256_hex

logger = logging.getLogger(__name__)


class MessageError(Exception):
    """Raised when a message cannot be fetched or parsed."""

    def __init__(self, uid: int, reason: str) -> None:
        self.uid = uid
        self.reason = reason
        super().__init__(f"message {uid}: {reason}")


class MessageProcessor:
    """Fetch, filter, upload and (on full success) move a single message."""

    def __init__(
        self,
        session: ImapSession,
        attachment_filter: AttachmentFilter,
        uploader: LexofficeClient,
        mutator: MailboxMutator,
        source_folder: str,
        destination_folder: str,
    ) -> None:
        self.session = session
        self.attachment_filter = attachment_filter
        self.uploader = uploader
        self.mutator = mutator
        self.source_folder = source_folder
        self.destination_folder = destination_folder

    def process(self, uid: int) -> ProcessingResult:
        logger.info("Processing message UID %s", uid)
        try:
            raw = self.session.fetch_body(self.source_folder, uid)
        except MailboxError as exc:
            raise MessageError(uid, f"fetch failed: {exc}") from exc

        try:
            parts = split_parts(raw)
        except MimeParseError as exc:
            raise MessageError(uid, f"failed to parse message: {exc}") from exc

        result = ProcessingResult(uid=uid, outcome=ProcessingOutcome.NO_ATTACHMENTS)
        has_attachments = False

        for part in parts:
            if not part.is_attachment:
                continue
            has_attachments = True
            self._handle_attachment(uid, part, result)

        if not has_attachments:
            logger.info("Message %s has no attachments, skipping", uid)
            return result

        if result.failed:
            result.outcome = ProcessingOutcome.UPLOAD_FAILED
            logger.warning(
                "Message %s left in %s: %d of %d attachment(s) failed",
                uid,
                self.source_folder,
                len(result.failed),
                len(result.failed) + len(result.uploaded),
            )
            return result

        try:
            self.mutator.mark_processed(uid, self.source_folder, self.destination_folder)
        except MoveError as exc:
            result.outcome = ProcessingOutcome.MOVE_FAILED
            result.error = str(exc)
            logger.error("Failed to move message %s (step %s): %s", uid, exc.step, exc.reason)
            return result

        result.outcome = ProcessingOutcome.MOVED
        logger.info("Moved message %s to '%s' folder", uid, self.destination_folder)
        return result

    def _handle_attachment(self, uid: int, part: MessagePart, result: ProcessingResult) -> None:
        filename = part.filename
        logger.info("  Found attachment: %s", filename)

        if self.attachment_filter.should_skip(filename):
            logger.info("  Skipping %s (matches ignore pattern)", filename)
            result.skipped.append(filename)
            return

        try:
            payload = part.read()
        except AttachmentReadError as exc:
            logger.error("  Failed to read attachment %s of message %s: %s", filename, uid, exc)
            result.failed.append(AttachmentFailure(filename=filename, reason=str(exc)))
            return

        try:
            file_id = self.uploader.upload(filename, payload)
        except UploadError as exc:
            logger.error("  Failed to upload %s of message %s to Lexoffice: %s", filename, uid, exc)
            result.failed.append(AttachmentFailure(filename=filename, reason=str(exc)))
            return

        logger.info(
            "  Successfully uploaded %s to Lexoffice (id=%s, sha256=%s)",
            filename,
            file_id,
            sha256_hex(payload),
        )
        result.uploaded.append(filename)
