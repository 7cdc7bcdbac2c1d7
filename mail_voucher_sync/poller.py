"""Poll the inbox once per tick and hand every message to the processor."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .attachment_filter import AttachmentFilter
from .config import Settings
from .imap_session import ImapSession, MailboxError
from .lexoffice_client import LexofficeClient
from .mailbox_mutator import MailboxMutator
from .models import CycleStats
from .processor import MessageProcessor

logger = logging.getLogger(__name__)


class MailboxPoller:
    """Run poll cycles against the configured inbox.

    Each cycle opens its own IMAP session, works through every message that
    is in the inbox at that moment and logs out again. Nothing is carried over
    between cycles.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[Settings], ImapSession] = ImapSession.from_settings,
        uploader: LexofficeClient | None = None,
        attachment_filter: AttachmentFilter | None = None,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.uploader = uploader or LexofficeClient.from_settings(settings)
        self.attachment_filter = attachment_filter or AttachmentFilter(settings.ignore_patterns)

    def run_cycle(self) -> CycleStats:
        stats = CycleStats()
        logger.info("Connecting to IMAP server %s:%s...", self.settings.imap_server, self.settings.imap_port)
        session = self.session_factory(self.settings)
        try:
            try:
                session.connect()
                session.login()
            except MailboxError as exc:
                logger.error("Failed to connect or log in: %s", exc)
                return stats
            logger.info("Logged in successfully")
            self._process_inbox(session, stats)
        finally:
            self._logout(session)

        logger.info(
            "Cycle complete: messages=%s moved=%s no_attachments=%s upload_failed=%s "
            "move_failed=%s errored=%s uploaded=%s skipped=%s",
            stats.messages,
            stats.moved,
            stats.no_attachments,
            stats.upload_failed,
            stats.move_failed,
            stats.errored,
            stats.uploaded,
            stats.skipped,
        )
        return stats

    def run_forever(
        self,
        interval_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        max_cycles: int | None = None,
    ) -> None:
        """Run a cycle now and then once per interval.

        Cycles never overlap: ticks that pass while a cycle is still running
        are skipped and the next cycle starts on the next future tick.
        """
        cycles = 0
        next_tick = clock()
        while True:
            try:
                self.run_cycle()
            except Exception:
                logger.exception("Poll cycle aborted unexpectedly")
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                return

            next_tick += interval_seconds
            now = clock()
            missed = 0
            while next_tick <= now:
                next_tick += interval_seconds
                missed += 1
            if missed:
                logger.warning("Previous cycle overran the poll interval; skipped %d tick(s)", missed)
            sleep(next_tick - now)

    def _process_inbox(self, session: ImapSession, stats: CycleStats) -> None:
        inbox = self.settings.imap_inbox_folder
        try:
            count = session.select(inbox)
        except MailboxError as exc:
            logger.error("Failed to select %s: %s", inbox, exc)
            return

        if count == 0:
            logger.info("No messages in %s", inbox)
            return
        logger.info("Found %d messages in %s", count, inbox)

        try:
            uids = session.list_uids(inbox)
        except MailboxError as exc:
            logger.error("Failed to list messages in %s: %s", inbox, exc)
            return

        processor = MessageProcessor(
            session=session,
            attachment_filter=self.attachment_filter,
            uploader=self.uploader,
            mutator=MailboxMutator(session),
            source_folder=inbox,
            destination_folder=self.settings.imap_done_folder,
        )

        logger.info("Processing %d messages from %s", len(uids), inbox)
        for uid in uids:
            stats.messages += 1
            try:
                result = processor.process(uid)
            except Exception:
                stats.errored += 1
                logger.exception("Failed to process message %s", uid)
                continue
            stats.record(result)

    @staticmethod
    def _logout(session: ImapSession) -> None:
        try:
            session.logout()
        except MailboxError as exc:
            logger.warning("Logout failed: %s", exc)
