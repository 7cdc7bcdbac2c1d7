"""Command-line entry point for the mailbox→Lexoffice sync."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from pydantic import ValidationError

from .config import Settings
from .poller import MailboxPoller

logger = logging.getLogger("mail_voucher_sync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload IMAP inbox attachments to Lexoffice and move handled mails to a done folder."
    )
    parser.add_argument("--once", action="store_true", help="Run one poll cycle and exit")
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "settings"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings()
    except ValidationError as exc:
        configure_logging("INFO")
        logger.critical(
            "Invalid configuration (IMAP_SERVER, IMAP_USER, IMAP_PASSWORD and "
            "LEXOFFICE_API_KEY are required): %s",
            _describe_validation_error(exc),
        )
        return 1

    configure_logging(settings.log_level)
    poller = MailboxPoller(settings)

    if args.once:
        logger.info("Running once and exiting...")
        poller.run_cycle()
        return 0

    logger.info("Starting mail processor. Polling every %s minutes", settings.poll_interval_minutes)
    try:
        poller.run_forever(settings.poll_interval_seconds)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0
