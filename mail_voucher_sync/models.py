"""Typed containers shared across the pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class ProcessingOutcome(enum.Enum):
    """What happened to a single inbox message during a cycle."""

    NO_ATTACHMENTS = "no_attachments"
    MOVED = "moved"
    UPLOAD_FAILED = "upload_failed"
    MOVE_FAILED = "move_failed"


@dataclass
class AttachmentFailure:
    """An attachment that could not be read or uploaded."""

    filename: str
    reason: str


@dataclass
class ProcessingResult:
    """Per-message decision plus the attachment bookkeeping behind it."""

    uid: int
    outcome: ProcessingOutcome
    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[AttachmentFailure] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class CycleStats:
    """Counters for one poll cycle."""

    messages: int = 0
    moved: int = 0
    no_attachments: int = 0
    upload_failed: int = 0
    move_failed: int = 0
    errored: int = 0
    uploaded: int = 0
    skipped: int = 0

    def record(self, result: ProcessingResult) -> None:
        self.uploaded += len(result.uploaded)
        self.skipped += len(result.skipped)
        if result.outcome is ProcessingOutcome.MOVED:
            self.moved += 1
        elif result.outcome is ProcessingOutcome.NO_ATTACHMENTS:
            self.no_attachments += 1
        elif result.outcome is ProcessingOutcome.UPLOAD_FAILED:
            self.upload_failed += 1
        elif result.outcome is ProcessingOutcome.MOVE_FAILED:
            self.move_failed += 1
