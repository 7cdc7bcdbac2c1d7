"""Filename rules that keep boilerplate attachments out of Lexoffice."""

from __future__ import annotations

import logging
import re
from typing import Iterable

logger = logging.getLogger(__name__)


class AttachmentFilter:
    """Decide whether an attachment should be skipped based on its filename."""

    def __init__(self, patterns: Iterable[re.Pattern[str] | str]) -> None:
        self.patterns: tuple[re.Pattern[str], ...] = tuple(
            re.compile(pattern) if isinstance(pattern, str) else pattern for pattern in patterns
        )

    def should_skip(self, filename: str) -> bool:
        """Return True if any ignore pattern matches the filename."""
        for pattern in self.patterns:
            if pattern.search(filename):
                logger.debug("Attachment '%s' matched ignore pattern %s", filename, pattern.pattern)
                return True
        return False
