"""Split raw RFC822 messages into body and attachment parts."""

from __future__ import annotations

import email
import email.errors
import email.policy
from email.message import Message
from typing import Iterator


class MimeParseError(Exception):
    """Raised when raw message bytes cannot be split into parts."""

    pass


class AttachmentReadError(Exception):
    """Raised when an attachment payload cannot be decoded."""

    pass


class MessagePart:
    """One leaf part of a parsed message.

    The payload is only decoded when ``read()`` is called, so body parts and
    filtered attachments never pay for it.
    """

    def __init__(self, part: Message) -> None:
        self._part = part
        self.content_type = part.get_content_type()
        self.is_attachment = _is_attachment(part)
        self.filename = (part.get_filename() or "") if self.is_attachment else ""

    def read(self) -> bytes:
        try:
            if self.content_type == "message/rfc822":
                inner = self._part.get_payload(0)
                return inner.as_bytes()
            payload = self._part.get_payload(decode=True)
        except (LookupError, TypeError, ValueError) as exc:
            raise AttachmentReadError(f"Cannot decode '{self.filename}': {exc}") from exc
        if not isinstance(payload, bytes):
            raise AttachmentReadError(f"Attachment '{self.filename}' has no payload")
        return payload

    def __repr__(self) -> str:
        kind = "attachment" if self.is_attachment else "body"
        return f"MessagePart({kind}, {self.content_type!r}, filename={self.filename!r})"


def _is_attachment(part: Message) -> bool:
    disposition = part.get_content_disposition()
    if disposition == "attachment":
        return True
    if disposition == "inline":
        return False
    return part.get_content_maintype() != "text"


def _leaves(message: Message) -> Iterator[Message]:
    if message.get_content_type() == "message/rfc822":
        yield message
    elif message.is_multipart():
        for sub in message.get_payload():
            yield from _leaves(sub)
    else:
        yield message


def split_parts(raw_message: bytes) -> list[MessagePart]:
    """Return every leaf part of ``raw_message`` in MIME order."""
    try:
        message = email.message_from_bytes(raw_message, policy=email.policy.default)
        return [MessagePart(leaf) for leaf in _leaves(message)]
    except (email.errors.MessageError, LookupError, TypeError, ValueError) as exc:
        raise MimeParseError(str(exc)) from exc
