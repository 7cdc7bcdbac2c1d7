"""Upload mailbox attachments to Lexoffice and file the handled messages away."""

__version__ = "0.1.0"
