"""
Email Parser Module

Parses raw RFC 5322 bytes (as delivered to S3 by SES) into a header mapping
and body. Parsing is pure and synchronous.
"""

import re
from dataclasses import dataclass
from email import errors
from email.message import EmailMessage
from email.parser import BytesParser
from email.policy import default as default_policy

import structlog

from ingest.exceptions import ParseError

log = structlog.get_logger()

# Defects meaning the header block itself is malformed
_MALFORMED_HEADER_DEFECTS = (
    errors.MissingHeaderBodySeparatorDefect,
    errors.FirstHeaderLineIsContinuationDefect,
)

_SEPARATOR = re.compile(rb"\r?\n\r?\n")


def _unfold(value: str) -> str:
    """Join folded header lines into a single line."""
    return " ".join(line.strip() for line in value.splitlines() if line.strip())


@dataclass(frozen=True)
class ParsedMessage:
    """A parsed mail message. Read-only after construction."""

    headers: tuple[tuple[str, str], ...]
    body: bytes
    message: EmailMessage

    def lookup(self, name: str) -> str | None:
        """
        Get the first value of a header, ignoring case.

        Returns:
            Unfolded header value, or None if the header is absent
        """
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None


def parse_message(raw_email: bytes) -> ParsedMessage:
    """
    Parse raw email bytes into a ParsedMessage.

    A header block terminated by end of input is accepted.

    Args:
        raw_email: Raw email content

    Returns:
        ParsedMessage with ordered headers, raw body and MIME message

    Raises:
        ParseError: If the bytes are not well-formed message syntax
    """
    if not raw_email or not raw_email.strip():
        raise ParseError("message is empty")

    msg = BytesParser(policy=default_policy).parsebytes(raw_email)

    malformed = [d for d in msg.defects if isinstance(d, _MALFORMED_HEADER_DEFECTS)]
    if malformed:
        log.debug("malformed_header_block", defects=[type(d).__name__ for d in malformed])
        raise ParseError(f"malformed header block ({type(malformed[0]).__name__})")

    headers = tuple((name, _unfold(value)) for name, value in msg.raw_items())
    if not headers:
        raise ParseError("no headers found")

    match = _SEPARATOR.search(raw_email)
    body = raw_email[match.end():] if match else b""

    return ParsedMessage(headers=headers, body=body, message=msg)
