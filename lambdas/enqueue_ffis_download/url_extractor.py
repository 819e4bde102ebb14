"""
FFIS Download URL Extractor

Finds the single spreadsheet download link in the plaintext body of an FFIS
email and queues it for download.
"""

import re
from email.message import EmailMessage

from ingest.context import InvocationContext
from ingest.email_parser import parse_message
from ingest.exceptions import MultipleFoundError, NoMatchesFoundError, NoPlaintextPartError
from ingest.tools.sqs import MessageSender

ENQUEUED_METRIC = "download.enqueued"


def get_plaintext_body(message: EmailMessage) -> str:
    """
    Get the text/plain body of a message.

    Attachments are never considered. Unknown charsets are decoded as
    UTF-8 with replacement characters.

    Raises:
        NoPlaintextPartError: If the message has no plaintext body (e.g. HTML-only)
    """
    part = message.get_body(preferencelist=("plain",))
    if part is None:
        raise NoPlaintextPartError(message.get_content_type())

    try:
        return part.get_content()
    except LookupError:
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def find_download_url(text: str, pattern: re.Pattern[str]) -> str:
    """
    Find the single URL in text matching pattern.

    A URL repeated verbatim counts once.

    Raises:
        NoMatchesFoundError: If nothing matches
        MultipleFoundError: If more than one distinct URL matches
    """
    matches = list(dict.fromkeys(m.group(0) for m in pattern.finditer(text)))
    if not matches:
        raise NoMatchesFoundError(pattern.pattern)
    if len(matches) > 1:
        raise MultipleFoundError(pattern.pattern, matches)
    return matches[0]


def process_email(
    raw_email: bytes,
    *,
    ctx: InvocationContext,
    queue: MessageSender,
) -> str:
    """
    Extract the download URL from an FFIS email and send it to the download queue.

    Args:
        raw_email: Raw email content
        ctx: Invocation context for the record
        queue: Destination queue

    Returns:
        SQS message ID
    """
    settings = ctx.settings
    message = parse_message(raw_email)
    body = get_plaintext_body(message.message)
    url = find_download_url(body, settings.url_pattern)

    ctx.scope.raise_if_cancelled()
    message_id = queue.send_message(settings.ffis_download_queue_url, url)

    ctx.log.info("download_url_enqueued", url=url, message_id=message_id)
    ctx.metrics.increment(ENQUEUED_METRIC)
    return message_id
