"""
FFIS Email Processor

Extracts the sender and sent date from an FFIS digest email, checks that it
came from FFIS, and derives the grants source-data key it is stored under.
"""

from dataclasses import dataclass
from datetime import date, datetime
from email import errors as email_errors
from email.headerregistry import Address
from email.policy import default as default_policy
from email.utils import getaddresses, parsedate_to_datetime

from ingest.context import InvocationContext
from ingest.email_parser import ParsedMessage, parse_message
from ingest.exceptions import AddressParseError, DateParseError, SenderValidationError
from ingest.tools.s3 import ObjectWriter

SOURCE_NAME = "ffis"
MOVED_METRIC = "email.moved"


@dataclass(frozen=True)
class SenderDate:
    """Facts extracted from an FFIS email header."""

    address: str
    sent_at: datetime
    object_key: str


def build_object_key(sent_on: date) -> str:
    """
    Build the source-data key for an email sent on the given date.

    Month and day are not zero-padded: 2023-04-04 -> sources/2023/4/4/ffis/raw.eml
    """
    return f"sources/{sent_on.year}/{sent_on.month}/{sent_on.day}/{SOURCE_NAME}/raw.eml"


def parse_sender(header_value: str | None) -> str:
    """
    Parse a From header holding exactly one address.

    Returns:
        The bare address (addr-spec), without display name

    Raises:
        AddressParseError: If the header is missing, malformed or lists
            more than one address
    """
    if not header_value or not header_value.strip():
        raise AddressParseError(header_value, "missing From header")

    try:
        header = default_policy.header_factory("From", header_value)
    except (ValueError, IndexError, email_errors.HeaderParseError) as e:
        raise AddressParseError(header_value, str(e)) from e
    if header.defects:
        # unclosed angle-addr or domain-literal, stray characters
        raise AddressParseError(header_value, str(header.defects[0]))

    addresses = getaddresses([header_value])
    if len(addresses) != 1:
        raise AddressParseError(
            header_value, f"expected a single address, found {len(addresses)}"
        )

    _, addr_spec = addresses[0]
    if not addr_spec:
        raise AddressParseError(header_value, "no address found")

    try:
        address = Address(addr_spec=addr_spec)
    except (ValueError, IndexError, email_errors.HeaderParseError) as e:
        raise AddressParseError(header_value, str(e)) from e

    if not address.username or not address.domain:
        raise AddressParseError(header_value, "address must have a local part and a domain")

    return address.addr_spec


def parse_sent_date(header_value: str | None) -> datetime:
    """
    Parse a Date header.

    Raises:
        DateParseError: If the header is missing or not an RFC 5322 date
    """
    if not header_value or not header_value.strip():
        raise DateParseError(header_value, "missing Date header")

    try:
        return parsedate_to_datetime(header_value)
    except (TypeError, ValueError, IndexError, OverflowError) as e:
        raise DateParseError(header_value, str(e) or "malformed date") from e


def process_header(message: ParsedMessage) -> SenderDate:
    """
    Extract the sender address and destination key from a message header.

    The key uses the calendar date in the Date header's own offset.
    """
    address = parse_sender(message.lookup("From"))
    sent_at = parse_sent_date(message.lookup("Date"))
    return SenderDate(
        address=address,
        sent_at=sent_at,
        object_key=build_object_key(sent_at.date()),
    )


def validate_sender(address: str, expected: str) -> None:
    """
    Check that the sender address contains the allow-listed substring.

    Raises:
        SenderValidationError: If it does not
    """
    if expected not in address:
        raise SenderValidationError(address, expected)


def process_email(
    raw_email: bytes,
    *,
    ctx: InvocationContext,
    store: ObjectWriter,
) -> str:
    """
    Validate an FFIS email and copy it into the grants source-data bucket.

    The original bytes are written unchanged, so redelivery of the same
    email overwrites the same object with the same content.

    Args:
        raw_email: Raw email content
        ctx: Invocation context for the record
        store: Destination object writer

    Returns:
        Destination object key
    """
    settings = ctx.settings
    message = parse_message(raw_email)
    header = process_header(message)

    log = ctx.log.bind(sender=header.address, destination_key=header.object_key)
    validate_sender(header.address, settings.ffis_digest_email_address)

    ctx.scope.raise_if_cancelled()
    store.put_object(
        settings.grants_source_data_bucket_name,
        header.object_key,
        raw_email,
        server_side_encryption=settings.s3_server_side_encryption,
    )

    log.info("email_moved", destination_bucket=settings.grants_source_data_bucket_name)
    ctx.metrics.increment(MOVED_METRIC)
    return header.object_key
