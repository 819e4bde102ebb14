"""
Custom Exceptions for the Grants Ingest Lambdas

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ingest.dispatch import InvocationOutcome


class IngestError(Exception):
    """Base exception for the grants ingest Lambdas."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidEventError(IngestError):
    """Lambda event could not be interpreted as S3 notifications."""

    def __init__(self, error_message: str, record_index: int | None = None) -> None:
        self.record_index = record_index
        super().__init__(
            f"Invalid S3 event: {error_message}",
            record_index=record_index,
        )


# --- Fetch errors ---


class FetchError(IngestError):
    """Source object could not be read from S3."""

    def __init__(
        self,
        bucket: str,
        key: str,
        error_message: str | None = None,
        *,
        reason: str = "fetch failed",
    ) -> None:
        self.bucket = bucket
        self.key = key
        super().__init__(
            f"S3 {reason} for s3://{bucket}/{key}: {error_message or 'Unknown error'}",
            bucket=bucket,
            key=key,
        )


class ObjectNotFoundError(FetchError):
    """Source object does not exist."""

    def __init__(self, bucket: str, key: str, error_message: str | None = None) -> None:
        super().__init__(bucket, key, error_message, reason="object not found")


class ObjectAccessError(FetchError):
    """Access to the source object was denied."""

    def __init__(self, bucket: str, key: str, error_message: str | None = None) -> None:
        super().__init__(bucket, key, error_message, reason="access denied")


class TransientFetchError(FetchError):
    """Network or service failure while reading the source object."""

    def __init__(self, bucket: str, key: str, error_message: str | None = None) -> None:
        super().__init__(bucket, key, error_message, reason="transient failure")


# --- Message errors ---


class ParseError(IngestError):
    """Raw bytes are not a well-formed mail message."""

    def __init__(self, error_message: str) -> None:
        super().__init__(f"Error parsing email data: {error_message}")


class AddressParseError(IngestError):
    """From header is not exactly one valid mail address."""

    def __init__(self, header_value: str | None, error_message: str) -> None:
        self.header_value = header_value
        super().__init__(
            f"Error parsing sender address: {error_message}",
            header_value=header_value,
        )


class DateParseError(IngestError):
    """Date header is not a valid RFC 5322 date."""

    def __init__(self, header_value: str | None, error_message: str) -> None:
        self.header_value = header_value
        super().__init__(
            f"Error parsing sent date: {error_message}",
            header_value=header_value,
        )


class SenderValidationError(IngestError):
    """Sender address does not contain the allow-listed substring."""

    def __init__(self, address: str, expected: str) -> None:
        self.address = address
        self.expected = expected
        super().__init__(
            "origin address does not match expected sender",
            address=address,
            expected=expected,
        )


class NoPlaintextPartError(IngestError):
    """Message has no text/plain body part."""

    def __init__(self, content_type: str | None = None) -> None:
        self.content_type = content_type
        super().__init__(
            "no plaintext body found in email",
            content_type=content_type,
        )


class NoMatchesFoundError(IngestError):
    """Plaintext body contains no URL matching the configured pattern."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        super().__init__("no matching URLs found in email", pattern=pattern)


class MultipleFoundError(IngestError):
    """Plaintext body contains more than one distinct matching URL."""

    def __init__(self, pattern: str, matches: list[str]) -> None:
        self.pattern = pattern
        self.matches = matches
        super().__init__(
            f"multiple matching URLs found in email ({len(matches)} distinct)",
            pattern=pattern,
            matches=matches,
        )


# --- Forwarding errors ---


class WriteError(IngestError):
    """Destination object could not be written to S3."""

    def __init__(self, bucket: str, key: str, error_message: str | None = None) -> None:
        self.bucket = bucket
        self.key = key
        super().__init__(
            f"S3 upload failed for s3://{bucket}/{key}: {error_message or 'Unknown error'}",
            bucket=bucket,
            key=key,
        )


class QueueSendError(IngestError):
    """Message could not be sent to SQS."""

    def __init__(
        self,
        queue_url: str,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self.queue_url = queue_url
        self.error_code = error_code
        super().__init__(
            f"SQS send failed for '{queue_url}': {error_message or 'Unknown error'}",
            queue_url=queue_url,
            error_code=error_code,
        )


# --- Invocation errors ---


class InvocationCancelledError(IngestError):
    """Invocation was canceled before the record finished processing."""

    def __init__(self, reason: str = "invocation canceled") -> None:
        self.reason = reason
        super().__init__(f"Record processing canceled: {reason}")


class InvocationError(IngestError):
    """One or more records in the invocation failed."""

    def __init__(self, outcome: "InvocationOutcome") -> None:
        self.outcome = outcome
        details = "; ".join(
            f"{f.notification.uri}: "
            f"{type(f.error).__name__}: {f.error}"
            for f in outcome.failures
        )
        super().__init__(
            f"{outcome.failed_count} of {outcome.total} records failed: {details}",
            count_errors=outcome.failed_count,
            count_s3_events=outcome.total,
        )

    @property
    def errors(self) -> list[BaseException]:
        """Individual record errors in batch order."""
        return self.outcome.errors
