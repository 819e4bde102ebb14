"""
Notification Models

Pydantic models for the S3 event notifications that trigger the ingest
Lambdas. One notification identifies one stored object.
"""

from typing import Any
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ingest.exceptions import InvalidEventError


class S3Notification(BaseModel):
    """A single S3 object notification."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1, description="Bucket holding the object")
    key: str = Field(..., min_length=1, description="Decoded object key")
    event_name: str = Field(
        default="",
        description="S3 event name, e.g. ObjectCreated:Put",
    )

    @property
    def uri(self) -> str:
        """S3 URI of the referenced object."""
        return f"s3://{self.bucket}/{self.key}"

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "S3Notification":
        """
        Build a notification from one entry of an S3 event's Records list.

        Object keys in S3 events are form-encoded and are decoded here.

        Raises:
            KeyError, TypeError: If the record lacks the S3 entity
            ValidationError: If bucket or key is empty
        """
        s3 = record["s3"]
        return cls(
            bucket=s3["bucket"]["name"],
            key=unquote_plus(s3["object"]["key"]),
            event_name=record.get("eventName", ""),
        )


def parse_s3_event(event: dict[str, Any]) -> list[S3Notification]:
    """
    Parse a Lambda S3 event into notifications, preserving record order.

    Args:
        event: Lambda event payload

    Returns:
        Notifications in record order (empty if the event has no records)

    Raises:
        InvalidEventError: If any record cannot be interpreted
    """
    records = event.get("Records") or []
    if not isinstance(records, list):
        raise InvalidEventError("Records is not a list")

    notifications = []
    for index, record in enumerate(records):
        try:
            notifications.append(S3Notification.from_record(record))
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise InvalidEventError(
                f"record is not an S3 notification: {e}", record_index=index
            ) from e
    return notifications
