# Shared Models
"""
Pydantic models for the events that trigger the ingest Lambdas.
"""

from ingest.models.notifications import S3Notification, parse_s3_event

__all__ = [
    "S3Notification",
    "parse_s3_event",
]
