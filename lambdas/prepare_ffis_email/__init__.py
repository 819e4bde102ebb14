"""
PrepareFFISEmail Lambda

Validates FFIS digest emails stored in S3 by SES and copies them into the
grants source-data bucket, keyed by the date the email was sent.

Flow:
    FFIS digest email
    → SES Receipt Rule (S3 action)
    → S3 ObjectCreated notification
    → This Lambda
    → S3: sources/{Y}/{M}/{D}/ffis/raw.eml
"""

from lambdas.prepare_ffis_email.email_processor import (
    SenderDate,
    build_object_key,
    process_email,
    process_header,
    validate_sender,
)
from lambdas.prepare_ffis_email.handler import handle_s3_event, lambda_handler

__all__ = [
    "SenderDate",
    "build_object_key",
    "handle_s3_event",
    "lambda_handler",
    "process_email",
    "process_header",
    "validate_sender",
]
