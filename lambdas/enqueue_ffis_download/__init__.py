"""
EnqueueFFISDownload Lambda

Extracts the spreadsheet download URL from FFIS emails stored in S3 by SES
and sends it to the download queue.

Flow:
    FFIS email
    → SES Receipt Rule (S3 action)
    → S3 ObjectCreated notification
    → This Lambda
    → SQS: download URL
"""

from lambdas.enqueue_ffis_download.handler import handle_s3_event, lambda_handler
from lambdas.enqueue_ffis_download.url_extractor import (
    find_download_url,
    get_plaintext_body,
    process_email,
)

__all__ = [
    "find_download_url",
    "get_plaintext_body",
    "handle_s3_event",
    "lambda_handler",
    "process_email",
]
