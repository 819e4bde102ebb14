"""
EnqueueFFISDownload Lambda Handler

Main entry point for FFIS emails that announce a new spreadsheet download.
Extracts the single download URL from each email and sends it to SQS.

Trigger: S3 ObjectCreated:* notifications on the SES email bucket
Output: SQS message on FFIS_DOWNLOAD_QUEUE_URL whose body is the download URL

Flow:
1. Parse S3 notifications from the event
2. Fetch each email from S3 (one concurrent task per record)
3. Locate the plaintext body and the single URL matching FFIS_URL_PATTERN
4. Send the URL to the download queue
5. Raise if any record failed so the invocation is retried
"""

import json
import logging
from typing import Any, Sequence

import structlog

from ingest.config import get_settings
from ingest.context import InvocationContext
from ingest.dispatch import InvocationOutcome, dispatch
from ingest.exceptions import IngestError, InvocationError
from ingest.models.notifications import S3Notification, parse_s3_event
from ingest.tools.s3 import ObjectReader, S3ObjectStore
from ingest.tools.sqs import MessageSender, SQSQueue
from lambdas.enqueue_ffis_download.url_extractor import process_email

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

HANDLER_NAME = "EnqueueFFISDownload"


def handle_s3_event(
    notifications: Sequence[S3Notification],
    *,
    ctx: InvocationContext,
    store: ObjectReader,
    queue: MessageSender,
) -> InvocationOutcome:
    """
    Queue the download URL of every notified FFIS email.

    Args:
        notifications: S3 notifications for the invocation
        ctx: Invocation context
        store: Object reader for the source emails
        queue: Download queue

    Returns:
        InvocationOutcome describing every failed record
    """

    def _process_record(notification: S3Notification, record_ctx: InvocationContext) -> str:
        record_ctx.scope.raise_if_cancelled()
        raw_email = store.get_object(notification.bucket, notification.key)
        return process_email(raw_email, ctx=record_ctx, queue=queue)

    return dispatch(notifications, _process_record, ctx=ctx)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda handler for FFIS download emails.

    Args:
        event: S3 event notification
        context: Lambda context

    Returns:
        Response dict with processing summary

    Raises:
        InvocationError: If any record failed
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    request_id = getattr(context, "aws_request_id", "local")

    if not settings.ffis_download_queue_url:
        raise IngestError("FFIS_DOWNLOAD_QUEUE_URL is not set")

    ctx = InvocationContext.create(settings, handler=HANDLER_NAME, request_id=request_id)
    notifications = parse_s3_event(event)

    ctx.log.info("processing_ffis_download_emails", count_s3_events=len(notifications))

    with ctx.scope:
        if hasattr(context, "get_remaining_time_in_millis"):
            remaining_ms = context.get_remaining_time_in_millis() - settings.cancellation_margin_ms
            ctx.scope.cancel_after(remaining_ms / 1000)
        outcome = handle_s3_event(
            notifications,
            ctx=ctx,
            store=S3ObjectStore(),
            queue=SQSQueue(),
        )

    if not outcome.ok:
        raise InvocationError(outcome)

    ctx.log.info("ffis_download_emails_processed", **outcome.summary())
    return {
        "statusCode": 200,
        "body": json.dumps({"request_id": request_id, **outcome.summary()}),
    }
