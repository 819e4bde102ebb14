"""
SQS Tools

Single-message publication to SQS. No batching and no deduplication:
consumers of the queue must tolerate duplicate messages.
"""

from typing import Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ingest.config import Settings, get_settings
from ingest.exceptions import QueueSendError

log = structlog.get_logger()


class MessageSender(Protocol):
    def send_message(self, queue_url: str, body: str) -> str: ...


def _get_client(settings: Settings | None = None):
    """Get SQS client."""
    settings = settings or get_settings()
    return boto3.client("sqs", **settings.sqs_config)


class SQSQueue:
    """SQS-backed MessageSender."""

    def __init__(self, client=None) -> None:
        self._client = client if client is not None else _get_client()

    def send_message(self, queue_url: str, body: str) -> str:
        """
        Send one message to a queue.

        Args:
            queue_url: Destination queue URL
            body: Message body

        Returns:
            SQS message ID

        Raises:
            QueueSendError: If the message could not be sent
        """
        log.info("sending_message", queue_url=queue_url, body_length=len(body))

        try:
            response = self._client.send_message(QueueUrl=queue_url, MessageBody=body)
        except ClientError as e:
            error = e.response.get("Error", {})
            log.error(
                "sqs_send_failed",
                queue_url=queue_url,
                error_code=error.get("Code"),
                error=str(e),
            )
            raise QueueSendError(
                queue_url,
                error_code=error.get("Code"),
                error_message=error.get("Message") or str(e),
            ) from e
        except BotoCoreError as e:
            log.error("sqs_send_failed", queue_url=queue_url, error=str(e))
            raise QueueSendError(queue_url, error_message=str(e)) from e

        message_id = response["MessageId"]
        log.info("message_sent", queue_url=queue_url, message_id=message_id)
        return message_id
