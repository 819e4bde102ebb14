"""
S3 Tools

Object storage reads and writes used by the ingest Lambdas.
Handlers depend on the ObjectReader/ObjectWriter capabilities so tests can
substitute in-memory doubles; S3ObjectStore is the boto3-backed
implementation.
"""

from typing import BinaryIO, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ingest.config import Settings, get_settings
from ingest.exceptions import (
    ObjectAccessError,
    ObjectNotFoundError,
    TransientFetchError,
    WriteError,
)

log = structlog.get_logger()

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})
ACCESS_DENIED_CODES = frozenset({"AccessDenied", "Forbidden", "403"})


class ObjectReader(Protocol):
    def get_object(self, bucket: str, key: str) -> bytes: ...


class ObjectWriter(Protocol):
    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | BinaryIO,
        *,
        server_side_encryption: str = "AES256",
    ) -> None: ...


class ObjectStore(ObjectReader, ObjectWriter, Protocol):
    """Read and write access to object storage."""


def _get_client(settings: Settings | None = None):
    """Get S3 client."""
    settings = settings or get_settings()
    return boto3.client("s3", **settings.s3_config)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3ObjectStore:
    """S3-backed ObjectStore."""

    def __init__(self, client=None) -> None:
        self._client = client if client is not None else _get_client()

    def get_object(self, bucket: str, key: str) -> bytes:
        """
        Read the full content of an object.

        Args:
            bucket: Source bucket
            key: Source object key

        Returns:
            Object content as bytes

        Raises:
            ObjectNotFoundError: If the bucket or key does not exist
            ObjectAccessError: If access is denied
            TransientFetchError: For any other service or network failure
        """
        log.debug("getting_object", bucket=bucket, key=key)

        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            with response["Body"] as body:
                content = body.read()
        except ClientError as e:
            code = _error_code(e)
            if code in NOT_FOUND_CODES:
                log.warning("s3_object_not_found", bucket=bucket, key=key)
                raise ObjectNotFoundError(bucket, key, str(e)) from e
            if code in ACCESS_DENIED_CODES:
                log.error("s3_access_denied", bucket=bucket, key=key, error=str(e))
                raise ObjectAccessError(bucket, key, str(e)) from e
            log.error("s3_get_failed", bucket=bucket, key=key, error=str(e))
            raise TransientFetchError(bucket, key, str(e)) from e
        except BotoCoreError as e:
            log.error("s3_get_failed", bucket=bucket, key=key, error=str(e))
            raise TransientFetchError(bucket, key, str(e)) from e

        log.debug("object_fetched", bucket=bucket, key=key, size_bytes=len(content))
        return content

    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes | BinaryIO,
        *,
        server_side_encryption: str = "AES256",
    ) -> None:
        """
        Write an object, replacing any existing object at the key.

        Bytes are sent with PutObject; file-like bodies are streamed with
        a managed (possibly multipart) upload.

        Args:
            bucket: Destination bucket
            key: Destination object key
            body: Content as bytes or a readable binary stream
            server_side_encryption: SSE algorithm, or "NONE" to omit

        Raises:
            WriteError: If the upload fails
        """
        extra_args = {}
        if server_side_encryption and server_side_encryption != "NONE":
            extra_args["ServerSideEncryption"] = server_side_encryption

        log.info(
            "putting_object",
            bucket=bucket,
            key=key,
            streaming=not isinstance(body, (bytes, bytearray)),
        )

        try:
            if isinstance(body, (bytes, bytearray)):
                self._client.put_object(Bucket=bucket, Key=key, Body=bytes(body), **extra_args)
            else:
                self._client.upload_fileobj(body, bucket, key, ExtraArgs=extra_args or None)
        except (ClientError, BotoCoreError) as e:
            log.error("s3_put_failed", bucket=bucket, key=key, error=str(e))
            raise WriteError(bucket, key, str(e)) from e

        log.info("object_written", bucket=bucket, key=key)
