"""
Pytest Configuration and Shared Fixtures

Provides moto AWS mocking, FFIS email fixtures, in-memory collaborators
and invocation contexts.
"""

import os
from typing import Iterator

import boto3
import pytest
from moto import mock_aws

# Set test environment before importing application modules
os.environ["GRANTS_SOURCE_DATA_BUCKET_NAME"] = "test-source-data-bucket"
os.environ["FFIS_DIGEST_EMAIL_ADDRESS"] = "fake@ffis.org"
os.environ["FFIS_URL_PATTERN"] = r"https://mcusercontent.com/.+\.xlsx"
os.environ["S3_USE_PATH_STYLE"] = "true"
os.environ["AWS_REGION"] = "us-west-2"
os.environ["AWS_DEFAULT_REGION"] = "us-west-2"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"

from ingest.cancellation import CancellationScope  # noqa: E402
from ingest.config import Settings, get_settings  # noqa: E402
from ingest.context import InvocationContext  # noqa: E402
from tests.fixtures.ffis import (  # noqa: E402
    EMAIL_BUCKET,
    QUEUE_NAME,
    RECEIVED_EMAIL_TEMPLATE,
    SOURCE_DATA_BUCKET,
    load_email,
)
from tests.mocks.fake_aws import InMemoryObjectStore, RecordingQueue  # noqa: E402

# --- Settings Fixtures ---


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Reload settings from the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, with a configured download queue."""
    return Settings(
        ffis_download_queue_url="https://sqs.us-west-2.amazonaws.com/123456789012/ffis-downloads",
    )


@pytest.fixture
def scope() -> CancellationScope:
    return CancellationScope()


@pytest.fixture
def ctx(settings: Settings, scope: CancellationScope) -> InvocationContext:
    """Invocation context for a test invocation."""
    return InvocationContext.create(
        settings,
        handler="TestHandler",
        request_id="test-request",
        scope=scope,
    )


# --- Email Fixtures ---


@pytest.fixture
def ffis_digest_email() -> bytes:
    """FFIS digest sent 2023-04-24 (-0500)."""
    return load_email("ffis_digest.eml")


@pytest.fixture
def received_email() -> bytes:
    """Minimal FFIS digest with a header block and plaintext body."""
    return RECEIVED_EMAIL_TEMPLATE


# --- Collaborator Fixtures ---


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


# --- AWS Mocking Fixtures ---


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    return {
        "aws_access_key_id": "testing",
        "aws_secret_access_key": "testing",
        "region_name": "us-west-2",
    }


@pytest.fixture
def mock_s3(aws_credentials):
    """Create mocked S3 email and source-data buckets."""
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        for bucket in (EMAIL_BUCKET, SOURCE_DATA_BUCKET):
            s3.create_bucket(
                Bucket=bucket,
                CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
            )
        yield s3


@pytest.fixture
def mock_sqs(aws_credentials):
    """Create a mocked SQS download queue. Yields (client, queue_url)."""
    with mock_aws():
        sqs = boto3.client("sqs", **aws_credentials)
        queue_url = sqs.create_queue(QueueName=QUEUE_NAME)["QueueUrl"]
        yield sqs, queue_url


@pytest.fixture
def mock_aws_all(aws_credentials):
    """
    Mock all AWS services used by the Lambdas.

    Provides buckets and the download queue in one mocked environment.
    """
    with mock_aws():
        s3 = boto3.client("s3", **aws_credentials)
        for bucket in (EMAIL_BUCKET, SOURCE_DATA_BUCKET):
            s3.create_bucket(
                Bucket=bucket,
                CreateBucketConfiguration={"LocationConstraint": "us-west-2"},
            )
        sqs = boto3.client("sqs", **aws_credentials)
        queue_url = sqs.create_queue(QueueName=QUEUE_NAME)["QueueUrl"]

        yield {
            "s3": s3,
            "sqs": sqs,
            "queue_url": queue_url,
        }
