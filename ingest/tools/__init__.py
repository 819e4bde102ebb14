# Shared Tools
"""
Storage and queue collaborators for the ingest Lambdas.
"""

from ingest.tools.s3 import (
    ObjectReader,
    ObjectStore,
    ObjectWriter,
    S3ObjectStore,
)
from ingest.tools.sqs import (
    MessageSender,
    SQSQueue,
)

__all__ = [
    "MessageSender",
    "ObjectReader",
    "ObjectStore",
    "ObjectWriter",
    "S3ObjectStore",
    "SQSQueue",
]
