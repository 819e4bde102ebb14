# Shared Infrastructure for the Grants Ingest Lambdas
"""
Shared infrastructure for the FFIS email Lambdas.

This package provides:
- Configuration management
- Custom exceptions
- S3 notification models
- Email parsing
- Concurrent record dispatch with aggregated failures
- S3 and SQS tools
"""

from ingest.config import Settings, get_settings
from ingest.exceptions import (
    IngestError,
    InvocationCancelledError,
    InvocationError,
    ParseError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "IngestError",
    "InvocationCancelledError",
    "InvocationError",
    "ParseError",
]
