"""
Integration tests for the grants ingest Lambdas.

These tests use mocked AWS services (moto) to run each Lambda end to end,
from S3 notification to the stored object or queued message.
"""
