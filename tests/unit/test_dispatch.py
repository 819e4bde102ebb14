"""
Unit tests for the record dispatcher, cancellation scope and metrics.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from ingest.cancellation import CancellationScope
from ingest.dispatch import InvocationOutcome, RecordFailure, dispatch
from ingest.exceptions import InvocationCancelledError, InvocationError
from ingest.metrics import MetricsEmitter
from ingest.models.notifications import S3Notification


def notifications(count: int) -> list[S3Notification]:
    return [S3Notification(bucket="bucket", key=f"key-{i}") for i in range(count)]


# ============================================================================
# Dispatch Tests
# ============================================================================

class TestDispatch:
    """Tests for dispatch."""

    def test_empty_batch(self, ctx):
        """Test no records yields an empty, successful outcome."""
        outcome = dispatch([], MagicMock(), ctx=ctx)

        assert outcome.total == 0
        assert outcome.ok

    def test_every_record_is_processed_once(self, ctx):
        """Test each notification reaches the processor exactly once."""
        seen = []
        lock = threading.Lock()

        def process(notification, record_ctx):
            with lock:
                seen.append(notification.key)

        outcome = dispatch(notifications(25), process, ctx=ctx)

        assert outcome.ok
        assert outcome.total == 25
        assert sorted(seen) == sorted(f"key-{i}" for i in range(25))

    def test_failures_are_counted_and_ordered(self, ctx):
        """Test failures are kept in record order regardless of completion order."""

        def process(notification, record_ctx):
            index = int(notification.key.split("-")[1])
            # later records finish first
            time.sleep((10 - index) * 0.005)
            if index % 3 == 0:
                raise ValueError(notification.key)

        outcome = dispatch(notifications(10), process, ctx=ctx, max_workers=10)

        assert outcome.total == 10
        assert outcome.failed_count == 4
        assert outcome.succeeded_count == 6
        assert [str(e) for e in outcome.errors] == ["key-0", "key-3", "key-6", "key-9"]
        assert [f.notification.key for f in outcome.failures] == ["key-0", "key-3", "key-6", "key-9"]

    def test_one_failure_does_not_stop_siblings(self, ctx):
        """Test the remaining records run after a failure."""
        processed = []
        lock = threading.Lock()

        def process(notification, record_ctx):
            if notification.key == "key-0":
                raise RuntimeError("boom")
            with lock:
                processed.append(notification.key)

        outcome = dispatch(notifications(3), process, ctx=ctx, max_workers=1)

        assert outcome.failed_count == 1
        assert sorted(processed) == ["key-1", "key-2"]

    def test_records_run_concurrently(self, ctx):
        """Test records overlap in time up to the worker limit."""
        barrier = threading.Barrier(3, timeout=5)

        def process(notification, record_ctx):
            barrier.wait()

        outcome = dispatch(notifications(3), process, ctx=ctx, max_workers=3)

        assert outcome.ok

    def test_record_context_is_bound_per_record(self, ctx):
        """Test each task gets its own logger context and shares the scope."""
        contexts = {}
        lock = threading.Lock()

        def process(notification, record_ctx):
            with lock:
                contexts[notification.key] = record_ctx

        dispatch(notifications(2), process, ctx=ctx)

        assert contexts["key-0"] is not contexts["key-1"]
        assert contexts["key-0"].scope is ctx.scope
        assert contexts["key-0"].settings is ctx.settings

    def test_cancelled_scope_fails_all_records(self, ctx):
        """Test records of a canceled invocation are never processed."""
        process = MagicMock()
        ctx.scope.cancel("deadline exceeded")

        outcome = dispatch(notifications(3), process, ctx=ctx)

        process.assert_not_called()
        assert outcome.failed_count == 3
        assert all(f.cancelled for f in outcome.failures)
        assert all(e.reason == "deadline exceeded" for e in outcome.errors)

    def test_failure_metric_per_failed_record(self, ctx):
        """Test the failure metric is emitted once per failed record."""

        def process(notification, record_ctx):
            if notification.key != "key-1":
                raise ValueError("bad")

        with patch.object(MetricsEmitter, "increment") as increment:
            dispatch(notifications(3), process, ctx=ctx)

        assert increment.call_count == 2
        increment.assert_called_with("email.failed")

    def test_metric_failure_does_not_change_outcome(self, ctx):
        """Test a broken metrics sink does not affect record results."""
        ctx.metrics._log = MagicMock()
        ctx.metrics._log.info.side_effect = RuntimeError("sink down")

        def process(notification, record_ctx):
            if notification.key == "key-0":
                raise ValueError("bad")

        outcome = dispatch(notifications(2), process, ctx=ctx)

        assert outcome.failed_count == 1
        assert isinstance(outcome.errors[0], ValueError)


class TestInvocationOutcome:
    """Tests for InvocationOutcome and InvocationError."""

    def test_failures_cannot_exceed_total(self):
        """Test an inconsistent outcome is rejected."""
        failure = RecordFailure(S3Notification(bucket="b", key="k"), ValueError("x"))

        with pytest.raises(ValueError):
            InvocationOutcome(total=0, failures=[failure])

    def test_summary(self):
        """Test summary counts."""
        failure = RecordFailure(S3Notification(bucket="b", key="k"), ValueError("x"))

        outcome = InvocationOutcome(total=3, failures=[failure])

        assert outcome.summary() == {"records": 3, "succeeded": 2, "failed": 1}
        assert not outcome.ok

    def test_invocation_error_lists_every_failure(self):
        """Test the aggregate error names each failed object and error."""
        outcome = InvocationOutcome(
            total=3,
            failures=[
                RecordFailure(S3Notification(bucket="b", key="one"), ValueError("first")),
                RecordFailure(S3Notification(bucket="b", key="two"), InvocationCancelledError()),
            ],
        )

        error = InvocationError(outcome)

        message = str(error)
        assert message.startswith("2 of 3 records failed")
        assert "s3://b/one: ValueError: first" in message
        assert all(f.notification.uri in message for f in outcome.failures)
        assert "s3://b/two: InvocationCancelledError" in message
        assert error.context == {"count_errors": 2, "count_s3_events": 3}
        assert len(error.errors) == 2


# ============================================================================
# Cancellation Tests
# ============================================================================

class TestCancellationScope:
    """Tests for CancellationScope."""

    def test_new_scope_is_not_cancelled(self):
        scope = CancellationScope()

        assert not scope.cancelled
        scope.raise_if_cancelled()

    def test_cancel_raises_with_reason(self):
        """Test a canceled scope raises with its reason."""
        scope = CancellationScope()
        scope.cancel("shutdown")

        with pytest.raises(InvocationCancelledError) as exc_info:
            scope.raise_if_cancelled()

        assert exc_info.value.reason == "shutdown"

    def test_first_reason_wins(self):
        """Test later cancellations keep the original reason."""
        scope = CancellationScope()
        scope.cancel("first")
        scope.cancel("second")

        assert scope.reason == "first"

    def test_deadline_cancels_scope(self):
        """Test an armed deadline cancels once it elapses."""
        scope = CancellationScope()
        scope.cancel_after(0.01)

        deadline = time.monotonic() + 2
        while not scope.cancelled and time.monotonic() < deadline:
            time.sleep(0.01)

        assert scope.cancelled
        assert scope.reason == "deadline exceeded"

    def test_non_positive_deadline_cancels_immediately(self):
        scope = CancellationScope()
        scope.cancel_after(-0.4)

        assert scope.cancelled

    def test_exit_disarms_deadline(self):
        """Test leaving the scope stops a pending deadline."""
        with CancellationScope() as scope:
            scope.cancel_after(0.05)

        time.sleep(0.1)
        assert not scope.cancelled


# ============================================================================
# Metrics Tests
# ============================================================================

class TestMetricsEmitter:
    """Tests for MetricsEmitter."""

    def test_payload_is_embedded_metric_format(self):
        """Test the payload declares namespace, dimensions and the count."""
        emitter = MetricsEmitter("GrantsIngest", environment="staging", handler="PrepareFFISEmail")

        payload = emitter.build_payload("email.moved")

        directive = payload["_aws"]["CloudWatchMetrics"][0]
        assert directive["Namespace"] == "GrantsIngest"
        assert directive["Dimensions"] == [["Environment", "Handler"]]
        assert directive["Metrics"] == [{"Name": "email.moved", "Unit": "Count"}]
        assert payload["Environment"] == "staging"
        assert payload["Handler"] == "PrepareFFISEmail"
        assert payload["email.moved"] == 1
        assert isinstance(payload["_aws"]["Timestamp"], int)

    def test_increment_logs_payload(self):
        """Test increment writes one metric record."""
        logger = MagicMock()
        emitter = MetricsEmitter("ns", environment="development", handler="h", logger=logger)

        emitter.increment("email.failed", 2)

        logger.info.assert_called_once()
        event, = logger.info.call_args.args
        assert event == "metric"
        assert logger.info.call_args.kwargs["email.failed"] == 2

    def test_increment_never_raises(self):
        """Test emit errors are swallowed."""
        logger = MagicMock()
        logger.info.side_effect = RuntimeError("sink down")
        emitter = MetricsEmitter("ns", environment="development", handler="h", logger=logger)

        emitter.increment("email.failed")
