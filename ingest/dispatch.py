"""
Event Dispatcher

Fans a batch of S3 notifications out to a thread pool, one task per record,
and joins every task before aggregating the outcome. A failing record never
stops or corrupts its siblings; all errors are kept, not just the first.

Flow:
1. Submit one task per notification
2. Each task checks the cancellation scope, then runs the record pipeline
3. Failures are captured per record and counted with a metric
4. Futures are joined in submission order so the outcome does not depend
   on completion order
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence

from ingest.context import InvocationContext
from ingest.exceptions import InvocationCancelledError
from ingest.models.notifications import S3Notification

FAILED_METRIC = "email.failed"

RecordProcessor = Callable[[S3Notification, InvocationContext], object]


@dataclass(frozen=True)
class RecordFailure:
    """A record and the error that stopped it."""

    notification: S3Notification
    error: BaseException

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, InvocationCancelledError)


@dataclass
class InvocationOutcome:
    """Aggregate result of one invocation."""

    total: int = 0
    failures: list[RecordFailure] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.failures) > self.total:
            raise ValueError("failures cannot exceed total records")

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def succeeded_count(self) -> int:
        return self.total - self.failed_count

    @property
    def ok(self) -> bool:
        """Whether every record succeeded."""
        return not self.failures

    @property
    def errors(self) -> list[BaseException]:
        return [f.error for f in self.failures]

    def summary(self) -> dict[str, int]:
        return {
            "records": self.total,
            "succeeded": self.succeeded_count,
            "failed": self.failed_count,
        }


def _run_record(
    notification: S3Notification,
    process: RecordProcessor,
    ctx: InvocationContext,
) -> RecordFailure | None:
    """Run the pipeline for one record, capturing its failure."""
    record_ctx = ctx.bind(
        event_name=notification.event_name,
        source_bucket=notification.bucket,
        source_object_key=notification.key,
    )
    try:
        record_ctx.scope.raise_if_cancelled()
        process(notification, record_ctx)
    except InvocationCancelledError as e:
        record_ctx.log.warning("record_cancelled", reason=e.reason)
        record_ctx.metrics.increment(FAILED_METRIC)
        return RecordFailure(notification, e)
    except Exception as e:
        record_ctx.log.error(
            "record_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        record_ctx.metrics.increment(FAILED_METRIC)
        return RecordFailure(notification, e)
    return None


def dispatch(
    notifications: Sequence[S3Notification],
    process: RecordProcessor,
    *,
    ctx: InvocationContext,
    max_workers: int | None = None,
) -> InvocationOutcome:
    """
    Process every notification concurrently and aggregate the results.

    Args:
        notifications: Records of the invocation, in event order
        process: Record pipeline; raises on failure, return value is ignored
        ctx: Invocation context shared (read-only) by all record tasks
        max_workers: Thread pool size (default: settings.max_concurrent_records)

    Returns:
        InvocationOutcome with failures ordered by record position
    """
    outcome = InvocationOutcome(total=len(notifications))
    if not notifications:
        return outcome

    workers = min(max_workers or ctx.settings.max_concurrent_records, len(notifications))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="record") as executor:
        futures = [
            executor.submit(_run_record, notification, process, ctx)
            for notification in notifications
        ]
        results = [future.result() for future in futures]

    outcome.failures = [failure for failure in results if failure is not None]

    if not outcome.ok:
        ctx.log.warning(
            "failures occurred during invocation; check logs for details",
            count_errors=outcome.failed_count,
            count_s3_events=outcome.total,
            count_cancelled=sum(1 for f in outcome.failures if f.cancelled),
        )
    return outcome
