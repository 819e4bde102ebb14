"""
Invocation Context

Everything a record task needs besides its collaborators: settings, a bound
logger, the cancellation scope and the metrics emitter. One context is
built per invocation and copied (never mutated) per record.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any

import structlog

from ingest.cancellation import CancellationScope
from ingest.config import Settings
from ingest.metrics import MetricsEmitter


@dataclass(frozen=True)
class InvocationContext:
    """Per-invocation dependencies passed explicitly to each component."""

    settings: Settings
    log: Any
    scope: CancellationScope
    metrics: MetricsEmitter
    request_id: str = "local"

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        handler: str,
        request_id: str = "local",
        scope: CancellationScope | None = None,
    ) -> "InvocationContext":
        """Build a fresh context for one invocation."""
        logger = structlog.get_logger(handler).bind(request_id=request_id)
        return cls(
            settings=settings,
            log=logger,
            scope=scope or CancellationScope(),
            metrics=MetricsEmitter(
                settings.metrics_namespace,
                environment=settings.environment,
                handler=handler,
                logger=logger,
            ),
            request_id=request_id,
        )

    def bind(self, **values: Any) -> "InvocationContext":
        """Return a copy whose logger carries additional context."""
        return dataclasses.replace(self, log=self.log.bind(**values))
