"""
Metrics

Count metrics written as CloudWatch Embedded Metric Format (EMF) log
records. Emission is fire-and-forget: a failure to emit is logged and never
changes the outcome of the record being processed.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

log = structlog.get_logger()


class MetricsEmitter:
    """Emit EMF count metrics through a structlog logger."""

    def __init__(
        self,
        namespace: str,
        *,
        environment: str,
        handler: str,
        logger: Any = None,
    ) -> None:
        self.namespace = namespace
        self.dimensions = {"Environment": environment, "Handler": handler}
        self._log = logger if logger is not None else log

    def build_payload(self, name: str, value: int | float = 1) -> dict[str, Any]:
        """Build the EMF document for a single count metric."""
        return {
            "_aws": {
                "Timestamp": int(datetime.now(timezone.utc).timestamp() * 1000),
                "CloudWatchMetrics": [
                    {
                        "Namespace": self.namespace,
                        "Dimensions": [list(self.dimensions.keys())],
                        "Metrics": [{"Name": name, "Unit": "Count"}],
                    }
                ],
            },
            **self.dimensions,
            name: value,
        }

    def increment(self, name: str, value: int | float = 1) -> None:
        """Emit a count metric without raising."""
        try:
            self._log.info("metric", **self.build_payload(name, value))
        except Exception as e:
            log.warning("metric_emit_failed", metric=name, error=str(e))
