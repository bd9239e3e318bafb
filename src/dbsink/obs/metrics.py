"""Per-writer counters for dbsink."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dbsink.utils.time import utc_now


@dataclass
class WriterMetrics:
    """
    Counters for a single batch writer.

    A writer is driven by one thread, so the counters are not locked.
    """

    records_written: int = 0
    batches_executed: int = 0
    rows_flushed: int = 0

    write_errors: int = 0
    best_effort_binds: int = 0
    close_errors: int = 0

    start_time: datetime = field(default_factory=utc_now)
    last_flush_time: datetime | None = None

    def record_flush(self, rows: int) -> None:
        """Record an executed batch of `rows` rows."""
        self.batches_executed += 1
        self.rows_flushed += rows
        self.last_flush_time = utc_now()

    def get_uptime_seconds(self) -> float:
        return (utc_now() - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """
        Convert metrics to a dictionary for JSON serialization.

        Returns:
            Dictionary with all metric values
        """
        return {
            "records_written": self.records_written,
            "batches_executed": self.batches_executed,
            "rows_flushed": self.rows_flushed,
            "write_errors": self.write_errors,
            "best_effort_binds": self.best_effort_binds,
            "close_errors": self.close_errors,
            "uptime_seconds": self.get_uptime_seconds(),
            "start_time": self.start_time.isoformat(),
            "last_flush_time": (
                self.last_flush_time.isoformat() if self.last_flush_time else None
            ),
        }

    def reset(self) -> None:
        """Reset all counters (useful for testing)."""
        self.records_written = 0
        self.batches_executed = 0
        self.rows_flushed = 0
        self.write_errors = 0
        self.best_effort_binds = 0
        self.close_errors = 0
        self.start_time = utc_now()
        self.last_flush_time = None
