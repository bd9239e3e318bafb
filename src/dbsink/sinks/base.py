"""Base sink interface for dbsink."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class BaseSink(ABC):
    """
    Abstract base class for record output sinks.

    The surrounding pipeline drives every sink through the same lifecycle:
        1. `open()` is called once per parallel instance
        2. `write()` is called for each record
        3. `flush()` may be called to force buffered records out
        4. `close()` is called exactly once at shutdown, after success or failure

    Sinks should handle batching internally if needed for performance.
    """

    @abstractmethod
    def open(self, instance_index: int = 0, total_instances: int = 1) -> None:
        """
        Acquire the sink's resources.

        Args:
            instance_index: Index of this parallel instance (informational)
            total_instances: Number of parallel instances (informational)

        Raises:
            OpenFailure: If initialization fails
        """
        ...

    @abstractmethod
    def write(self, record: Sequence[Any]) -> None:
        """
        Write a single record to the sink.

        The implementation may buffer records internally and write them
        in batches.

        Args:
            record: Positional field values; None marks a SQL NULL

        Raises:
            WriteFailure: If the record could not be accepted
        """
        ...

    @abstractmethod
    def flush(self) -> None:
        """
        Push any buffered records to the destination.

        Raises:
            WriteFailure: If flush fails
        """
        ...

    @abstractmethod
    def close(self) -> list[Exception]:
        """
        Gracefully close the sink.

        Implementations MUST flush any remaining data before closing.

        This method must not raise; errors are logged and returned instead.

        Returns:
            Errors suppressed during shutdown
        """
        ...

    def health_check(self) -> dict[str, Any]:
        """
        Perform a health check and return status information.

        Returns:
            Dictionary with health status information
        """
        return {
            "type": self.__class__.__name__,
            "status": "ok",
        }

    def __enter__(self) -> "BaseSink":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit; close() flushes and never raises."""
        self.close()
