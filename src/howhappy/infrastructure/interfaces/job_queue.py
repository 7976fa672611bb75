"""Abstract interface for the durable job queue."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from howhappy.domain.models import Delivery, JobResult

JobHandler = Callable[[Delivery], JobResult]


class JobQueue(ABC):
    """
    Abstract base class for at-least-once job queues.

    A job may be delivered more than once. Handlers report a ``JobResult``;
    the queue owns retry, backoff and dead-lettering.
    """

    @abstractmethod
    def setup(self, queue_name: str) -> None:
        """Declares the queue and its retry and dead-letter companions."""

    @abstractmethod
    def publish(self, queue_name: str, payload: dict) -> str:
        """
        Publishes a job and returns its id.

        Raises:
            JobPublishError: If publishing fails.
        """

    @abstractmethod
    def subscribe(self, queue_name: str, batch_size: int, handler: JobHandler) -> None:
        """
        Consumes jobs, at most ``batch_size`` unacknowledged at a time.

        Blocks until the consumer is stopped.
        """

    @abstractmethod
    def close(self) -> None:
        """Releases the connection."""
