"""Batch delivery to named destinations with retry and unsent-remainder tracking."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Sequence, TypeVar

from common.errors import DeliveryExhausted
from common.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Destination(Generic[T]):
    """A named delivery target. ``deliver`` raises on failure."""

    name: str
    deliver: Callable[[list[T]], object]


@dataclass
class Batch(Generic[T]):
    items: list[T]
    destination: str
    attempts: int = 0


@dataclass
class BatchOutcome(Generic[T]):
    batch: Batch[T]
    delivered: bool
    error: DeliveryExhausted | None = None


@dataclass
class DispatchReport(Generic[T]):
    """Result of one ``BatchDispatcher.send`` call.

    Every accepted item ends up in exactly one of ``delivered`` or ``remainder``.
    """

    outcomes: list[BatchOutcome[T]] = field(default_factory=list)
    delivered: list[T] = field(default_factory=list)
    remainder: list[T] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.remainder


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive chunks of ``size`` (the last may be shorter)."""
    if size < 1:
        raise ValueError("batch size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchDispatcher:
    """Deliver items in fixed-size batches through a RetryPolicy."""

    def __init__(self, retry_policy: RetryPolicy):
        self.retry_policy = retry_policy

    def send(
        self,
        items: Sequence[T],
        destination: Destination[T],
        batch_size: int,
        stop_event: threading.Event | None = None,
    ) -> DispatchReport[T]:
        """Deliver ``items`` to ``destination`` in batches of ``batch_size``.

        Batches go out sequentially. The first batch that exhausts its retries
        stops the send: that batch and every later one are returned as the
        unsent remainder, in their original order.
        """
        report: DispatchReport[T] = DispatchReport()
        batches = [Batch(items=c, destination=destination.name) for c in chunk(items, batch_size)]
        if not batches:
            return report

        logger.info(
            "Sending %d items to %s in %d batches", len(items), destination.name, len(batches)
        )

        for index, batch in enumerate(batches):
            if report.remainder:
                report.outcomes.append(BatchOutcome(batch=batch, delivered=False))
                report.remainder.extend(batch.items)
                continue

            try:
                self.retry_policy.attempt(
                    self._delivery(batch, destination),
                    name=f"batch {index + 1}/{len(batches)} to {destination.name}",
                    stop_event=stop_event,
                )
            except DeliveryExhausted as e:
                logger.error(
                    "Batch of %d items to %s not delivered, keeping %d items for the next send",
                    len(batch.items),
                    destination.name,
                    sum(len(b.items) for b in batches[index:]),
                )
                report.outcomes.append(BatchOutcome(batch=batch, delivered=False, error=e))
                report.remainder.extend(batch.items)
                continue

            report.outcomes.append(BatchOutcome(batch=batch, delivered=True))
            report.delivered.extend(batch.items)

        logger.info(
            "Delivered %d/%d items to %s", len(report.delivered), len(items), destination.name
        )
        return report

    @staticmethod
    def _delivery(batch: Batch[T], destination: Destination[T]) -> Callable[[], object]:
        def deliver() -> object:
            batch.attempts += 1
            return destination.deliver(batch.items)

        return deliver


class DeliveryQueue(Generic[T]):
    """Per-caller record of items that still have to reach one destination.

    Each ``send`` re-sends the pending remainder followed by the new items.
    The pending record is replaced only once the dispatcher has reported
    which items were delivered.
    """

    def __init__(self, dispatcher: BatchDispatcher, destination: Destination[T], batch_size: int):
        self.dispatcher = dispatcher
        self.destination = destination
        self.batch_size = batch_size
        self._pending: list[T] = []
        self._lock = threading.Lock()

    @property
    def pending(self) -> list[T]:
        with self._lock:
            return list(self._pending)

    def send(
        self,
        items: Iterable[T] = (),
        stop_event: threading.Event | None = None,
    ) -> DispatchReport[T]:
        with self._lock:
            to_send = self._pending + list(items)
            self._pending = to_send
            report = self.dispatcher.send(to_send, self.destination, self.batch_size, stop_event)
            self._pending = list(report.remainder)
            if self._pending:
                logger.warning(
                    "%d items pending for %s", len(self._pending), self.destination.name
                )
            return report
