"""Bounded retry with linear backoff for outbound calls."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

import requests

from common.errors import DeliveryExhausted, TransientDeliveryError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Timeouts and connection errors are RequestException subclasses.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    TransientDeliveryError,
    requests.RequestException,
)


@dataclass
class RetryState:
    """Progress of a single retried call."""

    attempt: int = 0
    next_delay: float = 0.0


class RetryPolicy:
    """Run a call up to ``max_attempts`` times, sleeping ``base_delay * n`` after failure n.

    Only errors in ``RETRYABLE_ERRORS`` are retried; anything else propagates
    on the first occurrence. When every attempt fails, ``DeliveryExhausted``
    is raised with the last error attached.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 2.0,
        sleep: Callable[[float], None] | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    def attempt(
        self,
        action: Callable[[], T],
        name: str = "call",
        stop_event: threading.Event | None = None,
    ) -> T:
        """Run ``action`` until it succeeds or attempts run out.

        Args:
            action: Zero-argument callable performing the outbound call.
            name: Label used in log lines and in the exhaustion error.
            stop_event: When set during a backoff, remaining attempts are abandoned.

        Returns:
            Whatever ``action`` returns on its first successful attempt.

        Raises:
            DeliveryExhausted: If every attempt failed or the wait was cancelled.
        """
        state = RetryState()
        last_error: BaseException | None = None

        while state.attempt < self.max_attempts:
            state.attempt += 1
            try:
                result = action()
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    "%s attempt %d/%d failed: %s", name, state.attempt, self.max_attempts, e
                )
            else:
                if state.attempt > 1:
                    logger.info("%s succeeded after %d attempts", name, state.attempt)
                else:
                    logger.debug("%s succeeded", name)
                return result

            if state.attempt >= self.max_attempts:
                break

            state.next_delay = self.base_delay * state.attempt
            if self._wait(state.next_delay, stop_event):
                logger.info("%s retry cancelled after %d attempts", name, state.attempt)
                break

        logger.error("%s exhausted after %d attempts", name, state.attempt)
        raise DeliveryExhausted(name, state.attempt, last_error)

    def _wait(self, delay: float, stop_event: threading.Event | None) -> bool:
        """Sleep for ``delay`` seconds. Returns True if the wait was cancelled.

        An injected ``sleep`` takes precedence over waiting on ``stop_event``.
        """
        if delay > 0 and self._sleep is not None:
            self._sleep(delay)
        elif delay > 0 and stop_event is not None:
            return stop_event.wait(delay)
        elif delay > 0:
            time.sleep(delay)
        return stop_event is not None and stop_event.is_set()
