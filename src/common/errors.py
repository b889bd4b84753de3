"""Error taxonomy shared by every pipeline stage."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(PipelineError):
    """Malformed request or record. Rejected at the boundary, never retried."""


class TransientDeliveryError(PipelineError):
    """Non-success response or transport failure on an outbound call."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(TransientDeliveryError):
    """The source API rejected the call with HTTP 429."""


class DeliveryExhausted(PipelineError):
    """A retried call failed on every allowed attempt."""

    def __init__(self, name: str, attempts: int, last_error: BaseException | None):
        super().__init__(f"{name} failed after {attempts} attempts: {last_error}")
        self.name = name
        self.attempts = attempts
        self.last_error = last_error


class PartialFetchFailure(PipelineError):
    """A single article body could not be fetched. The article is skipped."""


class ComputeFailure(PipelineError):
    """Topic extraction failed for a whole flush. No results are emitted."""
