"""Bounded retry around the single-attempt executor.

Classes:
    ExceptionDescriptor: timestamped record of failed attempts.
    RetryController: sequential attempt loop, no backoff.
    Transport: the capability the SOAP facade depends on.
    RetryingTransport: default Transport, config snapshot + RetryController.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Protocol

from soapwire.utilities.transport.config import TransportConfig, TransportSnapshot
from soapwire.utilities.transport.executor import Executor, HttpExecutor, TransportOutcome

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ExceptionDescriptor
# ---------------------------------------------------------------------------

class ExceptionDescriptor:
    """Tracks transport errors with timestamps for time-based analysis.

    Only the newest ``max_errors`` entries are kept so a long-lived client
    does not grow without bound.
    """

    def __init__(self, max_errors: int = 1000) -> None:
        if max_errors < 1:
            raise ValueError("max_errors must be >= 1")
        # (timestamp, error) pairs in insertion order; timestamps may repeat
        self.errors: deque[tuple[datetime, dict[str, str]]] = deque(maxlen=max_errors)

    def add_error(self, error_type: str, message: str, url: str | None = None) -> None:
        """Record an error with the current timestamp."""
        self.errors.append((datetime.now(), {
            "type": error_type,
            "message": message,
            "url": url or "",
        }))

    def get_last_error(self) -> dict[str, str] | None:
        """Return the most recent error dict, or None."""
        return self.errors[-1][1] if self.errors else None

    def get_errors_by_type(self, error_type: str) -> list[dict[str, str]]:
        """Return all errors matching the given type string."""
        return [err for _, err in self.errors if err["type"] == error_type]

    def has_errors_after(self, timestamp: datetime) -> bool:
        """Return True if any error was recorded at or after the given timestamp."""
        return any(err_time >= timestamp for err_time, _ in self.errors)

    def clear(self) -> None:
        """Remove all recorded errors."""
        self.errors.clear()


# ---------------------------------------------------------------------------
# RetryController
# ---------------------------------------------------------------------------

class RetryController:
    """Runs the executor up to ``settings.max_attempts`` times.

    Stops on the first success. On exhaustion the last failure is returned.
    Every failure kind is retried the same way and there is no delay between
    attempts, so the worst case is roughly
    ``max_attempts * (negotiation_timeout + read_timeout)``.

    Args:
        executor: Performs one attempt.
        exception_descriptor: Receives one entry per failed attempt.
    """

    def __init__(self, executor: Executor, exception_descriptor: ExceptionDescriptor | None = None) -> None:
        self.executor = executor
        self.exception_descriptor = exception_descriptor or ExceptionDescriptor()

    def run(self, url: str, body: bytes, action: str, settings: TransportSnapshot) -> TransportOutcome:
        attempt = 1
        while True:
            outcome = self.executor.execute(url, body, action, settings).with_attempt(attempt)
            if outcome.ok:
                if attempt > 1:
                    logger.info("POST %s succeeded on attempt %d/%d", url, attempt, settings.max_attempts)
                return outcome

            self.exception_descriptor.add_error(str(outcome.error_type), outcome.message or "", url)
            if attempt >= settings.max_attempts:
                logger.error(
                    "POST %s failed after %d attempt(s): %s (%s)",
                    url, attempt, outcome.error_type, outcome.message,
                )
                return outcome

            logger.warning(
                "POST %s failed (attempt %d/%d): %s. Retrying...",
                url, attempt, settings.max_attempts, outcome.message,
            )
            attempt += 1


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class Transport(Protocol):
    def send(self, url: str, body: bytes, action: str) -> TransportOutcome: ...


class RetryingTransport:
    """Default transport: snapshots the config once per call and retries through the executor."""

    def __init__(
        self,
        config: TransportConfig | None = None,
        executor: Executor | None = None,
        exception_descriptor: ExceptionDescriptor | None = None,
    ) -> None:
        self.config = config if config is not None else TransportConfig()
        self.controller = RetryController(executor or HttpExecutor(), exception_descriptor)

    @property
    def exception_descriptor(self) -> ExceptionDescriptor:
        return self.controller.exception_descriptor

    def send(self, url: str, body: bytes, action: str) -> TransportOutcome:
        return self.controller.run(url, body, action, self.config.snapshot())
