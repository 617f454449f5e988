"""Typed result of a SOAP call and the classifier producing it."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from soapwire.enums import ResponseStatus, TransportErrorType
from soapwire.utilities.transport.engine import SoapDecodeError, SoapFault
from soapwire.utilities.transport.executor import TransportOutcome

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Service unavailable, please try again shortly."
FAIL_MESSAGE = "Transport failure: the request could not be completed."


@dataclass(frozen=True, slots=True)
class Response:
    """Result of one SOAP call.

    ``error`` is set iff status is not SUCCESS; ``payload`` is only meaningful
    on SUCCESS. Callers must check ``status`` before trusting ``payload``.
    """

    status: ResponseStatus
    payload: Any = None
    error: str | None = None
    attempts: int = 0

    @classmethod
    def success(cls, payload: Any, attempts: int = 0) -> Response:
        return cls(status=ResponseStatus.SUCCESS, payload=payload, attempts=attempts)

    @classmethod
    def timeout(cls, attempts: int = 0) -> Response:
        return cls(status=ResponseStatus.TIMEOUT, error=TIMEOUT_MESSAGE, attempts=attempts)

    @classmethod
    def fail(cls, error: str = FAIL_MESSAGE, attempts: int = 0) -> Response:
        return cls(status=ResponseStatus.FAIL, error=error, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    def has_error(self) -> bool:
        return self.error is not None

    def is_valid(self) -> bool:
        """True when the call succeeded and the payload is a decoded structure."""
        return self.ok and isinstance(self.payload, Mapping)


def classify(
    outcome: TransportOutcome,
    decode: Callable[[bytes], Any],
    raise_faults: bool = False,
) -> Response:
    """Map the final transport outcome of a call to a ``Response``.

    Args:
        outcome: Last outcome kept by the retry controller.
        decode: Turns success bytes into the operation result.
        raise_faults: Re-raise ``SoapFault`` instead of returning FAIL.
    """
    attempts = outcome.attempt
    if outcome.error_type == TransportErrorType.TIMEOUT:
        return Response.timeout(attempts)
    if outcome.error_type is not None:
        return Response.fail(FAIL_MESSAGE, attempts)

    try:
        payload = decode(outcome.payload or b"")
    except SoapFault as exc:
        if raise_faults:
            raise
        return Response.fail(f"SOAP Fault: {exc.message}", attempts)
    except SoapDecodeError as exc:
        logger.warning("Transport succeeded but the response could not be decoded: %s", exc)
        return Response.fail(f"Invalid SOAP response: {exc}", attempts)

    return Response.success(payload, attempts)
