"""Single-attempt HTTP POST of a serialized SOAP envelope.

Classes:
    TransportOutcome: success bytes or a classified transport error.
    Executor: protocol for anything able to perform one attempt.
    ExchangeDeadline: caps the exchange after connection setup.
    HttpExecutor: httpx-based executor, one connection per attempt.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from soapwire.enums import TransportErrorType
from soapwire.utilities.transport.config import TransportSnapshot

logger = logging.getLogger(__name__)

CONTENT_TYPE = "text/xml; charset=utf-8"


# ---------------------------------------------------------------------------
# TransportOutcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TransportOutcome:
    """Result of one transport attempt.

    Exactly one of ``payload`` and ``error_type`` is set. ``attempt`` is the
    attempt number that produced the outcome, stamped by the retry controller.
    """

    payload: bytes | None = None
    error_type: TransportErrorType | None = None
    message: str | None = None
    attempt: int = 1

    @classmethod
    def success(cls, payload: bytes) -> TransportOutcome:
        return cls(payload=payload)

    @classmethod
    def failure(cls, error_type: TransportErrorType, message: str) -> TransportOutcome:
        return cls(error_type=error_type, message=message)

    @property
    def ok(self) -> bool:
        return self.error_type is None

    def with_attempt(self, attempt: int) -> TransportOutcome:
        return dataclasses.replace(self, attempt=attempt)


class Executor(Protocol):
    def execute(self, url: str, body: bytes, action: str, settings: TransportSnapshot) -> TransportOutcome: ...


# ---------------------------------------------------------------------------
# HttpExecutor
# ---------------------------------------------------------------------------

def build_headers(action: str, custom: Mapping[str, str]) -> httpx.Headers:
    """Merge the default SOAP headers with custom headers, custom ones winning.

    Raises:
        TypeError: A custom header name or value is not a string.
        ValueError: A header cannot be encoded for the wire.
    """
    headers = httpx.Headers({"Content-Type": CONTENT_TYPE, "SOAPAction": f'"{action}"'})
    # httpx.Headers assignment is case-insensitive, so "content-type" replaces the default
    for name, value in custom.items():
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError(f"Header {name!r} must map a string name to a string value")
        headers[name] = value
    return headers


def classify_exception(exc: Exception) -> TransportErrorType:
    """Map an httpx exception to a transport error type."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorType.TIMEOUT
    return TransportErrorType.OTHER


class ExchangeDeadline:
    """Caps the exchange that follows connection setup at ``read_timeout`` seconds.

    httpx read timeouts apply to each socket read, so a server trickling bytes
    never trips them. The clock restarts when the request headers go out
    (httpcore trace event); transports that emit no trace events keep the
    attempt start. 0 means no cap.
    """

    def __init__(self, read_timeout: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.limit = read_timeout or None
        self.clock = clock
        self.started = clock()

    def trace(self, event_name: str, info: Mapping[str, Any]) -> None:
        if event_name.endswith("send_request_headers.started"):
            self.started = self.clock()

    def expired(self) -> bool:
        return self.limit is not None and self.clock() - self.started > self.limit


class HttpExecutor:
    """Performs exactly one POST per ``execute`` call using a fresh ``httpx.Client``.

    HTTP status codes are not inspected; any completed exchange is a success
    and its body is handed back as-is. The body is streamed so the exchange
    deadline is checked as bytes arrive; an attempt therefore ends within
    roughly ``negotiation_timeout + read_timeout`` seconds.
    """

    def _build_client_kwargs(self, settings: TransportSnapshot) -> dict[str, Any]:
        """Build kwargs for httpx.Client from a config snapshot."""
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(
                settings.read_timeout or None,
                connect=settings.negotiation_timeout or None,
            ),
            "verify": settings.verify_tls_certificate,
        }
        if settings.auth_enabled:
            kwargs["auth"] = httpx.BasicAuth(settings.login or "", settings.password or "")
        return kwargs

    @staticmethod
    def _read_body(response: httpx.Response, deadline: ExchangeDeadline) -> bytes | None:
        """Collect the streamed body, or None once the deadline has passed."""
        if deadline.expired():
            return None
        chunks: list[bytes] = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if deadline.expired():
                return None
        return b"".join(chunks)

    def execute(self, url: str, body: bytes, action: str, settings: TransportSnapshot) -> TransportOutcome:
        logger.debug("POST %s (action=%s, %d bytes)", url, action, len(body))
        try:
            headers = build_headers(action, settings.headers)
        except (TypeError, ValueError) as exc:
            logger.debug("POST %s not sent, invalid headers: %s", url, exc)
            return TransportOutcome.failure(TransportErrorType.OTHER, f"Invalid request headers: {exc}")

        deadline = ExchangeDeadline(settings.read_timeout)
        try:
            with httpx.Client(**self._build_client_kwargs(settings)) as client:
                with client.stream(
                    "POST", url, content=body, headers=headers, extensions={"trace": deadline.trace}
                ) as response:
                    content = self._read_body(response, deadline)
                    status_code = response.status_code
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            error_type = classify_exception(exc)
            logger.debug("POST %s failed (%s): %s", url, error_type, exc)
            return TransportOutcome.failure(error_type, f"{type(exc).__name__}: {exc}")

        if content is None:
            logger.debug("POST %s exceeded the %ss exchange deadline", url, settings.read_timeout)
            return TransportOutcome.failure(
                TransportErrorType.TIMEOUT, f"ExchangeTimeout: no complete reply within {settings.read_timeout}s"
            )

        logger.debug("POST %s -> HTTP %d, %d bytes", url, status_code, len(content))
        return TransportOutcome.success(content)
