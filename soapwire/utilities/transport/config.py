"""Transport configuration with validated, chainable setters.

Classes:
    TransportConfigError: raised synchronously by any invalid setter argument.
    TransportSnapshot: frozen per-call view handed to the executor.
    TransportConfig: mutable configuration owned by one client instance.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from soapwire.settings.main import TransportSettings

# RFC 9110 token characters
_HEADER_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class TransportConfigError(ValueError):
    """Invalid timeout, attempt count, header, or auth argument."""


# ---------------------------------------------------------------------------
# TransportSnapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TransportSnapshot:
    """Immutable configuration read by every attempt of a single call."""

    negotiation_timeout: int = 0
    read_timeout: int = 0
    max_attempts: int = 1
    verify_tls_certificate: bool = True
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    login: str | None = None
    password: str | None = None

    @property
    def auth_enabled(self) -> bool:
        return self.login is not None

    def credentials(self) -> str | None:
        """Return the basic-auth credential string (``login`` or ``login:password``)."""
        if self.login is None:
            return None
        if self.password is None:
            return self.login
        return f"{self.login}:{self.password}"


# ---------------------------------------------------------------------------
# TransportConfig
# ---------------------------------------------------------------------------

def _require_int(name: str, value: object, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TransportConfigError(f"{name} must be an integer, got {type(value).__name__}.")
    if value < minimum:
        raise TransportConfigError(f"{name} must be at least {minimum}, got {value}.")
    return value


def _require_header_name(name: object) -> str:
    if not isinstance(name, str) or not name:
        raise TransportConfigError("Header name must be a non-empty string.")
    if not _HEADER_NAME_RE.fullmatch(name):
        raise TransportConfigError(f"Header name {name!r} must be an ASCII token without spaces or separators.")
    return name


def _require_header_value(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise TransportConfigError(f"Header {name!r} value must be a string, got {type(value).__name__}.")
    if any(ch in value for ch in "\r\n\0"):
        raise TransportConfigError(f"Header {name!r} value must not contain line breaks or NUL.")
    return value


class TransportConfig:
    """Timeouts, attempt budget, headers, auth, and TLS flag for the SOAP transport.

    Mutations are serialized with an internal lock and the executor only ever
    sees a ``TransportSnapshot`` taken when a call starts, so changes made
    while a call is in flight apply to the next call.

    Args:
        negotiation_timeout: Connection timeout in seconds. 0 to disable.
        read_timeout: Exchange timeout after connecting, in seconds. 0 to disable.
        max_attempts: Total tries per call, at least 1.
        verify_tls_certificate: False skips TLS certificate verification.
        headers: Custom headers sent with every request.
        login: Enables HTTP basic auth with this login.
        password: Optional basic-auth password.
    """

    def __init__(
        self,
        negotiation_timeout: int = 0,
        read_timeout: int = 0,
        max_attempts: int = 1,
        verify_tls_certificate: bool = True,
        headers: Mapping[str, str] | None = None,
        login: str | None = None,
        password: str | None = None,
    ) -> None:
        self._lock = threading.Lock()

        self._negotiation_timeout = 0
        self._read_timeout = 0
        self._max_attempts = 1
        self._ignore_cert_verify = False
        self._headers: dict[str, str] = {}
        self._login: str | None = None
        self._password: str | None = None

        (
            self.set_negotiation_timeout(negotiation_timeout)
            .set_read_timeout(read_timeout)
            .set_max_attempts(max_attempts)
            .set_ignore_cert_verify(not verify_tls_certificate)
        )
        if headers is not None:
            self.set_headers(headers)
        if login is not None:
            self.set_auth(login, password)

    @classmethod
    def from_settings(cls, settings: TransportSettings) -> TransportConfig:
        """Build a config from environment-backed ``TransportSettings``."""
        return cls(
            negotiation_timeout=settings.negotiation_timeout,
            read_timeout=settings.read_timeout,
            max_attempts=settings.max_attempts,
            verify_tls_certificate=settings.verify_tls_certificate,
            headers=settings.headers,
            login=settings.login,
            password=settings.password,
        )

    @classmethod
    def from_env(cls) -> TransportConfig:
        """Build a config from the current SOAPWIRE_* environment variables."""
        return cls.from_settings(TransportSettings())

    # --- Timeouts ---

    def set_negotiation_timeout(self, seconds: int) -> TransportConfig:
        """Set the connection timeout in seconds, 0 to disable."""
        value = _require_int("Negotiation timeout", seconds, 0)
        with self._lock:
            self._negotiation_timeout = value
        return self

    def get_negotiation_timeout(self) -> int:
        return self._negotiation_timeout

    def set_read_timeout(self, seconds: int) -> TransportConfig:
        """Set the read timeout (after a successful connection) in seconds, 0 to disable."""
        value = _require_int("Read timeout", seconds, 0)
        with self._lock:
            self._read_timeout = value
        return self

    def get_read_timeout(self) -> int:
        return self._read_timeout

    # --- Attempt budget ---

    def set_max_attempts(self, attempts: int) -> TransportConfig:
        """Set the total number of connection+read attempts per call."""
        value = _require_int("Number of attempts", attempts, 1)
        with self._lock:
            self._max_attempts = value
        return self

    def get_max_attempts(self) -> int:
        return self._max_attempts

    # --- Headers ---

    def set_headers(self, headers: Mapping[str, str]) -> TransportConfig:
        """Replace all custom headers wholesale."""
        if not isinstance(headers, Mapping):
            raise TransportConfigError(f"Headers must be a mapping, got {type(headers).__name__}.")
        validated: dict[str, str] = {}
        for name, value in headers.items():
            key = _require_header_name(name)
            validated[key] = _require_header_value(key, value)
        with self._lock:
            self._headers = validated
        return self

    def get_headers(self) -> dict[str, str]:
        with self._lock:
            return dict(self._headers)

    def set_header(self, name: str, value: str) -> TransportConfig:
        """Add or overwrite a single custom header."""
        key = _require_header_name(name)
        value = _require_header_value(key, value)
        with self._lock:
            self._headers[key] = value
        return self

    def get_header(self, name: str) -> str | None:
        """Return a custom header value or None."""
        with self._lock:
            return self._headers.get(name)

    # --- TLS ---

    def set_ignore_cert_verify(self, value: bool) -> TransportConfig:
        """True skips TLS certificate verification."""
        with self._lock:
            self._ignore_cert_verify = bool(value)
        return self

    def get_ignore_cert_verify(self) -> bool:
        return self._ignore_cert_verify

    # --- Basic auth ---

    def set_auth(self, login: str, password: str | None = None) -> TransportConfig:
        """Enable HTTP basic authentication."""
        if not isinstance(login, str) or not login:
            raise TransportConfigError("Auth login must be a non-empty string.")
        with self._lock:
            self._login = login
            self._password = password
        return self

    def clear_auth(self) -> TransportConfig:
        with self._lock:
            self._login = None
            self._password = None
        return self

    def get_auth(self) -> tuple[str, str | None] | None:
        with self._lock:
            if self._login is None:
                return None
            return self._login, self._password

    # --- Snapshot ---

    def snapshot(self) -> TransportSnapshot:
        """Return an immutable copy of the current configuration."""
        with self._lock:
            return TransportSnapshot(
                negotiation_timeout=self._negotiation_timeout,
                read_timeout=self._read_timeout,
                max_attempts=self._max_attempts,
                verify_tls_certificate=not self._ignore_cert_verify,
                headers=MappingProxyType(dict(self._headers)),
                login=self._login,
                password=self._password,
            )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(negotiation_timeout={self._negotiation_timeout}, "
            f"read_timeout={self._read_timeout}, max_attempts={self._max_attempts}, "
            f"verify_tls_certificate={not self._ignore_cert_verify}, "
            f"headers={sorted(self._headers)}, auth={'on' if self._login else 'off'})"
        )
