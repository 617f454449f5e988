"""Public enum exports used across the package."""

from soapwire.enums.logging import LogLevel
from soapwire.enums.response import ResponseStatus
from soapwire.enums.transport import TransportErrorType

__all__ = [
    "LogLevel",
    "ResponseStatus",
    "TransportErrorType",
]
