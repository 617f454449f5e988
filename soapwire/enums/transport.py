from enum import StrEnum


class TransportErrorType(StrEnum):
    """Error classification for a single failed transport attempt."""

    TIMEOUT = "timeout"
    OTHER = "other"
