"""Outcome status values exposed on every SOAP call result."""

from enum import StrEnum


class ResponseStatus(StrEnum):
    """Final status of a SOAP call as seen by the caller."""

    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"
    FAIL = "FAIL"
