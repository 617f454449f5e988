"""Log levels accepted by SOAPWIRE logging settings."""

import logging
from enum import IntEnum


class LogLevel(IntEnum):
    NOTSET = logging.NOTSET
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: "int | str | LogLevel") -> "LogLevel":
        """Accept a level as int, numeric string or name ("warning", "WARN")."""
        if isinstance(value, str):
            text = value.strip().upper()
            if text.isdigit():
                return cls(int(text))
            if text == "WARN":
                return cls.WARNING
            try:
                return cls[text]
            except KeyError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        return cls(value)
