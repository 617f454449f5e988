from functools import lru_cache

from soapwire.settings.main import (GeneralSettings,
                                    LogSettings,
                                    TransportSettings)


@lru_cache(maxsize=1)
def get_general_settings() -> GeneralSettings:
    """Load general settings from the environment on first use."""
    return GeneralSettings()


def __getattr__(name: str):
    # general_settings is resolved lazily so a malformed SOAPWIRE_* variable
    # only fails callers that actually read the environment
    if name == "general_settings":
        return get_general_settings()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["GeneralSettings", "LogSettings", "TransportSettings", "general_settings", "get_general_settings"]
