"""Pydantic settings models for transport and logging configuration."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from soapwire.enums import LogLevel


class TransportSettings(BaseSettings):
    """Environment-backed defaults for the SOAP HTTP transport."""

    # Field names are accepted as keyword arguments and as SOAPWIRE_<FIELD> variables
    model_config = SettingsConfigDict(populate_by_name=True, env_prefix="SOAPWIRE_")

    # Connection phase timeout in seconds, 0 disables it
    negotiation_timeout: int = Field(default=0, ge=0, alias="SOAPWIRE_NEGOTIATION_TIMEOUT")
    # Exchange timeout after the connection is established, 0 disables it
    read_timeout: int = Field(default=0, ge=0, alias="SOAPWIRE_READ_TIMEOUT")
    # Total tries per call (1 initial + retries)
    max_attempts: int = Field(default=1, ge=1, alias="SOAPWIRE_MAX_ATTEMPTS")
    verify_tls_certificate: bool = Field(default=True, alias="SOAPWIRE_VERIFY_TLS")

    # JSON object in the environment, e.g. {"X-Api-Key": "secret"}
    headers: dict[str, str] = Field(default_factory=dict, alias="SOAPWIRE_HEADERS")

    # HTTP basic auth is enabled when login is set; password may stay empty
    login: str | None = Field(default=None, alias="SOAPWIRE_LOGIN")
    password: str | None = Field(default=None, alias="SOAPWIRE_PASSWORD")


class LogSettings(BaseSettings):
    """Logging pipeline settings, readable by field name or SOAPWIRE_LOG_* variable."""

    model_config = SettingsConfigDict(populate_by_name=True, env_prefix="SOAPWIRE_")

    log_to_console: bool = Field(default=True, alias="SOAPWIRE_LOG_TO_CONSOLE")
    log_max_queue: int = Field(default=10000, ge=0, alias="SOAPWIRE_LOG_MAX_QUEUE")
    # Name ("warning") or number ("30")
    log_level: LogLevel = Field(default=LogLevel.INFO, alias="SOAPWIRE_LOG_LEVEL")

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: object) -> LogLevel:
        return LogLevel.parse(value)  # type: ignore[arg-type]


class GeneralSettings(BaseSettings):
    """General settings is used when more than one setting is required to be imported into app"""

    model_config = SettingsConfigDict(env_prefix="SOAPWIRE_")

    # Factories so every instance reads the environment at construction time
    transport: TransportSettings = Field(default_factory=TransportSettings)
    log_settings: LogSettings = Field(default_factory=LogSettings)
