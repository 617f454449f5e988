"""SOAP facade returning a typed ``Response`` instead of a raw decoded value."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from soapwire.enums import ResponseStatus, TransportErrorType
from soapwire.utilities.transport.config import TransportConfig
from soapwire.utilities.transport.engine import SoapEngine
from soapwire.utilities.transport.response import Response, classify
from soapwire.utilities.transport.retry import ExceptionDescriptor, RetryingTransport, Transport

logger = logging.getLogger(__name__)


class _ServiceProxy:
    """Exposes ``client.service.Operation(**kwargs)`` as sugar for ``client.call``."""

    def __init__(self, client: SoapClient) -> None:
        self._client = client

    def __getattr__(self, operation: str) -> Callable[..., Response]:
        if operation.startswith("_"):
            raise AttributeError(operation)
        return functools.partial(self._client.call, operation)


class SoapClient:
    """Invokes remote operations through an injected transport.

    The engine builds the envelope and decodes the reply; the transport moves
    the bytes. Transport failures come back as TIMEOUT/FAIL responses, never
    as exceptions.

    Args:
        engine: Envelope builder/decoder.
        transport: Transport capability. Defaults to a ``RetryingTransport`` over ``config``.
        config: Configuration for the default transport, ignored when ``transport`` is given.
        raise_faults: If True, re-raise SOAP faults instead of returning FAIL.
    """

    def __init__(
        self,
        engine: SoapEngine,
        transport: Transport | None = None,
        config: TransportConfig | None = None,
        raise_faults: bool = False,
    ) -> None:
        self.engine = engine
        self.raise_faults = raise_faults

        if transport is None:
            transport = RetryingTransport(config if config is not None else TransportConfig())
        self.transport = transport

        descriptor = getattr(transport, "exception_descriptor", None)
        # Transports without a descriptor do not record their failures; the client does it for them
        self._records_transport_errors = not isinstance(descriptor, ExceptionDescriptor)
        self.exception_descriptor: ExceptionDescriptor = (
            ExceptionDescriptor() if self._records_transport_errors else descriptor
        )

        self.last_request: bytes | None = None
        self.last_response: bytes | None = None
        self._last_call_time: datetime | None = None
        self.service = _ServiceProxy(self)

    @property
    def config(self) -> TransportConfig | None:
        """Config of the default transport, or None for custom transports without one."""
        config = getattr(self.transport, "config", None)
        return config if isinstance(config, TransportConfig) else None

    def call(self, operation: str, arguments: Mapping[str, Any] | None = None, **kwargs: Any) -> Response:
        """Invoke ``operation`` and return the classified response.

        Raises:
            SoapEngineError: Envelope could not be built from the arguments.
            SoapFault: Only when the client was created with ``raise_faults=True``.
        """
        params: dict[str, Any] = dict(arguments or {})
        params.update(kwargs)

        self._last_call_time = datetime.now()
        request = self.engine.build_request(operation, params)
        self.last_request = request.body
        self.last_response = None

        outcome = self.transport.send(request.url, request.body, request.action)
        self.last_response = outcome.payload
        if not outcome.ok and self._records_transport_errors:
            self.exception_descriptor.add_error(str(outcome.error_type), outcome.message or "", request.url)

        response = classify(
            outcome,
            functools.partial(self.engine.decode_response, operation),
            raise_faults=self.raise_faults,
        )
        if response.status == ResponseStatus.FAIL and outcome.ok:
            # Decode error or fault; transport failures are already recorded
            self.exception_descriptor.add_error("response", response.error or "", request.url)

        logger.info("SOAP %s -> %s (%d attempt(s))", operation, response.status, response.attempts)
        return response

    # --- Error introspection ---

    def has_errors(self) -> bool:
        """True if any error was recorded since the last call started."""
        if self._last_call_time is None:
            return False
        return self.exception_descriptor.has_errors_after(self._last_call_time)

    def is_timeout(self) -> bool:
        """True if the last recorded error is a transport timeout."""
        last = self.exception_descriptor.get_last_error()
        if last is None:
            return False
        return last.get("type") == TransportErrorType.TIMEOUT
