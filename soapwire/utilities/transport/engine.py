"""WSDL-driven SOAP envelope building and reply decoding on top of zeep.

The facade only depends on the ``SoapEngine`` protocol. ``ZeepEngine`` loads a
WSDL once, resolves operations, endpoint and SOAPAction from its binding, and
leaves the HTTP exchange to the soapwire transport.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import requests
import zeep
from lxml import etree
from requests.auth import HTTPBasicAuth
from zeep.cache import InMemoryCache
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault as SoapFault
from zeep.helpers import serialize_object
from zeep.loader import parse_xml
from zeep.transports import Transport

from soapwire.utilities.transport.config import TransportConfig

logger = logging.getLogger(__name__)

XML_PREVIEW_LENGTH = 200


class SoapEngineError(Exception):
    """Request could not be built for the requested operation."""


class SoapDecodeError(SoapEngineError):
    """Response bytes are not a SOAP envelope the binding can decode."""


@dataclass(frozen=True, slots=True)
class SoapRequest:
    """Serialized request ready for the transport."""

    url: str
    body: bytes
    action: str


class SoapEngine(Protocol):
    def build_request(self, operation: str, arguments: Mapping[str, Any]) -> SoapRequest: ...

    def decode_response(self, operation: str, payload: bytes) -> Any: ...


def _preview(payload: bytes) -> str:
    return payload[:XML_PREVIEW_LENGTH].decode("utf-8", errors="replace")


def build_wsdl_transport(config: TransportConfig | None = None, cache: bool = False) -> Transport:
    """Build the zeep transport used to fetch the WSDL and its imports.

    TLS verification, basic auth and custom headers follow ``config``. The
    load timeout is the sum of both config timeouts, unbounded when both are 0.
    """
    settings = (config or TransportConfig()).snapshot()

    session = requests.Session()
    session.verify = settings.verify_tls_certificate
    session.headers.update(settings.headers)
    if settings.auth_enabled:
        session.auth = HTTPBasicAuth(settings.login, settings.password or "")

    timeout = (settings.negotiation_timeout + settings.read_timeout) or None
    return Transport(
        cache=InMemoryCache() if cache else None,
        session=session,
        timeout=timeout,
        operation_timeout=timeout,
    )


class ZeepEngine:
    """Builds and decodes envelopes for the operations of one WSDL port.

    Args:
        wsdl: URL or local path of the WSDL document.
        service_name: Service to bind. Defaults to the first service.
        port_name: Port to bind. Defaults to the first port of the service.
        config: Transport config applied while loading the WSDL.
        cache: Cache fetched WSDL/XSD documents in memory.
        **client_kwargs: Passed to ``zeep.Client`` (e.g. settings, wsse).
    """

    def __init__(
        self,
        wsdl: str,
        service_name: str | None = None,
        port_name: str | None = None,
        config: TransportConfig | None = None,
        cache: bool = False,
        **client_kwargs: Any,
    ) -> None:
        self.wsdl = wsdl
        self.client = zeep.Client(wsdl, transport=build_wsdl_transport(config, cache), **client_kwargs)
        try:
            self.service = self.client.bind(service_name, port_name)
        except ValueError as exc:
            raise SoapEngineError(f"Cannot bind service {service_name!r} in {wsdl}: {exc}") from exc
        if self.service is None:
            raise SoapEngineError(f"WSDL {wsdl} does not define any service")
        logger.debug("Loaded WSDL %s (%d operations)", wsdl, len(self.operations()))

    @property
    def binding(self) -> Any:
        return self.service._binding

    @property
    def location(self) -> str:
        """Endpoint address declared by the bound port."""
        return self.service._binding_options["address"]

    def operations(self) -> list[str]:
        return sorted(self.binding.all())

    def _operation(self, name: str) -> Any:
        try:
            return self.binding.get(name)
        except ValueError as exc:
            raise SoapEngineError(f"Operation {name!r} is not defined by {self.wsdl}") from exc

    def build_request(self, operation: str, arguments: Mapping[str, Any]) -> SoapRequest:
        """Render the envelope for ``operation``; arguments are checked against the WSDL schema."""
        if not isinstance(arguments, Mapping):
            raise SoapEngineError(f"Operation arguments must be a mapping, got {type(arguments).__name__}.")
        binding_operation = self._operation(operation)
        try:
            envelope = self.client.create_message(self.service, operation, **arguments)
        except (TypeError, ZeepError) as exc:
            raise SoapEngineError(f"Cannot build {operation} request: {exc}") from exc

        body = etree.tostring(envelope, xml_declaration=True, encoding="utf-8")
        return SoapRequest(url=self.location, body=body, action=binding_operation.soapaction or "")

    def decode_response(self, operation: str, payload: bytes) -> Any:
        """Decode a reply envelope into plain Python values.

        Returns:
            The operation result with zeep objects turned into dicts, or None
            for an empty body (one-way operations and empty 202 replies).

        Raises:
            SoapFault: Body carries a Fault element.
            SoapDecodeError: Payload is not a SOAP envelope matching the binding.
        """
        if not payload.strip():
            return None
        binding_operation = self._operation(operation)
        nsmap = self.binding.nsmap

        try:
            doc = parse_xml(payload, self.client.transport, settings=self.client.settings)
        except ZeepError as exc:
            raise SoapDecodeError(f"{exc} (response starts with {_preview(payload)!r})") from exc

        envelope_tag = etree.QName(nsmap["soap-env"], "Envelope").text
        if doc.tag != envelope_tag:
            raise SoapDecodeError(f"Expected a SOAP Envelope, got <{etree.QName(doc).localname}>")
        if doc.find("soap-env:Body", namespaces=nsmap) is None:
            raise SoapDecodeError("SOAP Envelope has no Body")

        if doc.find("soap-env:Body/soap-env:Fault", namespaces=nsmap) is not None:
            # raises SoapFault
            self.binding.process_error(doc, binding_operation)

        try:
            result = binding_operation.process_reply(doc)
        except (ZeepError, ValueError) as exc:
            raise SoapDecodeError(f"Cannot decode {operation} reply: {exc}") from exc
        return serialize_object(result, target_cls=dict)

