"""
Transport Python package contains the SOAP-over-HTTP client.
It is separated to following modules:

- config.py: validated transport configuration and its per-call snapshot
- executor.py: one HTTP POST attempt over httpx, classified into an outcome
- retry.py: bounded retry loop and the Transport capability
- response.py: typed Response and the outcome classifier
- engine.py: WSDL-driven envelope building and reply decoding over zeep
- client.py: SoapClient facade
"""

from soapwire.utilities.transport.client import SoapClient
from soapwire.utilities.transport.config import TransportConfig, TransportConfigError, TransportSnapshot
from soapwire.utilities.transport.engine import (SoapDecodeError,
                                                 SoapEngine,
                                                 SoapEngineError,
                                                 SoapFault,
                                                 SoapRequest,
                                                 ZeepEngine,
                                                 build_wsdl_transport)
from soapwire.utilities.transport.executor import ExchangeDeadline, Executor, HttpExecutor, TransportOutcome
from soapwire.utilities.transport.response import Response, classify
from soapwire.utilities.transport.retry import (ExceptionDescriptor,
                                                RetryController,
                                                RetryingTransport,
                                                Transport)

__all__ = [
    "ExceptionDescriptor",
    "ExchangeDeadline",
    "Executor",
    "HttpExecutor",
    "Response",
    "RetryController",
    "RetryingTransport",
    "SoapClient",
    "SoapDecodeError",
    "SoapEngine",
    "SoapEngineError",
    "SoapFault",
    "SoapRequest",
    "Transport",
    "TransportConfig",
    "TransportConfigError",
    "TransportOutcome",
    "TransportSnapshot",
    "ZeepEngine",
    "build_wsdl_transport",
    "classify",
]
