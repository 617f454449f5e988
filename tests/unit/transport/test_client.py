from typing import Any

import httpx
import pytest
import respx
from lxml import etree

from soapwire.enums import ResponseStatus, TransportErrorType
from soapwire.utilities.transport.client import SoapClient
from soapwire.utilities.transport.config import TransportConfig
from soapwire.utilities.transport.engine import SoapFault, SoapRequest, ZeepEngine
from soapwire.utilities.transport.executor import TransportOutcome
from soapwire.utilities.transport.response import TIMEOUT_MESSAGE
from soapwire.utilities.transport.retry import RetryingTransport

LOCATION = "https://example.com/calculator.asmx"
SOAP_ENV = "http://schemas.xmlsoap.org/soap/envelope/"
TEMPURI = "http://tempuri.org/"


class RawEngine:
    """Engine fake: opaque request body, response decoded as text."""

    def build_request(self, operation: str, arguments: dict[str, Any]) -> SoapRequest:
        return SoapRequest(url=LOCATION, body=f"<{operation}/>".encode(), action=f"urn:{operation}")

    def decode_response(self, operation: str, payload: bytes) -> str:
        return payload.decode()


def _envelope(body: str) -> bytes:
    return f'<soap:Envelope xmlns:soap="{SOAP_ENV}"><soap:Body>{body}</soap:Body></soap:Envelope>'.encode()


def _result(operation: str, value: int) -> str:
    return f'<{operation}Response xmlns="{TEMPURI}"><{operation}Result>{value}</{operation}Result></{operation}Response>'


@pytest.fixture
def engine(calculator_engine: ZeepEngine) -> ZeepEngine:
    return calculator_engine


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------

@respx.mock
def test_connection_refused_on_every_attempt() -> None:
    route = respx.post(LOCATION).mock(side_effect=httpx.ConnectError("connection refused"))
    config = TransportConfig(negotiation_timeout=5, read_timeout=5, max_attempts=3, verify_tls_certificate=True)
    client = SoapClient(RawEngine(), config=config)

    response = client.call("Add", {"intA": 1})

    assert response.status == ResponseStatus.FAIL
    assert response.error
    assert response.payload is None
    assert response.attempts == 3
    assert route.call_count == 3


def test_single_attempt_success_with_fake_executor(scripted_executor) -> None:
    executor = scripted_executor([TransportOutcome.success(b"<xml>ok</xml>")])
    transport = RetryingTransport(TransportConfig(max_attempts=1), executor)
    client = SoapClient(RawEngine(), transport=transport)

    response = client.call("Echo")

    assert response.status == ResponseStatus.SUCCESS
    assert response.payload == "<xml>ok</xml>"
    assert response.error is None
    assert response.attempts == 1
    assert len(executor.calls) == 1


def test_empty_body_success(scripted_executor, engine: ZeepEngine) -> None:
    executor = scripted_executor([TransportOutcome.success(b"")])
    client = SoapClient(engine, transport=RetryingTransport(executor=executor))
    response = client.call("Ping")
    assert response.status == ResponseStatus.SUCCESS
    assert response.payload is None


@respx.mock
def test_timeout_then_success(engine: ZeepEngine) -> None:
    route = respx.post(LOCATION)
    route.side_effect = [
        httpx.ConnectTimeout("timed out"),
        httpx.Response(200, content=_envelope(_result("Add", 35))),
    ]
    client = SoapClient(engine, config=TransportConfig(max_attempts=2))

    response = client.call("Add", intA=10, intB=25)

    assert response.status == ResponseStatus.SUCCESS
    assert response.payload == 35
    assert response.attempts == 2
    assert route.call_count == 2


@respx.mock
def test_all_timeouts(engine: ZeepEngine) -> None:
    respx.post(LOCATION).mock(side_effect=httpx.ReadTimeout("timed out"))
    client = SoapClient(engine, config=TransportConfig(max_attempts=2))

    response = client.call("Add", intA=1, intB=2)

    assert response.status == ResponseStatus.TIMEOUT
    assert response.error == TIMEOUT_MESSAGE
    assert response.attempts == 2
    assert client.is_timeout() is True
    assert client.has_errors() is True


# ---------------------------------------------------------------------------
# Request wiring
# ---------------------------------------------------------------------------

@respx.mock
def test_envelope_and_action_sent(engine: ZeepEngine) -> None:
    route = respx.post(LOCATION).mock(
        return_value=httpx.Response(200, content=_envelope(_result("Add", 3)))
    )
    config = TransportConfig(headers={"X-Api-Key": "secret"}, login="user", password="pass")
    client = SoapClient(engine, config=config)

    client.call("Add", {"intA": 1}, intB=2)

    request = route.calls[0].request
    assert request.headers["soapaction"] == '"http://tempuri.org/Add"'
    assert request.headers["x-api-key"] == "secret"
    assert "authorization" in request.headers
    add = etree.fromstring(request.content).find(f"{{{SOAP_ENV}}}Body/{{{TEMPURI}}}Add")
    assert add is not None
    assert [(etree.QName(child).localname, child.text) for child in add] == [("intA", "1"), ("intB", "2")]
    assert client.last_request == request.content


@respx.mock
def test_last_response_recorded(engine: ZeepEngine) -> None:
    content = _envelope(_result("Add", 3))
    respx.post(LOCATION).mock(return_value=httpx.Response(200, content=content))
    client = SoapClient(engine)
    client.call("Add", intA=1, intB=2)
    assert client.last_response == content


@respx.mock
def test_service_proxy(engine: ZeepEngine) -> None:
    respx.post(LOCATION).mock(
        return_value=httpx.Response(200, content=_envelope(_result("Divide", 4)))
    )
    client = SoapClient(engine)
    response = client.service.Divide(intA=8, intB=2)
    assert response.payload == 4


def test_service_proxy_rejects_private_names() -> None:
    client = SoapClient(RawEngine())
    with pytest.raises(AttributeError):
        client.service._secret  # noqa: B018


@respx.mock
def test_config_changes_apply_to_next_call() -> None:
    route = respx.post(LOCATION).mock(side_effect=httpx.ConnectError("refused"))
    client = SoapClient(RawEngine(), config=TransportConfig(max_attempts=1))

    client.call("Ping")
    assert route.call_count == 1

    assert client.config is not None
    client.config.set_max_attempts(3)
    response = client.call("Ping")
    assert route.call_count == 4
    assert response.attempts == 3


# ---------------------------------------------------------------------------
# Faults and decode errors
# ---------------------------------------------------------------------------

_FAULT = "<soap:Fault><faultcode>soap:Server</faultcode><faultstring>Division by zero</faultstring></soap:Fault>"


@respx.mock
def test_fault_returns_fail(engine: ZeepEngine) -> None:
    respx.post(LOCATION).mock(return_value=httpx.Response(500, content=_envelope(_FAULT)))
    client = SoapClient(engine, config=TransportConfig(max_attempts=3))

    response = client.call("Divide", intA=1, intB=0)

    assert response.status == ResponseStatus.FAIL
    assert response.error == "SOAP Fault: Division by zero"
    assert response.attempts == 1
    assert client.has_errors() is True
    assert client.is_timeout() is False


@respx.mock
def test_fault_raised_when_requested(engine: ZeepEngine) -> None:
    respx.post(LOCATION).mock(return_value=httpx.Response(500, content=_envelope(_FAULT)))
    client = SoapClient(engine, raise_faults=True)
    with pytest.raises(SoapFault):
        client.call("Divide", intA=1, intB=0)


@respx.mock
def test_malformed_reply_returns_fail(engine: ZeepEngine) -> None:
    respx.post(LOCATION).mock(return_value=httpx.Response(200, content=b"<html>gateway error"))
    client = SoapClient(engine)
    response = client.call("Add", intA=1, intB=2)
    assert response.status == ResponseStatus.FAIL
    assert response.error is not None
    assert response.error.startswith("Invalid SOAP response")


# ---------------------------------------------------------------------------
# Injected transport
# ---------------------------------------------------------------------------

def test_injected_transport_without_config() -> None:
    class FixedTransport:
        def __init__(self) -> None:
            self.sent: list[tuple[str, bytes, str]] = []

        def send(self, url: str, body: bytes, action: str) -> TransportOutcome:
            self.sent.append((url, body, action))
            return TransportOutcome.failure(TransportErrorType.OTHER, "offline").with_attempt(2)

    transport = FixedTransport()
    client = SoapClient(RawEngine(), transport=transport)

    response = client.call("Ping")

    assert client.config is None
    assert transport.sent == [(LOCATION, b"<Ping/>", "urn:Ping")]
    assert response.status == ResponseStatus.FAIL
    assert response.attempts == 2
    assert client.has_errors() is True
    assert client.exception_descriptor.get_last_error() == {"type": "other", "message": "offline", "url": LOCATION}


def test_injected_transport_timeout_is_recorded() -> None:
    class SlowTransport:
        def send(self, url: str, body: bytes, action: str) -> TransportOutcome:
            return TransportOutcome.failure(TransportErrorType.TIMEOUT, "ReadTimeout: slow").with_attempt(1)

    client = SoapClient(RawEngine(), transport=SlowTransport())

    response = client.call("Ping")

    assert response.status == ResponseStatus.TIMEOUT
    assert client.has_errors() is True
    assert client.is_timeout() is True


def test_retrying_transport_failures_recorded_once(scripted_executor) -> None:
    executor = scripted_executor([TransportOutcome.failure(TransportErrorType.OTHER, "ConnectError: refused")])
    client = SoapClient(RawEngine(), transport=RetryingTransport(TransportConfig(max_attempts=2), executor))

    client.call("Ping")

    assert len(client.exception_descriptor.errors) == 2


def test_has_errors_false_before_any_call() -> None:
    client = SoapClient(RawEngine())
    assert client.has_errors() is False
    assert client.is_timeout() is False


def test_has_errors_false_after_success(scripted_executor) -> None:
    executor = scripted_executor([TransportOutcome.success(b"ok")])
    client = SoapClient(RawEngine(), transport=RetryingTransport(executor=executor))
    client.call("Ping")
    assert client.has_errors() is False
