import os
from collections.abc import Iterable
from pathlib import Path

import pytest

from soapwire.utilities.transport.config import TransportSnapshot
from soapwire.utilities.transport.engine import ZeepEngine
from soapwire.utilities.transport.executor import TransportOutcome


class ScriptedExecutor:
    """Executor fake returning queued outcomes; the last one repeats."""

    def __init__(self, outcomes: Iterable[TransportOutcome]) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, bytes, str, TransportSnapshot]] = []

    def execute(self, url: str, body: bytes, action: str, settings: TransportSnapshot) -> TransportOutcome:
        self.calls.append((url, body, action, settings))
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


@pytest.fixture(autouse=True)
def clean_soapwire_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings tests must not pick up SOAPWIRE_* values from the developer shell."""
    for env_key in list(os.environ):
        if env_key.upper().startswith("SOAPWIRE_"):
            monkeypatch.delenv(env_key)


@pytest.fixture
def scripted_executor() -> type[ScriptedExecutor]:
    return ScriptedExecutor


@pytest.fixture(scope="session")
def calculator_wsdl() -> str:
    return str(Path(__file__).parent / "unit" / "transport" / "wsdl" / "calculator.wsdl")


@pytest.fixture(scope="session")
def calculator_engine(calculator_wsdl: str) -> ZeepEngine:
    """Engine bound to the Calculator test WSDL (Add, Divide, Ping)."""
    return ZeepEngine(calculator_wsdl)
