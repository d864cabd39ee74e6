"""Shared test fixtures for the readmegen test suite.

No test touches the network: the provider is a scripted fake and the
backoff sleep is recorded instead of slept. Credential environment
variables are cleared so the developer's shell cannot leak into results.
"""

import os

# Keep module-level settings deterministic before any package import.
os.environ["LOG_FORMAT"] = "text"
for _var in ("README_API_KEY", "BYTEZ_API_KEY", "OPENAI_API_KEY"):
    os.environ.pop(_var, None)

import pytest

from readmegen.core.config import Settings


VALID_README = (
    "# Acme Widgets\n"
    "\n"
    "Acme Widgets is a small toolkit for assembling widgets from reusable parts. "
    "It ships a command-line tool and a Python library.\n"
    "\n"
    "## Installation\n"
    "\n"
    "```bash\n"
    "pip install acme-widgets\n"
    "```\n"
    "\n"
    "## Usage\n"
    "\n"
    "Run `acme build` inside a project directory to assemble every widget it declares.\n"
)


class FakeProvider:
    """Scripted provider: returns (or raises) queued responses in order.

    The last queued item repeats once the queue runs dry, so a single
    failure models a provider that always fails.
    """

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls: list[dict] = []

    def call(self, model, messages, *, stream, temperature, api_key):
        self.calls.append({
            "model": model,
            "messages": messages,
            "stream": stream,
            "temperature": temperature,
            "api_key": api_key,
        })
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


class SleepRecorder:
    """Stands in for time.sleep; records requested delays in seconds."""

    def __init__(self):
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def _clean_credentials(monkeypatch):
    for var in ("README_API_KEY", "BYTEZ_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture()
def settings():
    """Settings with a credential and the production retry policy."""
    return Settings(api_key="sk-test-key", max_retries=3, base_delay_ms=1000)


@pytest.fixture()
def keyless_settings():
    return Settings(api_key="")


@pytest.fixture()
def sleep():
    return SleepRecorder()


@pytest.fixture()
def valid_readme():
    return VALID_README
