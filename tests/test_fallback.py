"""Tests for the multi-model fallback orchestrator.

The generation client is replaced by a stub keyed on model name, so each
test states exactly which candidates fail and how.
"""

import threading
from unittest.mock import MagicMock

import pytest

from readmegen.core.config import Settings
from readmegen.exceptions import ErrorKind, GenerationError
from readmegen.schemas import GenerationConfig, GenerationRequest
from readmegen.services.fallback import FallbackOrchestrator, ModelAttempt
from readmegen.services.generation_client import GenerationClient

from conftest import VALID_README, FakeProvider


def _retryable(message="rate limit"):
    return GenerationError(ErrorKind.RATE_LIMIT, message, True)


def _fatal(message="bad key"):
    return GenerationError(ErrorKind.AUTH_ERROR, message, False)


class StubClient:
    """Maps model name -> document or GenerationError; records calls."""

    def __init__(self, outcomes: dict):
        self.outcomes = outcomes
        self.models_called: list[str] = []
        self.requests: list[GenerationRequest] = []

    def generate(self, request, cancel_event=None):
        model = request.config.model
        self.models_called.append(model)
        self.requests.append(request)
        outcome = self.outcomes[model]
        if isinstance(outcome, GenerationError):
            raise outcome
        return outcome


@pytest.fixture
def request_():
    return GenerationRequest(context_text="ctx", config=GenerationConfig(include_security=True))


class TestFallbackChain:
    def test_first_model_success(self, request_):
        client = StubClient({"A": "doc-a", "B": "doc-b"})
        result = FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)

        assert result.document == "doc-a"
        assert result.model_used == "A"
        assert client.models_called == ["A"]

    def test_retryable_failure_moves_to_next_model(self, request_):
        client = StubClient({"A": _retryable(), "B": "doc-b", "C": "doc-c"})
        result = FallbackOrchestrator(client, ["A", "B", "C"]).generate_with_fallback(request_)

        assert result.model_used == "B"
        assert result.document == "doc-b"
        assert client.models_called == ["A", "B"]

    def test_non_retryable_failure_stops_chain(self, request_):
        error = _fatal()
        client = StubClient({"A": error, "B": "doc-b"})

        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)

        assert exc_info.value is error
        assert client.models_called == ["A"]

    def test_unknown_non_retryable_stops_chain(self, request_):
        error = GenerationError(ErrorKind.UNKNOWN, "odd", False)
        client = StubClient({"A": error, "B": "doc-b"})
        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)
        assert exc_info.value is error
        assert client.models_called == ["A"]

    def test_last_model_error_propagates(self, request_):
        last = _retryable("last one")
        client = StubClient({"A": _retryable("first"), "B": last})

        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)

        assert exc_info.value is last
        assert client.models_called == ["A", "B"]

    def test_empty_candidate_list(self, request_):
        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(StubClient({}), []).generate_with_fallback(request_)
        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert exc_info.value.retryable is False
        assert exc_info.value.message == "All fallback models failed"

    def test_model_substituted_on_copy(self, request_):
        client = StubClient({"A": _retryable(), "B": "doc-b"})
        FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)

        assert [r.config.model for r in client.requests] == ["A", "B"]
        assert all(r.config.include_security for r in client.requests)
        assert all(r.context_text == "ctx" for r in client.requests)
        assert request_.config.model is None

    def test_attempts_recorded(self, request_):
        error = _retryable()
        client = StubClient({"A": error, "B": "doc-b"})
        result = FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_)

        assert result.attempts == (
            ModelAttempt(model_name="A", outcome=error),
            ModelAttempt(model_name="B", outcome="doc-b"),
        )
        assert [a.succeeded for a in result.attempts] == [False, True]

    def test_cancel_event_forwarded(self, request_):
        client = MagicMock()
        client.generate.return_value = "doc"
        event = threading.Event()
        FallbackOrchestrator(client, ["A"]).generate_with_fallback(request_, cancel_event=event)
        assert client.generate.call_args.kwargs["cancel_event"] is event

    def test_cancelled_before_start_tries_nothing(self, request_):
        event = threading.Event()
        event.set()
        client = StubClient({"A": "doc-a", "B": "doc-b"})

        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(request_, cancel_event=event)

        assert exc_info.value.kind == ErrorKind.UNKNOWN
        assert exc_info.value.retryable is False
        assert client.models_called == []

    def test_cancel_stops_chain_with_last_failure(self, request_):
        event = threading.Event()
        first = _retryable("first")

        class CancellingClient(StubClient):
            def generate(self, request, cancel_event=None):
                event.set()
                return super().generate(request, cancel_event)

        client = CancellingClient({"A": first, "B": "doc-b", "C": "doc-c"})
        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B", "C"]).generate_with_fallback(request_, cancel_event=event)

        assert exc_info.value is first
        assert client.models_called == ["A"]


class TestDefaults:
    def test_models_from_settings(self):
        settings = Settings(api_key="k", fallback_models="x/one, x/two,,")
        orchestrator = FallbackOrchestrator(StubClient({}), settings=settings)
        assert orchestrator.models == ("x/one", "x/two")

    def test_default_chain_strongest_first(self):
        orchestrator = FallbackOrchestrator(StubClient({}), settings=Settings(api_key="k"))
        assert orchestrator.models == (
            "openai/gpt-4o",
            "openai/gpt-4-turbo",
            "anthropic/claude-3-5-sonnet-20241022",
            "openai/gpt-3.5-turbo",
        )


class TestWithRealClient:
    """Orchestrator + GenerationClient + scripted provider together."""

    def test_falls_back_after_retries_exhausted(self, sleep):
        settings = Settings(api_key="sk-test-key", max_retries=1, base_delay_ms=1)

        class PerModelProvider(FakeProvider):
            def call(self, model, messages, **kwargs):
                super().call(model, messages, **kwargs)
                if model == "A":
                    raise Exception("rate limit exceeded")
                return VALID_README

        provider = PerModelProvider(None)
        client = GenerationClient(provider=provider, settings=settings, sleep=sleep)
        result = FallbackOrchestrator(client, ["A", "B", "C"]).generate_with_fallback(
            GenerationRequest(context_text="ctx")
        )

        assert result.model_used == "B"
        assert [c["model"] for c in provider.calls] == ["A", "A", "B"]
        assert len(sleep.delays) == 1

    def test_missing_credential_stops_at_first_model(self, keyless_settings, sleep):
        provider = FakeProvider(VALID_README)
        client = GenerationClient(provider=provider, settings=keyless_settings, sleep=sleep)
        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B"]).generate_with_fallback(GenerationRequest(context_text="ctx"))
        assert exc_info.value.kind == ErrorKind.AUTH_ERROR
        assert provider.calls == []

    def test_cancelled_chain_makes_no_provider_calls(self, settings, sleep):
        event = threading.Event()
        event.set()
        provider = FakeProvider(Exception("rate limit exceeded"))
        client = GenerationClient(provider=provider, settings=settings, sleep=sleep)

        with pytest.raises(GenerationError):
            FallbackOrchestrator(client, ["A", "B", "C"]).generate_with_fallback(
                GenerationRequest(context_text="ctx"), cancel_event=event,
            )

        assert provider.calls == []
        assert sleep.delays == []

    def test_cancel_mid_chain_skips_remaining_models(self, settings, sleep):
        event = threading.Event()

        class CancelOnCall(FakeProvider):
            def call(self, model, messages, **kwargs):
                event.set()
                return super().call(model, messages, **kwargs)

        provider = CancelOnCall(Exception("rate limit exceeded"))
        client = GenerationClient(provider=provider, settings=settings, sleep=sleep)

        with pytest.raises(GenerationError) as exc_info:
            FallbackOrchestrator(client, ["A", "B", "C"]).generate_with_fallback(
                GenerationRequest(context_text="ctx"), cancel_event=event,
            )

        assert exc_info.value.kind == ErrorKind.RATE_LIMIT
        assert [c["model"] for c in provider.calls] == ["A"]
