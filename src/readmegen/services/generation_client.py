"""Single-model README generation with failure classification.

Deep module: callers pass a request in and get markdown back, or a
``GenerationError``. Credential lookup, prompt assembly, response-shape
normalization, fence stripping, validation and retries are handled here.

Two entry points share everything except retry and delivery:

  generate()            -- buffered; wrapped in the backoff scheduler and
                           rejects output that fails validation.
  generate_streaming()  -- hands each fragment to ``on_chunk`` as it
                           arrives; never retried, since the caller has
                           already seen partial output; validation
                           problems are only logged.
"""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from typing import Any, Callable, Optional

from ..backoff import run_with_backoff
from ..core.config import Settings, settings as default_settings
from ..core.logging_config import generation_id_var
from ..exceptions import ErrorKind, GenerationError, ProviderReportedError
from ..output_validator import format_problems, validate
from ..prompts import build_messages
from ..schemas import GenerationConfig, GenerationRequest
from .providers import GenerationProvider, LiteLLMProvider
from .response_shapes import (
    describe_reported_error,
    is_fragment_stream,
    normalize_fragment,
    normalize_response,
    strip_code_fence,
    unwrap_result_pair,
)

logger = logging.getLogger("readmegen.generation")

ChunkCallback = Callable[[str], None]

# Message fragments (lowercase) that identify each transient / fatal failure.
_RATE_LIMIT_MARKERS = ("rate limit",)
_AUTH_MARKERS = ("authentication", "api key")
_NETWORK_MARKERS = ("network", "econnrefused", "connection refused")

# litellm.APIConnectionError / litellm.Timeout derive from the openai SDK's
# APIConnectionError, not from the builtin ConnectionError. Matched by class
# name so classification does not import litellm.
_CONNECTION_ERROR_CLASSES = frozenset({"APIConnectionError", "APITimeoutError"})


def _is_connection_failure(exc: BaseException) -> bool:
    return any(cls.__name__ in _CONNECTION_ERROR_CLASSES for cls in type(exc).__mro__)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_error(exc: BaseException) -> GenerationError:
    """Map a raw provider failure onto the error taxonomy.

    Message text decides first; HTTP status codes and connection-error
    types (builtin or SDK) sharpen the result for exceptions whose message says nothing
    useful. Already-classified errors pass through unchanged.
    """
    if isinstance(exc, GenerationError):
        return exc

    detail = str(exc) or type(exc).__name__
    lowered = detail.lower()
    status = getattr(exc, "status_code", None)

    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return GenerationError(ErrorKind.RATE_LIMIT, f"API rate limit exceeded: {detail}", True, cause=exc)
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return GenerationError(ErrorKind.AUTH_ERROR, f"Authentication failed: {detail}", False, cause=exc)
    if any(marker in lowered for marker in _NETWORK_MARKERS) or isinstance(exc, ConnectionRefusedError):
        return GenerationError(ErrorKind.NETWORK_ERROR, f"Network error: {detail}", True, cause=exc)

    if status == 429:
        return GenerationError(ErrorKind.RATE_LIMIT, f"API rate limit exceeded: {detail}", True, cause=exc)
    if status in (401, 403):
        return GenerationError(ErrorKind.AUTH_ERROR, f"Authentication failed: {detail}", False, cause=exc)
    if isinstance(exc, (ConnectionError, TimeoutError)) or _is_connection_failure(exc):
        return GenerationError(ErrorKind.NETWORK_ERROR, f"Network error: {detail}", True, cause=exc)

    return GenerationError(ErrorKind.UNKNOWN, f"README generation failed: {detail}", False, cause=exc)


def _retry_same_model(exc: Exception) -> bool:
    # Only credential failures are hopeless on the same model. Unclassified
    # UNKNOWN errors (retryable=False) still get the backoff budget; the flag
    # only stops the fallback chain from moving on to other models.
    return not (isinstance(exc, GenerationError) and exc.kind == ErrorKind.AUTH_ERROR)


def cancelled_error() -> GenerationError:
    """Error raised when a caller cancels before any attempt was made."""
    return GenerationError(ErrorKind.UNKNOWN, "README generation cancelled", False)


def _reported_error(error: Any) -> GenerationError:
    # Provider returned an error payload instead of raising. Its nature is
    # unknown, so the same model gets another try within the backoff budget.
    return GenerationError(
        ErrorKind.UNKNOWN,
        f"Provider API error: {describe_reported_error(error)}",
        True,
        cause=ProviderReportedError(error),
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class GenerationClient:
    """Generates a README with one model per call.

    Holds no per-request state, so one instance may serve concurrent
    requests from several threads.

    Args:
        provider: Backend used for completions. Defaults to LiteLLM.
        settings: Pipeline settings. Defaults to the process-wide instance.
        sleep: Seconds-based sleep used between retries (injectable for tests).
        rng: Jitter source for backoff delays.
    """

    def __init__(
        self,
        provider: Optional[GenerationProvider] = None,
        settings: Optional[Settings] = None,
        *,
        sleep: Optional[Callable[[float], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings or default_settings
        self._provider = provider or LiteLLMProvider(self._settings)
        self._sleep = sleep
        self._rng = rng

    # ----- shared helpers --------------------------------------------------

    def _require_api_key(self) -> str:
        api_key = self._settings.resolve_api_key()
        if not api_key:
            raise GenerationError(
                ErrorKind.AUTH_ERROR,
                "Missing API key. Set README_API_KEY, BYTEZ_API_KEY or OPENAI_API_KEY.",
                False,
            )
        return api_key

    def resolve_config(self, config: GenerationConfig) -> GenerationConfig:
        """Copy of *config* with model and temperature defaults filled in."""
        updates: dict[str, Any] = {}
        if not config.model:
            updates["model"] = self._settings.default_model
        if config.temperature is None:
            updates["temperature"] = self._settings.default_temperature
        return config.model_copy(update=updates) if updates else config

    def _call_provider(
        self,
        config: GenerationConfig,
        messages: list[dict[str, str]],
        api_key: str,
        stream: bool,
    ) -> Any:
        return self._provider.call(
            config.model,
            messages,
            stream=stream,
            temperature=config.temperature,
            api_key=api_key,
        )

    # ----- non-streaming ---------------------------------------------------

    def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Generate a validated README, retrying transient failures.

        Raises:
            GenerationError: AUTH_ERROR immediately when no credential is
                configured; UNKNOWN when *cancel_event* is already set;
                otherwise the last classified failure once the retry budget
                is spent or an AUTH_ERROR occurs.
        """
        api_key = self._require_api_key()
        if cancel_event is not None and cancel_event.is_set():
            raise cancelled_error()
        config = self.resolve_config(request.config)
        messages = build_messages(config, request.context_text)

        def attempt() -> str:
            try:
                return self._generate_once(config, messages, api_key)
            except GenerationError:
                raise
            except Exception as exc:
                raise classify_error(exc) from exc

        token = generation_id_var.set(uuid.uuid4().hex[:12])
        try:
            return run_with_backoff(
                attempt,
                max_retries=self._settings.max_retries,
                base_delay_ms=self._settings.base_delay_ms,
                should_retry=_retry_same_model,
                sleep=self._sleep,
                rng=self._rng,
                cancel_event=cancel_event,
                label=f"generate[{config.model}]",
            )
        finally:
            generation_id_var.reset(token)

    def _generate_once(
        self,
        config: GenerationConfig,
        messages: list[dict[str, str]],
        api_key: str,
    ) -> str:
        logger.info(
            "Requesting README from %s (prompt_len=%d chars)",
            config.model, sum(len(m["content"]) for m in messages),
        )
        start = time.monotonic()
        response = self._call_provider(config, messages, api_key, stream=False)
        elapsed = time.monotonic() - start

        error, output = unwrap_result_pair(response)
        if error:
            raise _reported_error(error)

        document = strip_code_fence(normalize_response(output))
        logger.info(
            "Response from %s: len=%d chars, time=%.2fs",
            config.model, len(document), elapsed,
        )

        result = validate(document)
        if not result.valid:
            raise GenerationError(
                ErrorKind.INVALID_OUTPUT,
                f"Generated README failed validation: {format_problems(result)}",
                True,
            )
        return document

    # ----- streaming -------------------------------------------------------

    def generate_streaming(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """Generate a README, passing each fragment to *on_chunk* as it arrives.

        Fragments are delivered synchronously, in arrival order, exactly as
        received. The returned document is their concatenation with any
        wrapping code fence removed.

        Raises:
            GenerationError: classified failure; *on_chunk* may already have
                been called for earlier fragments.
        """
        api_key = self._require_api_key()
        config = self.resolve_config(request.config)
        messages = build_messages(config, request.context_text)

        parts: list[str] = []

        def deliver(text: str) -> None:
            parts.append(text)
            if on_chunk is not None:
                on_chunk(text)

        token = generation_id_var.set(uuid.uuid4().hex[:12])
        try:
            logger.info("Streaming README from %s", config.model)
            response = self._call_provider(config, messages, api_key, stream=True)

            error, response = unwrap_result_pair(response)
            if error:
                raise _reported_error(error)

            if is_fragment_stream(response):
                for fragment in response:
                    text = normalize_fragment(fragment)
                    if text:
                        deliver(text)
            else:
                text = normalize_response(response)
                if text:
                    deliver(text)

            document = strip_code_fence("".join(parts))
            logger.info("Stream from %s finished: %d chunks, %d chars", config.model, len(parts), len(document))

            result = validate(document)
            if not result.valid:
                logger.warning("README validation warnings: %s", format_problems(result))
            return document
        except GenerationError:
            raise
        except Exception as exc:
            raise classify_error(exc) from exc
        finally:
            generation_id_var.reset(token)
