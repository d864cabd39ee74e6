"""Generation provider adapters.

The client talks to any object with a ``call()`` method matching
``GenerationProvider``. Responses are deliberately untyped: a provider may
return a plain string, an object with ``content``, an OpenAI-style
completion, an ``{"error", "output"}`` pair, or an iterator of fragments
when streaming. ``response_shapes`` turns all of them into text.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ..core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class GenerationProvider(Protocol):
    """Anything that can run one chat completion against a named model."""

    def call(
        self,
        model: str,
        messages: list[dict[str, str]],
        *,
        stream: bool,
        temperature: float,
        api_key: str,
    ) -> Any:
        ...


class LiteLLMProvider:
    """Routes calls through LiteLLM, so any LiteLLM model string works.

    Non-streaming calls return a ``ModelResponse`` (choices shape);
    streaming calls return an iterator of chunks carrying
    ``choices[0].delta.content``.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings

    def call(
        self,
        model: str,
        messages: list[dict[str, str]],
        *,
        stream: bool,
        temperature: float,
        api_key: str,
    ) -> Any:
        import litellm

        completion_kwargs: dict = {
            "model": model,
            "api_key": api_key,
            "messages": messages,
            "temperature": temperature,
            "stream": stream,
            "timeout": self._settings.request_timeout,
        }
        if self._settings.api_base:
            completion_kwargs["api_base"] = self._settings.api_base

        return litellm.completion(**completion_kwargs)
