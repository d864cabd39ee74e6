"""Multi-model fallback for README generation.

Tries candidate models strongest-first until one produces a valid README.
Each candidate already gets its own retry budget inside the generation
client; moving on to another model only makes sense for failures marked
retryable. Non-retryable errors (bad credentials, unclassified failures)
would fail the same way on every model and stop the chain at once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from ..core.config import Settings, settings as default_settings
from ..exceptions import ErrorKind, GenerationError
from ..schemas import GenerationRequest
from .generation_client import GenerationClient, cancelled_error

logger = logging.getLogger("readmegen.fallback")


@dataclass(frozen=True)
class ModelAttempt:
    """What happened when one candidate model was tried."""

    model_name: str
    outcome: Union[str, GenerationError]  # document on success

    @property
    def succeeded(self) -> bool:
        return not isinstance(self.outcome, GenerationError)


@dataclass(frozen=True)
class FallbackResult:
    """A generated document and the model that actually produced it."""

    document: str
    model_used: str
    attempts: tuple[ModelAttempt, ...] = field(default=())


class FallbackOrchestrator:
    """Drives a GenerationClient across an ordered list of models.

    Args:
        client: Client used for every candidate.
        models: Candidate model identifiers, strongest first. Defaults to
            ``settings.get_fallback_models()``.
        settings: Source of the default candidate list.
    """

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        models: Optional[Sequence[str]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or default_settings
        self._client = client or GenerationClient(settings=self._settings)
        if models is None:
            models = self._settings.get_fallback_models()
        self.models: tuple[str, ...] = tuple(models)

    def generate_with_fallback(
        self,
        request: GenerationRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> FallbackResult:
        """Generate with the first candidate model that succeeds.

        Raises:
            GenerationError: the first non-retryable failure, or the last
                candidate's failure when every model failed. Once
                *cancel_event* is set no further model is tried and the
                most recent failure is re-raised.
        """
        attempts: list[ModelAttempt] = []
        last_index = len(self.models) - 1

        for index, model in enumerate(self.models):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Fallback chain cancelled before %s", model)
                if attempts:
                    raise attempts[-1].outcome
                raise cancelled_error()
            logger.info("Attempting README generation with %s (%d/%d)", model, index + 1, len(self.models))
            try:
                document = self._client.generate(request.with_model(model), cancel_event=cancel_event)
            except GenerationError as exc:
                attempts.append(ModelAttempt(model_name=model, outcome=exc))
                if not exc.retryable or index == last_index:
                    logger.error(
                        "Fallback chain stopped at %s: %s (%s)",
                        model, exc.message, exc.kind.value,
                        extra={"attempts": [a.model_name for a in attempts]},
                    )
                    raise
                logger.warning("%s failed (%s), trying next model...", model, exc.kind.value)
                continue

            attempts.append(ModelAttempt(model_name=model, outcome=document))
            if index > 0:
                logger.info("README generated with fallback model %s", model)
            return FallbackResult(document=document, model_used=model, attempts=tuple(attempts))

        raise GenerationError(ErrorKind.UNKNOWN, "All fallback models failed", False)
