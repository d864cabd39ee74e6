"""Service layer for readmegen.

Provider adapters, the generation client and the fallback orchestrator.
"""

from .fallback import FallbackOrchestrator, FallbackResult, ModelAttempt
from .generation_client import GenerationClient, classify_error
from .providers import GenerationProvider, LiteLLMProvider

__all__ = [
    "FallbackOrchestrator",
    "FallbackResult",
    "GenerationClient",
    "GenerationProvider",
    "LiteLLMProvider",
    "ModelAttempt",
    "classify_error",
]
