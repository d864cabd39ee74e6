"""Resilient README generation pipeline.

Public entry points take repository context text and a GenerationConfig
and return markdown, raising ``GenerationError`` on failure:

    generate(context_text, config)                       -> str
    generate_streaming(context_text, config, on_chunk)   -> str
    generate_with_fallback(context_text, config)         -> FallbackResult
"""

from __future__ import annotations

from typing import Optional

from .exceptions import ErrorKind, GenerationError
from .output_validator import ValidationResult, validate
from .prompts import build_instruction
from .schemas import GenerationConfig, GenerationRequest, ReadmeStyle
from .services import (
    FallbackOrchestrator,
    FallbackResult,
    GenerationClient,
    ModelAttempt,
    classify_error,
)
from .services.generation_client import ChunkCallback

__version__ = "0.1.0"


def _request(context_text: str, config: Optional[GenerationConfig]) -> GenerationRequest:
    return GenerationRequest(context_text=context_text, config=config or GenerationConfig())


def generate(context_text: str, config: Optional[GenerationConfig] = None) -> str:
    """Generate a validated README with one model, retrying transient failures."""
    return GenerationClient().generate(_request(context_text, config))


def generate_streaming(
    context_text: str,
    config: Optional[GenerationConfig] = None,
    on_chunk: Optional[ChunkCallback] = None,
) -> str:
    """Generate a README, calling *on_chunk* with each fragment as it arrives."""
    return GenerationClient().generate_streaming(_request(context_text, config), on_chunk)


def generate_with_fallback(
    context_text: str,
    config: Optional[GenerationConfig] = None,
) -> FallbackResult:
    """Generate a README with the first candidate model that succeeds."""
    return FallbackOrchestrator().generate_with_fallback(_request(context_text, config))


__all__ = [
    "ErrorKind",
    "FallbackOrchestrator",
    "FallbackResult",
    "GenerationClient",
    "GenerationConfig",
    "GenerationError",
    "GenerationRequest",
    "ModelAttempt",
    "ReadmeStyle",
    "ValidationResult",
    "build_instruction",
    "classify_error",
    "generate",
    "generate_streaming",
    "generate_with_fallback",
    "validate",
]
