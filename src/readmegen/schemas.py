"""Generation request schemas."""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class ReadmeStyle(str, Enum):
    """Level of detail requested for the generated README."""
    MINIMAL = "minimal"
    STANDARD = "standard"
    ENTERPRISE = "enterprise"


class GenerationConfig(BaseModel):
    """Options for one generation call.

    Frozen: the client fills unset fields on a copy, never in place.
    """
    style: ReadmeStyle = ReadmeStyle.STANDARD
    include_architecture: bool = False
    include_security: bool = False
    include_contributing: bool = False
    model: Optional[str] = None  # None = settings.default_model
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)  # None = settings.default_temperature
    streaming: bool = False

    model_config = {"frozen": True}

    @classmethod
    def for_style(cls, style: ReadmeStyle | str, **overrides) -> "GenerationConfig":
        """Config preset matching the sections each style normally carries.

        Enterprise READMEs get every optional section; standard ones get a
        contributing guide; minimal ones get none.
        """
        style = ReadmeStyle(style)
        values = {
            "style": style,
            "include_architecture": style == ReadmeStyle.ENTERPRISE,
            "include_security": style == ReadmeStyle.ENTERPRISE,
            "include_contributing": style in (ReadmeStyle.ENTERPRISE, ReadmeStyle.STANDARD),
        }
        values.update(overrides)
        return cls(**values)

    def with_model(self, model: str) -> "GenerationConfig":
        return self.model_copy(update={"model": model})


class GenerationRequest(BaseModel):
    """Repository context plus the options to generate with."""
    context_text: str
    config: GenerationConfig = Field(default_factory=GenerationConfig)

    model_config = {"frozen": True}

    def with_model(self, model: str) -> "GenerationRequest":
        """Copy of this request targeting a different model."""
        return self.model_copy(update={"config": self.config.with_model(model)})
