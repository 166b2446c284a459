from enum import Enum
from typing import Mapping, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    NOTE = "note"
    PRACTICE = "practice"
    SUMMARY = "summary"


class GenerationSource(str, Enum):
    PROVIDER = "provider"
    FALLBACK = "fallback"


class GenerationRequest(BaseModel):
    """Validated generation input. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    parameters: Mapping[str, Union[str, int, None]] = Field(default_factory=dict)
    raw_prompt: str = ""

    def param(self, name: str, default: str = "") -> str:
        value = self.parameters.get(name)
        if value is None or value == "":
            return default
        return str(value)


class GenerationParams(BaseModel):
    """Arguments handed to the text generation provider."""
    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str
    temperature: float = 0.7
    max_tokens: int = 4000
    system_prompt: Optional[str] = None


class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    succeeded_via: GenerationSource
    error: Optional[str] = None
