"""Provider-neutral LLM types."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class Message:
    role: Literal["system", "user", "assistant"]
    content: str


@dataclass
class LLMConfig:
    """Per-request generation settings."""
    model: str | None = None
    temperature: float = 0.3
    max_tokens: int | None = None
    json_schema: dict[str, Any] | None = None


@dataclass
class LLMResponse:
    content: str
    structured_data: dict[str, Any] | None = None
    usage: dict[str, int | None] = field(default_factory=dict)
    model: str | None = None
    finish_reason: str | None = None


class LLMProvider(ABC):
    """Interface every LLM backend implements."""

    @abstractmethod
    async def chat(self, messages: list[Message], config: LLMConfig) -> LLMResponse:
        """Send a conversation and return the complete response."""

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        """Release network resources held by the provider."""
