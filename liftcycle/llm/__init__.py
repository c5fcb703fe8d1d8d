"""LLM adapter package.

Providers register under the name used by ``Settings.llm_provider``. The
application shares one provider (and so one HTTP client) through
get_llm_provider(); tests build their own with create_llm_provider().
"""
from typing import Callable

from liftcycle.llm.base import (
    LLMProvider,
    LLMConfig,
    LLMResponse,
    Message,
)
from liftcycle.llm.schemas import CYCLE_ANALYSIS_SCHEMA

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "LLMResponse",
    "Message",
    "CYCLE_ANALYSIS_SCHEMA",
    "create_llm_provider",
    "get_llm_provider",
    "cleanup_llm_provider",
]


def _anthropic(**kwargs) -> LLMProvider:
    from liftcycle.llm.anthropic_provider import AnthropicProvider
    return AnthropicProvider(**kwargs)


_PROVIDERS: dict[str, Callable[..., LLMProvider]] = {
    "anthropic": _anthropic,
}

_shared: LLMProvider | None = None


def create_llm_provider(name: str, **kwargs) -> LLMProvider:
    """Build a new provider by registry name; kwargs go to its constructor."""
    try:
        factory = _PROVIDERS[name]
    except KeyError:
        known = ", ".join(sorted(_PROVIDERS))
        raise ValueError(f"Unknown LLM provider '{name}' (known: {known})") from None
    return factory(**kwargs)


def get_llm_provider() -> LLMProvider:
    """Shared provider for the configured backend, created on first use."""
    global _shared
    if _shared is None:
        from liftcycle.config.settings import get_settings
        _shared = create_llm_provider(get_settings().llm_provider)
    return _shared


async def cleanup_llm_provider() -> None:
    """Close the shared provider's HTTP client. Called on application shutdown."""
    global _shared
    if _shared is not None:
        await _shared.close()
        _shared = None
