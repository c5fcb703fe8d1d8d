"""Anthropic Messages API provider."""
import json
import logging

import httpx

from liftcycle.config.settings import get_settings
from liftcycle.llm.base import (
    LLMProvider,
    LLMConfig,
    LLMResponse,
    Message,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """
    Claude via the Anthropic Messages API.

    System messages are lifted into the top-level "system" field; the rest of
    the conversation is sent as user/assistant turns.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.anthropic_api_key
        self.base_url = (base_url or settings.anthropic_base_url).rstrip('/')
        self.default_model = default_model or settings.anthropic_model
        self.api_version = settings.anthropic_version
        self.timeout = timeout or settings.llm_timeout
        self._transport = transport

        if not self.api_key:
            logger.warning("Anthropic API key not configured. Cycle analysis will fail.")

        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": self.api_version,
                    "content-type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _build_payload(self, messages: list[Message], config: LLMConfig) -> dict:
        system_parts = [m.content for m in messages if m.role == "system"]
        if config.json_schema:
            system_parts.append(
                f"Respond with valid JSON matching this schema: {json.dumps(config.json_schema)}"
            )

        payload = {
            "model": config.model or self.default_model,
            "max_tokens": config.max_tokens or 4000,
            "temperature": config.temperature,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        return payload

    async def chat(
        self,
        messages: list[Message],
        config: LLMConfig,
    ) -> LLMResponse:
        client = await self._get_client()

        try:
            response = await client.post(
                f"{self.base_url}/messages",
                json=self._build_payload(messages, config),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Anthropic API error: {e.response.status_code} - {e.response.text}")
            raise

        data = response.json()
        content = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        usage = data.get("usage", {})

        return LLMResponse(
            content=content,
            usage={
                "prompt_tokens": usage.get("input_tokens"),
                "completion_tokens": usage.get("output_tokens"),
            },
            model=data.get("model"),
            finish_reason=data.get("stop_reason"),
        )

    async def health_check(self) -> bool:
        """Check that the API answers with the configured key."""
        if not self.api_key:
            return False

        try:
            client = await self._get_client()
            response = await client.get(f"{self.base_url}/models")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Anthropic health check failed: {e}")
            return False
