"""AI provider abstraction layer.

Supports OpenAI, Google Gemini and Anthropic with a unified interface.
Providers raise httpx errors; callers decide how a failed call is recorded.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

from lexdesk.core.config import settings

PER_MILLION = Decimal("1000000")

# USD per 1M tokens (approximate)
MODEL_PRICING: dict[str, tuple[Decimal, Decimal]] = {
    "gpt-4o-mini": (Decimal("0.15"), Decimal("0.60")),
    "gpt-4o": (Decimal("2.50"), Decimal("10.00")),
    "gemini-2.0-flash": (Decimal("0.10"), Decimal("0.40")),
    "gemini-1.5-pro": (Decimal("1.25"), Decimal("5.00")),
    "claude-3-5-haiku-latest": (Decimal("0.80"), Decimal("4.00")),
    "claude-3-5-sonnet-latest": (Decimal("3.00"), Decimal("15.00")),
}


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Response from an AI provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str

    @property
    def estimated_cost_usd(self) -> Decimal:
        """Zero for models without a known price."""
        input_price, output_price = MODEL_PRICING.get(self.model, (Decimal("0"), Decimal("0")))
        return (
            Decimal(self.prompt_tokens) / PER_MILLION * input_price
            + Decimal(self.completion_tokens) / PER_MILLION * output_price
        )


class AIProvider(ABC):
    """Base class for AI providers."""

    name: str = ""
    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _params(self) -> dict[str, str]:
        return {}

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}{path}",
                headers=self._headers(),
                params=self._params(),
                json=body,
            )
            response.raise_for_status()
            return response.json()

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        """Send a chat completion request."""


class OpenAIProvider(AIProvider):
    """OpenAI chat completions."""

    name = "openai"
    base_url = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, default_model, timeout, transport)

    def _headers(self) -> dict[str, str]:
        return {**super()._headers(), "Authorization": f"Bearer {self.api_key}"}

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model
        data = await self._post("/chat/completions", {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })

        usage = data.get("usage", {})
        return ChatResponse(
            content=data["choices"][0]["message"]["content"],
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            model=model,
        )


class GeminiProvider(AIProvider):
    """Google Gemini generateContent."""

    name = "gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.0-flash",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, default_model, timeout, transport)

    def _params(self) -> dict[str, str]:
        return {"key": self.api_key}

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        # Gemini uses 'user' and 'model' roles; system goes in systemInstruction
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        body: dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in messages
                if m.role != "system"
            ],
            "generationConfig": {"temperature": temperature, "maxOutputTokens": max_tokens},
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        data = await self._post(f"/models/{model}:generateContent", body)

        usage = data.get("usageMetadata", {})
        prompt_tokens = usage.get("promptTokenCount", 0)
        completion_tokens = usage.get("candidatesTokenCount", 0)
        return ChatResponse(
            content=data["candidates"][0]["content"]["parts"][0]["text"],
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model,
        )


class AnthropicProvider(AIProvider):
    """Anthropic Messages API."""

    name = "anthropic"
    base_url = "https://api.anthropic.com/v1"
    api_version = "2023-06-01"

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-3-5-haiku-latest",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, default_model, timeout, transport)

    def _headers(self) -> dict[str, str]:
        return {
            **super()._headers(),
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model
        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": m.role, "content": m.content} for m in messages if m.role != "system"
            ],
        }
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        if system:
            body["system"] = system

        data = await self._post("/messages", body)

        usage = data.get("usage", {})
        prompt_tokens = usage.get("input_tokens", 0)
        completion_tokens = usage.get("output_tokens", 0)
        return ChatResponse(
            content="".join(
                block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
            ),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model,
        )


PROVIDERS: dict[str, type[AIProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
    AnthropicProvider.name: AnthropicProvider,
}


def get_provider(provider_name: str, api_key: str, model: str | None = None) -> AIProvider:
    """Factory function to get the appropriate AI provider."""
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise ValueError(f"Unknown provider: {provider_name}")
    provider = provider_cls(api_key, timeout=settings.AI_TIMEOUT_SECONDS)
    if model:
        provider.default_model = model
    return provider


def get_default_provider() -> AIProvider | None:
    """Provider from settings, or None when AI is not configured."""
    if not settings.ai_enabled:
        return None
    return get_provider(settings.AI_PROVIDER, settings.AI_API_KEY, settings.AI_MODEL or None)
