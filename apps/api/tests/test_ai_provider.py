"""Tests for the HTTP providers, driven through httpx.MockTransport."""

import json
from decimal import Decimal

import httpx
import pytest

from lexdesk.db.enums import DocumentStatus, DocumentType
from lexdesk.schemas.documents import DocumentVariable as V
from lexdesk.schemas.documents import DocumentVariables
from lexdesk.services import document_generation_service
from lexdesk.services.ai_provider import (
    AnthropicProvider,
    ChatMessage,
    ChatResponse,
    GeminiProvider,
    OpenAIProvider,
)

MESSAGES = [
    ChatMessage(role="system", content="You are a legal drafting assistant."),
    ChatMessage(role="user", content="Draft a demand letter."),
    ChatMessage(role="assistant", content="Which insurer?"),
    ChatMessage(role="user", content="Acme Insurance."),
]


class Recorder:
    """MockTransport handler that keeps the last request."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body or {}
        self.request: httpx.Request | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.request = request
        return httpx.Response(self.status_code, json=self.body)

    @property
    def sent(self) -> dict:
        return json.loads(self.request.content)


def _transport(recorder):
    return httpx.MockTransport(recorder)


async def test_openai_request_and_parsing():
    recorder = Recorder(body={
        "choices": [{"message": {"role": "assistant", "content": "Dear Adjuster,"}}],
        "usage": {"prompt_tokens": 40, "completion_tokens": 12, "total_tokens": 52},
    })
    provider = OpenAIProvider("sk-openai", transport=_transport(recorder))

    response = await provider.chat(MESSAGES, temperature=0.2, max_tokens=500)

    assert recorder.request.url.host == "api.openai.com"
    assert recorder.request.url.path == "/v1/chat/completions"
    assert recorder.request.headers["Authorization"] == "Bearer sk-openai"
    body = recorder.sent
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 500
    assert [m["role"] for m in body["messages"]] == ["system", "user", "assistant", "user"]

    assert response == ChatResponse("Dear Adjuster,", 40, 12, 52, "gpt-4o-mini")


async def test_openai_missing_usage_counts_zero():
    recorder = Recorder(body={"choices": [{"message": {"content": "ok"}}]})
    provider = OpenAIProvider("sk-openai", transport=_transport(recorder))

    response = await provider.chat(MESSAGES, model="gpt-4o")

    assert recorder.sent["model"] == "gpt-4o"
    assert (response.prompt_tokens, response.completion_tokens, response.total_tokens) == (0, 0, 0)


async def test_gemini_request_and_parsing():
    recorder = Recorder(body={
        "candidates": [{"content": {"parts": [{"text": "Dear Adjuster,"}]}}],
        "usageMetadata": {"promptTokenCount": 30, "candidatesTokenCount": 9},
    })
    provider = GeminiProvider("g-key", transport=_transport(recorder))

    response = await provider.chat(MESSAGES)

    url = recorder.request.url
    assert url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
    assert url.params["key"] == "g-key"
    body = recorder.sent
    assert body["systemInstruction"] == {"parts": [{"text": "You are a legal drafting assistant."}]}
    assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
    assert body["contents"][0]["parts"] == [{"text": "Draft a demand letter."}]
    assert body["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 2000}

    assert response.content == "Dear Adjuster,"
    assert response.total_tokens == 39


async def test_anthropic_request_and_parsing():
    recorder = Recorder(body={
        "content": [
            {"type": "text", "text": "Dear "},
            {"type": "tool_use", "id": "t1"},
            {"type": "text", "text": "Adjuster,"},
        ],
        "usage": {"input_tokens": 25, "output_tokens": 7},
    })
    provider = AnthropicProvider("sk-ant", transport=_transport(recorder))

    response = await provider.chat(MESSAGES)

    assert recorder.request.url.host == "api.anthropic.com"
    assert recorder.request.url.path == "/v1/messages"
    assert recorder.request.headers["x-api-key"] == "sk-ant"
    assert recorder.request.headers["anthropic-version"] == AnthropicProvider.api_version
    body = recorder.sent
    assert body["system"] == "You are a legal drafting assistant."
    assert all(m["role"] != "system" for m in body["messages"])
    assert body["model"] == "claude-3-5-haiku-latest"

    assert response.content == "Dear Adjuster,"
    assert (response.prompt_tokens, response.completion_tokens, response.total_tokens) == (25, 7, 32)


async def test_non_2xx_raises_status_error():
    provider = AnthropicProvider("sk-ant", transport=_transport(Recorder(status_code=401, body={"error": "auth"})))
    with pytest.raises(httpx.HTTPStatusError):
        await provider.chat(MESSAGES)


DEMAND_VARS = DocumentVariables(values={
    V.CLIENT_NAME: "Jane Doe",
    V.OPPOSING_PARTY: "Acme Insurance",
    V.INCIDENT_DESCRIPTION: "Rear-ended at a red light",
    V.DEMAND_AMOUNT: "$50,000.00",
})


async def test_generate_document_over_http_records_cost(db, test_org, test_user, publisher):
    recorder = Recorder(body={
        "choices": [{"message": {"content": "Dear Adjuster,"}}],
        "usage": {"prompt_tokens": 1000, "completion_tokens": 2000, "total_tokens": 3000},
    })
    provider = OpenAIProvider("sk-openai", transport=_transport(recorder))

    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
        actor_user_id=test_user.id, provider=provider, publisher=publisher,
    )

    assert document.status == DocumentStatus.COMPLETED.value
    assert document.content == "Dear Adjuster,"
    assert document.model == "gpt-4o-mini"
    assert document.estimated_cost_usd == Decimal("0.00135")
    assert "Acme Insurance" in recorder.sent["messages"][1]["content"]


async def test_generate_document_over_http_records_status_code(db, test_org, test_user, publisher):
    provider = OpenAIProvider("sk-openai", transport=_transport(Recorder(status_code=429)))

    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
        actor_user_id=test_user.id, provider=provider, publisher=publisher,
    )

    assert document.status == DocumentStatus.FAILED.value
    assert document.error_message == "Provider returned HTTP 429"
    assert document.estimated_cost_usd == Decimal("0")
    assert publisher.events == []
