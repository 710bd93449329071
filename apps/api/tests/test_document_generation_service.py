"""Tests for prompt rendering and AI document generation."""

import uuid
from decimal import Decimal

import httpx
import pytest

from lexdesk.core.config import settings
from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.db.enums import AuditEventType, DamageElementType, DocumentStatus, DocumentType, NotificationType
from lexdesk.db.models import AuditLog
from lexdesk.schemas.documents import DocumentVariable as V
from lexdesk.schemas.documents import DocumentVariables
from lexdesk.services import damage_calculation_service, document_generation_service
from lexdesk.services.ai_prompt_registry import NOT_PROVIDED, PROMPTS, get_prompt
from lexdesk.services.ai_provider import (
    AIProvider,
    AnthropicProvider,
    ChatResponse,
    GeminiProvider,
    get_default_provider,
    get_provider,
)


class FakeProvider(AIProvider):
    name = "fake"

    def __init__(self, content="DRAFT"):
        self.content = content
        self.calls = []

    async def chat(self, messages, model=None, temperature=0.3, max_tokens=2000):
        self.calls.append(messages)
        return ChatResponse(
            content=self.content,
            prompt_tokens=120,
            completion_tokens=80,
            total_tokens=200,
            model="fake-model",
        )


class BrokenProvider(FakeProvider):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    async def chat(self, messages, model=None, temperature=0.3, max_tokens=2000):
        raise self.exc


DEMAND_VARS = DocumentVariables(values={
    V.CLIENT_NAME: "Jane Doe",
    V.OPPOSING_PARTY: "Acme Insurance",
    V.INCIDENT_DESCRIPTION: "Rear-ended at a red light",
    V.DEMAND_AMOUNT: "$50,000.00",
})


# =============================================================================
# Prompt registry
# =============================================================================

def test_every_document_type_has_a_prompt():
    assert set(PROMPTS) == {t.value for t in DocumentType}


def test_render_fills_missing_with_placeholder():
    rendered = get_prompt(DocumentType.DEMAND_LETTER.value).render_user(client_name="Jane Doe")
    assert "Client: Jane Doe" in rendered
    assert f"Date of incident: {NOT_PROVIDED}" in rendered


def test_unknown_prompt():
    with pytest.raises(KeyError):
        get_prompt("haiku")


def test_variables_extra_becomes_additional_context():
    variables = DocumentVariables(values={V.CLIENT_NAME: "Jane"}, extra={"venue": "Cook County"})
    kwargs = variables.as_template_kwargs()
    assert kwargs["additional_context"] == "- venue: Cook County"
    assert DocumentVariables().as_template_kwargs()["additional_context"] == "None"


def test_get_provider_rejects_unknown():
    with pytest.raises(ValueError):
        get_provider("mystery", "key")


def test_get_provider_builds_configured_client():
    provider = get_provider("anthropic", "sk-test", model="claude-3-5-sonnet-latest")
    assert isinstance(provider, AnthropicProvider)
    assert provider.default_model == "claude-3-5-sonnet-latest"
    assert provider.timeout == settings.AI_TIMEOUT_SECONDS
    assert provider._headers()["x-api-key"] == "sk-test"

    gemini = get_provider("gemini", "g-key")
    assert isinstance(gemini, GeminiProvider)
    assert gemini.default_model == "gemini-2.0-flash"
    assert gemini._params() == {"key": "g-key"}


def test_no_default_provider_without_key(monkeypatch):
    monkeypatch.setattr(settings, "AI_API_KEY", "")
    assert get_default_provider() is None


def test_estimated_cost():
    response = ChatResponse("x", 1_000_000, 1_000_000, 2_000_000, "gpt-4o-mini")
    assert response.estimated_cost_usd == Decimal("0.75")


# =============================================================================
# Generation
# =============================================================================

async def test_generate_demand_letter(db, test_org, test_user, publisher):
    provider = FakeProvider(content="Dear Adjuster, ...")

    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
        actor_user_id=test_user.id, provider=provider, publisher=publisher,
    )

    assert document.status == DocumentStatus.COMPLETED.value
    assert document.content == "Dear Adjuster, ..."
    assert document.provider == "fake"
    assert document.model == "fake-model"
    assert document.prompt_tokens == 120
    assert document.prompt_version == "v1"
    assert document.variables["values"]["client_name"] == "Jane Doe"

    system, user = provider.calls[0]
    assert system.role == "system"
    assert "Recipient (insurer / opposing party): Acme Insurance" in user.content

    assert publisher.events[0].event_type == NotificationType.DOCUMENT_GENERATED
    assert publisher.events[0].recipient_id == test_user.id
    assert db.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.DOCUMENT_GENERATED.value
    ).count() == 1


async def test_missing_required_variables(db, test_org):
    with pytest.raises(ValidationFailedError, match="opposing_party"):
        await document_generation_service.generate_document(
            db, test_org.id, DocumentType.DEMAND_LETTER,
            DocumentVariables(values={V.CLIENT_NAME: "Jane Doe", V.OPPOSING_PARTY: "  "}),
            provider=FakeProvider(),
        )


async def test_unknown_document_type(db, test_org):
    with pytest.raises(ValidationFailedError):
        await document_generation_service.generate_document(
            db, test_org.id, "haiku", DEMAND_VARS, provider=FakeProvider()
        )


async def test_ai_disabled_org(db, test_org):
    test_org.ai_enabled = False
    db.commit()
    with pytest.raises(ValidationFailedError):
        await document_generation_service.generate_document(
            db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS, provider=FakeProvider()
        )


async def test_provider_failure_is_recorded(db, test_org, test_user, publisher):
    request = httpx.Request("POST", "https://api.example.com")
    error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, request=request))

    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
        actor_user_id=test_user.id, provider=BrokenProvider(error), publisher=publisher,
    )

    assert document.status == DocumentStatus.FAILED.value
    assert document.error_message == "Provider returned HTTP 503"
    assert document.content is None
    assert document.completed_at is not None
    assert publisher.events == []
    assert db.query(AuditLog).filter(
        AuditLog.event_type == AuditEventType.DOCUMENT_GENERATION_FAILED.value
    ).count() == 1


async def test_case_prefills_variables(db, test_org, test_case, publisher):
    damage_calculation_service.add_damage_element(
        db, test_org.id, test_case.id, DamageElementType.PAST_MEDICAL, "ER", Decimal("8000")
    )
    damage_calculation_service.calculate_damages(db, test_org.id, test_case.id)
    provider = FakeProvider()

    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER,
        DocumentVariables(values={
            V.OPPOSING_PARTY: "Acme Insurance",
            V.INCIDENT_DESCRIPTION: "Slip and fall",
        }),
        case_id=test_case.id, provider=provider, publisher=publisher,
    )

    values = document.variables["values"]
    assert values["client_name"] == "Jane Doe"
    assert values["case_number"] == "2026-0001"
    assert values["firm_name"] == "Test Law Firm"
    assert values["demand_amount"] == "$10,000.00"
    assert "Past medical: $8,000.00" in values["damages_breakdown"]
    assert document.case_id == test_case.id


async def test_caller_values_override_case(db, test_org, test_case, publisher):
    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER,
        DocumentVariables(values={**DEMAND_VARS.values, V.CLIENT_NAME: "J. Doe"}),
        case_id=test_case.id, provider=FakeProvider(), publisher=publisher,
    )
    assert document.variables["values"]["client_name"] == "J. Doe"


async def test_case_in_other_org(db, other_org, test_case):
    with pytest.raises(NotFoundError):
        await document_generation_service.generate_document(
            db, other_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
            case_id=test_case.id, provider=FakeProvider(),
        )


async def test_list_and_get_documents(db, test_org, other_org, publisher):
    document = await document_generation_service.generate_document(
        db, test_org.id, DocumentType.DEMAND_LETTER, DEMAND_VARS,
        provider=FakeProvider(), publisher=publisher,
    )

    listed = document_generation_service.list_documents(
        db, test_org.id, document_type=DocumentType.DEMAND_LETTER
    )
    assert [d.id for d in listed] == [document.id]
    assert document_generation_service.get_document(db, test_org.id, document.id).id == document.id
    with pytest.raises(NotFoundError):
        document_generation_service.get_document(db, other_org.id, document.id)
    with pytest.raises(NotFoundError):
        document_generation_service.get_document(db, test_org.id, uuid.uuid4())
