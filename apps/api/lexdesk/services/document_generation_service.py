"""AI document generation.

Renders a registered prompt with case/client variables, sends it to the
configured provider and stores the draft. Provider failures are recorded on
the document (status FAILED) rather than raised, so callers always get a
GeneratedDocument back once input validation passes.
"""

import logging
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from lexdesk.core.errors import NotFoundError, ValidationFailedError
from lexdesk.core.structured_logging import build_log_context
from lexdesk.db.enums import AuditEventType, DocumentStatus, DocumentType, NotificationType
from lexdesk.db.models import Client, DamageCalculation, GeneratedDocument, LegalCase, Organization
from lexdesk.schemas.documents import DocumentVariable, DocumentVariables
from lexdesk.services import audit_service
from lexdesk.services.ai_prompt_registry import get_prompt
from lexdesk.services.ai_provider import AIProvider, ChatMessage, get_default_provider
from lexdesk.services.notification_events import (
    NotificationEvent,
    NotificationPublisher,
    OutboxPublisher,
    publish_safely,
)
from lexdesk.utils.dates import utc_now

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def _error_message(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"Provider returned HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "Provider request timed out"
    message = str(exc) or type(exc).__name__
    return message[:MAX_ERROR_LENGTH]


def _get_case(db: Session, org_id: UUID, case_id: UUID) -> LegalCase:
    case = (
        db.query(LegalCase)
        .filter(LegalCase.organization_id == org_id, LegalCase.id == case_id)
        .first()
    )
    if not case:
        raise NotFoundError("LegalCase", case_id)
    return case


def format_damages_breakdown(calculation: DamageCalculation) -> str:
    """Plain-text summary of a case's damages for prompt variables."""
    lines = [
        f"Past medical: ${calculation.past_medical_total:,.2f}",
        f"Future medical: ${calculation.future_medical_total:,.2f}",
        f"Lost wages: ${calculation.lost_wages_total:,.2f}",
        f"Mileage: ${calculation.mileage_total:,.2f}",
        f"Loss of earning capacity: ${calculation.earning_capacity_total:,.2f}",
        f"Household services: ${calculation.household_services_total:,.2f}",
        f"Other: ${calculation.other_total:,.2f}",
        f"Pain and suffering: ${calculation.pain_suffering_total:,.2f}",
        f"Economic damages: ${calculation.economic_damages:,.2f}",
        f"Non-economic damages: ${calculation.non_economic_damages:,.2f}",
        f"Gross damages: ${calculation.gross_damages:,.2f}",
    ]
    if calculation.comparative_negligence_percent:
        lines.append(
            f"Comparative negligence: {calculation.comparative_negligence_percent}%"
        )
    lines.append(f"Adjusted damages: ${calculation.adjusted_damages:,.2f}")
    return "\n".join(lines)


def variables_for_case(db: Session, org_id: UUID, case_id: UUID) -> DocumentVariables:
    """Pre-fill variables known from the case, its client and its damages."""
    case = _get_case(db, org_id, case_id)
    values: dict[DocumentVariable, str] = {
        DocumentVariable.CASE_NUMBER: case.case_number,
        DocumentVariable.PRACTICE_AREA: case.practice_area,
    }
    client = db.get(Client, case.client_id)
    if client is not None and client.full_name:
        values[DocumentVariable.CLIENT_NAME] = client.full_name

    org = db.get(Organization, org_id)
    if org is not None:
        values[DocumentVariable.FIRM_NAME] = org.name

    calculation = (
        db.query(DamageCalculation)
        .filter(DamageCalculation.organization_id == org_id, DamageCalculation.case_id == case_id)
        .first()
    )
    if calculation is not None:
        values[DocumentVariable.DAMAGES_BREAKDOWN] = format_damages_breakdown(calculation)
        values.setdefault(
            DocumentVariable.DEMAND_AMOUNT, f"${calculation.high_estimate:,.2f}"
        )
    return DocumentVariables(values=values)


def merge_variables(base: DocumentVariables, override: DocumentVariables) -> DocumentVariables:
    """Caller-supplied values win over pre-filled ones."""
    values = dict(base.values)
    values.update({k: v for k, v in override.values.items() if v is not None and str(v).strip()})
    return DocumentVariables(values=values, extra={**base.extra, **override.extra})


async def generate_document(
    db: Session,
    org_id: UUID,
    document_type: DocumentType | str,
    variables: DocumentVariables,
    case_id: UUID | None = None,
    actor_user_id: UUID | None = None,
    provider: AIProvider | None = None,
    publisher: NotificationPublisher | None = None,
) -> GeneratedDocument:
    """
    Draft a document with the LLM.

    Raises:
        ValidationFailedError: unknown type, missing required variables,
            or AI not enabled/configured
        NotFoundError: case_id not in this org
    """
    try:
        doc_type = DocumentType(document_type)
    except ValueError:
        raise ValidationFailedError(f"Unknown document type: {document_type}") from None
    prompt = get_prompt(doc_type.value)

    org = db.get(Organization, org_id)
    if org is None:
        raise NotFoundError("Organization", org_id)
    if not org.ai_enabled:
        raise ValidationFailedError("AI is not enabled for this organization")

    if case_id is not None:
        variables = merge_variables(variables_for_case(db, org_id, case_id), variables)

    missing = variables.missing(prompt.required)
    if missing:
        raise ValidationFailedError(
            "Missing required variables: " + ", ".join(v.value for v in missing)
        )

    provider = provider or get_default_provider()
    if provider is None:
        raise ValidationFailedError("AI provider is not configured")

    document = GeneratedDocument(
        organization_id=org_id,
        case_id=case_id,
        document_type=doc_type.value,
        prompt_key=prompt.key,
        prompt_version=prompt.version,
        variables=variables.to_storage(),
        status=DocumentStatus.PENDING.value,
        provider=provider.name,
        created_by_user_id=actor_user_id,
    )
    db.add(document)
    db.commit()
    db.refresh(document)

    messages = [
        ChatMessage(role="system", content=prompt.system),
        ChatMessage(role="user", content=prompt.render_user(**variables.as_template_kwargs())),
    ]

    try:
        response = await provider.chat(messages)
    except Exception as e:
        logger.warning(
            "Document generation failed for %s: %s",
            doc_type.value,
            type(e).__name__,
            extra=build_log_context(
                org_id=str(org_id),
                user_id=str(actor_user_id) if actor_user_id else None,
                entity_type="generated_document",
                entity_id=str(document.id),
            ),
        )
        document.status = DocumentStatus.FAILED.value
        document.error_message = _error_message(e)
        document.completed_at = utc_now()
        audit_service.log_event(
            db=db,
            org_id=org_id,
            event_type=AuditEventType.DOCUMENT_GENERATION_FAILED,
            actor_user_id=actor_user_id,
            target_type="generated_document",
            target_id=document.id,
            details={"document_type": doc_type.value, "provider": provider.name},
        )
        db.commit()
        db.refresh(document)
        return document

    document.status = DocumentStatus.COMPLETED.value
    document.content = response.content
    document.model = response.model
    document.prompt_tokens = response.prompt_tokens
    document.completion_tokens = response.completion_tokens
    document.estimated_cost_usd = response.estimated_cost_usd
    document.completed_at = utc_now()
    audit_service.log_event(
        db=db,
        org_id=org_id,
        event_type=AuditEventType.DOCUMENT_GENERATED,
        actor_user_id=actor_user_id,
        target_type="generated_document",
        target_id=document.id,
        details={
            "document_type": doc_type.value,
            "prompt_version": prompt.version,
            "provider": provider.name,
            "model": response.model,
            "total_tokens": response.total_tokens,
            "estimated_cost_usd": str(response.estimated_cost_usd),
        },
    )
    db.commit()
    db.refresh(document)

    logger.info("Generated %s document %s", doc_type.value, document.id)
    publish_safely(
        publisher or OutboxPublisher(db),
        NotificationEvent(
            org_id=org_id,
            event_type=NotificationType.DOCUMENT_GENERATED,
            title="Document Ready",
            message=f"Your {doc_type.value.replace('_', ' ')} draft is ready for review.",
            recipient_id=actor_user_id,
            entity_type="generated_document",
            entity_id=document.id,
        ),
    )
    return document


def get_document(db: Session, org_id: UUID, document_id: UUID) -> GeneratedDocument:
    document = (
        db.query(GeneratedDocument)
        .filter(
            GeneratedDocument.organization_id == org_id,
            GeneratedDocument.id == document_id,
        )
        .first()
    )
    if not document:
        raise NotFoundError("GeneratedDocument", document_id)
    return document


def list_documents(
    db: Session,
    org_id: UUID,
    case_id: UUID | None = None,
    document_type: DocumentType | None = None,
    limit: int = 50,
) -> list[GeneratedDocument]:
    query = db.query(GeneratedDocument).filter(GeneratedDocument.organization_id == org_id)
    if case_id:
        query = query.filter(GeneratedDocument.case_id == case_id)
    if document_type:
        query = query.filter(GeneratedDocument.document_type == document_type.value)
    return query.order_by(GeneratedDocument.created_at.desc()).limit(limit).all()
