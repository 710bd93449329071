"""Central registry for AI document prompts and templates."""

from dataclasses import dataclass

from lexdesk.db.enums import DocumentType
from lexdesk.schemas.documents import DocumentVariable as V

NOT_PROVIDED = "Not provided"


class _WithDefaults(dict):
    def __missing__(self, key: str) -> str:
        return NOT_PROVIDED


@dataclass(frozen=True)
class PromptTemplate:
    key: str
    version: str
    system: str
    user: str | None = None
    required: tuple[V, ...] = ()

    def render_user(self, **kwargs) -> str:
        """Fill the user template; unknown placeholders render as NOT_PROVIDED."""
        if not self.user:
            raise ValueError(f"Prompt '{self.key}' has no user template")
        return self.user.format_map(_WithDefaults(kwargs))


_LEGAL_SYSTEM = """You are a drafting assistant for a law firm using LexDesk.

## Guidelines
- Write in a formal, professional legal register
- Use only the facts provided; never invent names, dates, amounts or citations
- Where a needed fact is "Not provided", insert a bracketed placeholder like [DATE]
- Do not give legal advice to the reader; the attorney reviews every draft
- Output plain text only, no markdown
"""


PROMPTS: dict[str, PromptTemplate] = {
    DocumentType.DEMAND_LETTER.value: PromptTemplate(
        key=DocumentType.DEMAND_LETTER.value,
        version="v1",
        system=_LEGAL_SYSTEM,
        required=(V.CLIENT_NAME, V.OPPOSING_PARTY, V.INCIDENT_DESCRIPTION, V.DEMAND_AMOUNT),
        user="""Draft a personal injury settlement demand letter.

## Parties
Firm: {firm_name}
Attorney: {attorney_name}
Client: {client_name}
Recipient (insurer / opposing party): {opposing_party}
Claim / case number: {case_number}

## Facts
Date of incident: {incident_date}
Incident: {incident_description}
Injuries: {injuries}

## Damages
{damages_breakdown}

Demand amount: {demand_amount}
Response deadline: {response_deadline}

## Additional Context
{additional_context}
""",
    ),
    DocumentType.ENGAGEMENT_LETTER.value: PromptTemplate(
        key=DocumentType.ENGAGEMENT_LETTER.value,
        version="v1",
        system=_LEGAL_SYSTEM,
        required=(V.CLIENT_NAME, V.PRACTICE_AREA, V.SCOPE_OF_SERVICES, V.FEE_ARRANGEMENT),
        user="""Draft a client engagement letter.

Firm: {firm_name}
Responsible attorney: {attorney_name}
Client: {client_name}
Practice area: {practice_area}

## Scope of Representation
{scope_of_services}

## Fees
{fee_arrangement}

## Additional Context
{additional_context}

Include sections for scope, fees and billing, client responsibilities,
termination, and a signature block for the client.
""",
    ),
    DocumentType.MOTION_FOR_CONTINUANCE.value: PromptTemplate(
        key=DocumentType.MOTION_FOR_CONTINUANCE.value,
        version="v1",
        system=_LEGAL_SYSTEM,
        required=(V.CASE_NUMBER, V.COURT_NAME, V.HEARING_DATE, V.REASON),
        user="""Draft a motion for continuance.

Court: {court_name}
Case number: {case_number}
Moving party's client: {client_name}
Opposing party: {opposing_party}
Currently scheduled hearing: {hearing_date}
Attorney: {attorney_name}, {firm_name}

## Grounds
{reason}

## Additional Context
{additional_context}

Include caption, body with numbered paragraphs, prayer for relief,
certificate of service and signature block.
""",
    ),
    DocumentType.INTAKE_SUMMARY.value: PromptTemplate(
        key=DocumentType.INTAKE_SUMMARY.value,
        version="v1",
        system="""You summarize prospective-client intake answers for attorneys.
Be concise and factual. Flag deadlines, court dates and statute-of-limitations risks.
Output plain text with short headed sections.""",
        required=(V.SUBMISSION_DETAILS,),
        user="""Summarize this intake submission.

Practice area: {practice_area}

## Submission
{submission_details}

## Additional Context
{additional_context}

Sections: Overview, Key Facts, Deadlines & Risks, Suggested Next Steps.
""",
    ),
    DocumentType.DAMAGES_NARRATIVE.value: PromptTemplate(
        key=DocumentType.DAMAGES_NARRATIVE.value,
        version="v1",
        system=_LEGAL_SYSTEM,
        required=(V.CLIENT_NAME, V.DAMAGES_BREAKDOWN),
        user="""Write a damages narrative section for a personal injury case.

Client: {client_name}
Injuries: {injuries}
Incident: {incident_description}

## Damages Breakdown
{damages_breakdown}

## Additional Context
{additional_context}

Explain each category of economic and non-economic damages in prose,
referring only to the figures given.
""",
    ),
}


def get_prompt(key: str) -> PromptTemplate:
    """Return a prompt by key."""
    if key not in PROMPTS:
        raise KeyError(f"Unknown prompt key: {key}")
    return PROMPTS[key]
