"""Schemas for AI document generation."""

from enum import Enum

from pydantic import BaseModel, Field


class DocumentVariable(str, Enum):
    """Template variables with a fixed meaning across prompts."""

    FIRM_NAME = "firm_name"
    ATTORNEY_NAME = "attorney_name"
    CLIENT_NAME = "client_name"
    OPPOSING_PARTY = "opposing_party"
    CASE_NUMBER = "case_number"
    COURT_NAME = "court_name"
    PRACTICE_AREA = "practice_area"
    INCIDENT_DATE = "incident_date"
    INCIDENT_DESCRIPTION = "incident_description"
    INJURIES = "injuries"
    DAMAGES_BREAKDOWN = "damages_breakdown"
    DEMAND_AMOUNT = "demand_amount"
    RESPONSE_DEADLINE = "response_deadline"
    SCOPE_OF_SERVICES = "scope_of_services"
    FEE_ARRANGEMENT = "fee_arrangement"
    HEARING_DATE = "hearing_date"
    REASON = "reason"
    SUBMISSION_DETAILS = "submission_details"


class DocumentVariables(BaseModel):
    """Known variables keyed by DocumentVariable, plus free-form extras."""

    values: dict[DocumentVariable, str] = Field(default_factory=dict)
    extra: dict[str, str] = Field(default_factory=dict)

    def get(self, key: DocumentVariable) -> str | None:
        value = self.values.get(key)
        if value is None or not str(value).strip():
            return None
        return value

    def missing(self, required: tuple[DocumentVariable, ...]) -> list[DocumentVariable]:
        return [key for key in required if self.get(key) is None]

    def as_template_kwargs(self) -> dict[str, str]:
        kwargs = {key.value: value for key, value in self.values.items()}
        kwargs["additional_context"] = "\n".join(
            f"- {key}: {value}" for key, value in sorted(self.extra.items())
        ) or "None"
        return kwargs

    def to_storage(self) -> dict:
        return {
            "values": {key.value: value for key, value in self.values.items()},
            "extra": dict(self.extra),
        }
