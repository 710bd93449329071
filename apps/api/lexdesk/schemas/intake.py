"""Schemas for intake submission payloads.

Submission payloads are free-form JSON from public forms. Only the keys in
IntakeField are interpreted; everything else is carried through untouched.
"""

import json
from enum import Enum
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from lexdesk.core.errors import ValidationFailedError


class IntakeField(str, Enum):
    """Payload keys with business meaning."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    PHONE = "phone"
    COMPANY_NAME = "company_name"
    PRACTICE_AREA = "practice_area"
    URGENCY = "urgency"
    URGENT = "urgent"
    CHARGE_TYPE = "charge_type"
    INJURIES = "injuries"
    COURT_DATE = "court_date"
    INCIDENT_DESCRIPTION = "incident_description"
    MATTER_DESCRIPTION = "matter_description"
    DESCRIPTION = "description"


def _aliases(field: IntakeField, *camel: str) -> AliasChoices:
    return AliasChoices(field.value, *camel)


class SubmissionFields(BaseModel):
    """Typed view over a submission payload. Unknown keys land in model_extra."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    first_name: str | None = Field(None, validation_alias=_aliases(IntakeField.FIRST_NAME, "firstName"))
    last_name: str | None = Field(None, validation_alias=_aliases(IntakeField.LAST_NAME, "lastName"))
    email: str | None = None
    phone: str | None = None
    company_name: str | None = Field(None, validation_alias=_aliases(IntakeField.COMPANY_NAME, "companyName"))
    practice_area: str | None = Field(None, validation_alias=_aliases(IntakeField.PRACTICE_AREA, "practiceArea"))
    urgency: str | None = None
    # Only a real boolean counts; "yes"/"true" strings are not urgent
    urgent: Any = None
    charge_type: str | None = Field(None, validation_alias=_aliases(IntakeField.CHARGE_TYPE, "chargeType"))
    injuries: Any = None
    court_date: Any = Field(None, validation_alias=_aliases(IntakeField.COURT_DATE, "courtDate"))
    incident_description: str | None = Field(
        None, validation_alias=_aliases(IntakeField.INCIDENT_DESCRIPTION, "incidentDescription")
    )
    matter_description: str | None = Field(
        None, validation_alias=_aliases(IntakeField.MATTER_DESCRIPTION, "matterDescription")
    )
    description: str | None = None

    @field_validator(
        "first_name",
        "last_name",
        "email",
        "phone",
        "company_name",
        "practice_area",
        "urgency",
        "charge_type",
        "incident_description",
        "matter_description",
        "description",
        mode="before",
    )
    @classmethod
    def _scalar_to_text(cls, value: Any) -> str | None:
        """Numbers and booleans read as their JSON text; objects and arrays read as absent."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return None

    @property
    def extras(self) -> dict[str, Any]:
        """Keys outside IntakeField."""
        return dict(self.model_extra or {})

    @property
    def inquiry(self) -> str | None:
        """First non-empty free-text description."""
        for value in (self.incident_description, self.matter_description, self.description):
            if has_value(value):
                return value.strip()
        return None

    @property
    def has_contact(self) -> bool:
        return has_value(self.email) or has_value(self.phone)


def has_value(value: Any) -> bool:
    """True for anything that is not None/empty/blank."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def parse_submission_fields(raw: Mapping[str, Any] | str | None) -> SubmissionFields:
    """
    Validate a raw payload.

    Accepts a mapping or a JSON object string.

    Raises:
        ValidationFailedError: payload is not a JSON object
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ValidationFailedError("Submission data is not valid JSON") from exc
    if not isinstance(raw, Mapping):
        raise ValidationFailedError("Submission data must be an object")
    try:
        return SubmissionFields.model_validate(dict(raw))
    except ValidationError as exc:
        raise ValidationFailedError(f"Invalid submission data: {exc.error_count()} error(s)") from exc
