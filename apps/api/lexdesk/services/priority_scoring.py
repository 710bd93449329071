"""Intake submission priority scoring.

Additive heuristic over the payload; order of keys does not matter.
"""

import logging
from typing import Any, Mapping

from lexdesk.core.errors import ValidationFailedError
from lexdesk.schemas.intake import SubmissionFields, has_value, parse_submission_fields

logger = logging.getLogger(__name__)

MAX_SCORE = 100
DEFAULT_SCORE = 50  # Used when the payload cannot be read

WEIGHT_HIGH_URGENCY = 30
WEIGHT_URGENT_FLAG = 25
WEIGHT_FELONY = 40
WEIGHT_INJURIES = 35
WEIGHT_COURT_DATE = 20
WEIGHT_EMAIL = 5
WEIGHT_PHONE = 5
WEIGHT_DESCRIPTION = 10  # Per threshold crossed

DESCRIPTION_THRESHOLDS = (100, 300)


def score_fields(fields: SubmissionFields) -> int:
    """Score an already-validated payload."""
    score = 0

    if fields.urgency == "HIGH":
        score += WEIGHT_HIGH_URGENCY
    if fields.urgent is True:
        score += WEIGHT_URGENT_FLAG
    if fields.charge_type == "felony":
        score += WEIGHT_FELONY
    if has_value(fields.injuries):
        score += WEIGHT_INJURIES
    if has_value(fields.court_date):
        score += WEIGHT_COURT_DATE
    if has_value(fields.email):
        score += WEIGHT_EMAIL
    if has_value(fields.phone):
        score += WEIGHT_PHONE

    description_length = len(fields.incident_description or "")
    for threshold in DESCRIPTION_THRESHOLDS:
        if description_length > threshold:
            score += WEIGHT_DESCRIPTION

    return min(score, MAX_SCORE)


def score_submission(submission_data: Mapping[str, Any] | str | None) -> int:
    """
    Compute a 0-100 priority score for a raw submission payload.

    Payloads that are not a JSON object (or a string holding one) score
    DEFAULT_SCORE. Numeric contact values count like their text.
    """
    try:
        fields = parse_submission_fields(submission_data)
    except ValidationFailedError as e:
        logger.warning("Priority scoring fell back to default: %s", e)
        return DEFAULT_SCORE
    return score_fields(fields)
