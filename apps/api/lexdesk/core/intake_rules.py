"""Intake submission and lead pipeline status transition rules."""

from lexdesk.db.enums import LeadStatus, SubmissionStatus


ALLOWED_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({
        SubmissionStatus.REVIEWED,
        SubmissionStatus.CONVERTED_TO_LEAD,
        SubmissionStatus.REJECTED,
        SubmissionStatus.SPAM,
    }),
    SubmissionStatus.REVIEWED: frozenset({
        SubmissionStatus.CONVERTED_TO_LEAD,
        SubmissionStatus.REJECTED,
        SubmissionStatus.SPAM,
    }),
    SubmissionStatus.CONVERTED_TO_LEAD: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
    SubmissionStatus.SPAM: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def _coerce(status: SubmissionStatus | str | None) -> SubmissionStatus | None:
    if isinstance(status, SubmissionStatus):
        return status
    try:
        return SubmissionStatus(status)
    except ValueError:
        return None


def can_transition(
    current: SubmissionStatus | str | None,
    target: SubmissionStatus | str | None,
) -> bool:
    """Return True if a submission may move from current to target.

    Unknown statuses are never allowed.
    """
    current_status = _coerce(current)
    target_status = _coerce(target)
    if current_status is None or target_status is None:
        return False
    return target_status in ALLOWED_TRANSITIONS.get(current_status, frozenset())


def is_terminal(status: SubmissionStatus | str) -> bool:
    coerced = _coerce(status)
    return coerced in TERMINAL_STATUSES


# Lead pipeline. CONVERTED is reached only through lead -> client conversion.
LEAD_TRANSITIONS: dict[LeadStatus, frozenset[LeadStatus]] = {
    LeadStatus.NEW: frozenset({LeadStatus.CONTACTED, LeadStatus.LOST}),
    LeadStatus.CONTACTED: frozenset({LeadStatus.QUALIFIED, LeadStatus.LOST}),
    LeadStatus.QUALIFIED: frozenset({LeadStatus.LOST}),
    LeadStatus.CONVERTED: frozenset(),
    LeadStatus.LOST: frozenset(),
}


def can_transition_lead(current: LeadStatus | str | None, target: LeadStatus | str | None) -> bool:
    try:
        current_status = LeadStatus(current)
        target_status = LeadStatus(target)
    except ValueError:
        return False
    return target_status in LEAD_TRANSITIONS.get(current_status, frozenset())
