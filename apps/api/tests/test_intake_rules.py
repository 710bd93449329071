"""Tests for intake submission and lead status transitions."""

from itertools import product

import pytest

from lexdesk.core.intake_rules import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    can_transition_lead,
    is_terminal,
)
from lexdesk.db.enums import LeadStatus as L
from lexdesk.db.enums import SubmissionStatus as S


ALLOWED_PAIRS = {
    (S.PENDING, S.REVIEWED),
    (S.PENDING, S.CONVERTED_TO_LEAD),
    (S.PENDING, S.REJECTED),
    (S.PENDING, S.SPAM),
    (S.REVIEWED, S.CONVERTED_TO_LEAD),
    (S.REVIEWED, S.REJECTED),
    (S.REVIEWED, S.SPAM),
}


@pytest.mark.parametrize("current,target", sorted(ALLOWED_PAIRS))
def test_allowed_transitions(current, target):
    assert can_transition(current, target) is True


@pytest.mark.parametrize(
    "current,target",
    [pair for pair in product(S, S) if pair not in ALLOWED_PAIRS],
)
def test_disallowed_transitions(current, target):
    assert can_transition(current, target) is False


def test_terminal_statuses_have_no_exits():
    assert TERMINAL_STATUSES == {S.CONVERTED_TO_LEAD, S.REJECTED, S.SPAM}
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()
        assert is_terminal(status)
    assert not is_terminal(S.PENDING)


def test_string_statuses_are_accepted():
    assert can_transition("pending", "reviewed") is True
    assert can_transition("rejected", "pending") is False


def test_unknown_status_is_never_allowed():
    assert can_transition("archived", S.REVIEWED) is False
    assert can_transition(S.PENDING, "archived") is False
    assert can_transition(None, S.REVIEWED) is False


# =============================================================================
# Lead pipeline
# =============================================================================

LEAD_PAIRS = {
    (L.NEW, L.CONTACTED),
    (L.NEW, L.LOST),
    (L.CONTACTED, L.QUALIFIED),
    (L.CONTACTED, L.LOST),
    (L.QUALIFIED, L.LOST),
}


@pytest.mark.parametrize("current,target", sorted(LEAD_PAIRS))
def test_allowed_lead_transitions(current, target):
    assert can_transition_lead(current, target) is True


@pytest.mark.parametrize(
    "current,target",
    [pair for pair in product(L, L) if pair not in LEAD_PAIRS],
)
def test_disallowed_lead_transitions(current, target):
    assert can_transition_lead(current, target) is False


def test_lead_rules_accept_strings_and_reject_unknowns():
    assert can_transition_lead("new", "contacted") is True
    assert can_transition_lead("new", "archived") is False
    assert can_transition_lead(None, L.LOST) is False
