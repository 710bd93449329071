"""Tests for the reminder window evaluator (pure logic)."""

from datetime import datetime, timedelta, timezone

from lexdesk.db.enums import ReminderDecision
from lexdesk.services.reminder_evaluator import evaluate_reminder, trigger_time

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def test_trigger_time():
    start = NOW + timedelta(hours=1)
    assert trigger_time(start, 15) == start - timedelta(minutes=15)


def test_not_yet_due_skips():
    start = NOW + timedelta(minutes=30)
    assert evaluate_reminder(start, 15, NOW) == ReminderDecision.SKIP


def test_due_now_fires():
    start = NOW + timedelta(minutes=15)
    assert evaluate_reminder(start, 15, NOW) == ReminderDecision.FIRE


def test_due_within_window_fires():
    start = NOW + timedelta(minutes=12)
    assert evaluate_reminder(start, 15, NOW) == ReminderDecision.FIRE


def test_window_boundary_is_inclusive():
    start = NOW + timedelta(minutes=10)
    assert evaluate_reminder(start, 15, NOW, window_minutes=5) == ReminderDecision.FIRE


def test_missed_window_marks_without_notifying():
    start = NOW + timedelta(minutes=5)
    assert evaluate_reminder(start, 60, NOW) == ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING


def test_started_event_marks_without_notifying():
    start = NOW - timedelta(minutes=1)
    assert evaluate_reminder(start, 0, NOW) == ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING


def test_zero_lead_time_fires_at_start():
    assert evaluate_reminder(NOW, 0, NOW) == ReminderDecision.FIRE


def test_already_fired_skips_even_when_due():
    start = NOW + timedelta(minutes=15)
    assert evaluate_reminder(start, 15, NOW, already_fired=True) == ReminderDecision.SKIP
    assert evaluate_reminder(NOW - timedelta(hours=1), 15, NOW, already_fired=True) == ReminderDecision.SKIP


def test_naive_datetimes_are_treated_as_utc():
    start = (NOW + timedelta(minutes=15)).replace(tzinfo=None)
    assert evaluate_reminder(start, 15, NOW.replace(tzinfo=None)) == ReminderDecision.FIRE


def test_custom_window():
    start = NOW + timedelta(minutes=5)
    assert evaluate_reminder(start, 15, NOW, window_minutes=15) == ReminderDecision.FIRE
    assert evaluate_reminder(start, 15, NOW, window_minutes=5) == ReminderDecision.MARK_FIRED_WITHOUT_NOTIFYING
