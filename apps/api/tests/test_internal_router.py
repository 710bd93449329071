"""Tests for the health check and cron-driven internal endpoints."""

from datetime import timedelta

import pytest

from lexdesk.db.enums import JobType
from lexdesk.db.models import Job
from lexdesk.schemas.calendar import EventCreate
from lexdesk.services import calendar_service
from lexdesk.utils.dates import utc_now

HEADERS = {"X-Internal-Secret": "test-internal-secret"}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_event_reminders_requires_secret(client):
    response = await client.post("/internal/scheduled/event-reminders")
    assert response.status_code == 422

    response = await client.post(
        "/internal/scheduled/event-reminders",
        headers={"X-Internal-Secret": "wrong"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_event_reminders_sweep(client, db, test_org, test_user):
    calendar_service.create_event(
        db,
        test_org.id,
        EventCreate(
            title="Status conference",
            start_time=utc_now() + timedelta(minutes=10),
            reminder_minutes=10,
        ),
        actor_user_id=test_user.id,
    )

    response = await client.post("/internal/scheduled/event-reminders", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["reminders_fired"] == 1
    assert data["errors"] == []
    job = db.query(Job).one()
    assert job.job_type == JobType.NOTIFICATION.value
    assert job.payload["type"] == "event_reminder"

    again = await client.post("/internal/scheduled/event-reminders", headers=HEADERS)
    assert again.json()["reminders_fired"] == 0


@pytest.mark.asyncio
async def test_queue_event_reminder_sweeps(client, db, test_org, other_org):
    for org in (test_org, other_org):
        calendar_service.create_event(
            db,
            org.id,
            EventCreate(title="Hearing", start_time=utc_now() + timedelta(days=1), reminder_minutes=30),
        )

    response = await client.post("/internal/scheduled/event-reminders/queue", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"orgs_queued": 2}
    jobs = db.query(Job).filter(Job.job_type == JobType.EVENT_REMINDER_SWEEP.value).all()
    assert {job.organization_id for job in jobs} == {test_org.id, other_org.id}
