"""Job service - the outbox table the worker drains.

Jobs are written by publishers (notifications) and by schedulers (reminder
sweeps). The worker claims due PENDING jobs in run_at order; a failed job
goes back to PENDING with a later run_at until max_attempts is used up.
"""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.db.enums import JobStatus, JobType
from lexdesk.db.models import Job
from lexdesk.utils.dates import ensure_utc, utc_now


def schedule_job(
    db: Session,
    org_id: UUID,
    job_type: JobType,
    payload: dict,
    run_at: datetime | None = None,
    idempotency_key: str | None = None,
    commit: bool = True,
) -> Job:
    """
    Queue a job (due immediately unless run_at is given).

    A repeated idempotency_key violates uq_job_idempotency and raises
    IntegrityError; OutboxPublisher treats that as already queued.
    """
    job = Job(
        organization_id=org_id,
        job_type=job_type.value,
        payload=payload,
        run_at=ensure_utc(run_at) or utc_now(),
        status=JobStatus.PENDING.value,
        idempotency_key=idempotency_key,
    )
    db.add(job)
    if not commit:
        db.flush()
        return job
    db.commit()
    db.refresh(job)
    return job


def get_pending_jobs(db: Session, limit: int = 10, now: datetime | None = None) -> list[Job]:
    """Due PENDING jobs, oldest run_at first."""
    now = ensure_utc(now) or utc_now()
    return (
        db.query(Job)
        .filter(Job.status == JobStatus.PENDING.value, Job.run_at <= now)
        .order_by(Job.run_at.asc())
        .limit(limit)
        .all()
    )


def mark_job_running(db: Session, job: Job) -> Job:
    job.status = JobStatus.RUNNING.value
    job.attempts += 1
    db.commit()
    db.refresh(job)
    return job


def mark_job_completed(db: Session, job: Job) -> Job:
    job.status = JobStatus.COMPLETED.value
    job.completed_at = utc_now()
    job.last_error = None
    db.commit()
    db.refresh(job)
    return job


def retry_delay(attempts: int) -> timedelta:
    """Linear backoff: WORKER_RETRY_BACKOFF_SECONDS per attempt made."""
    return timedelta(seconds=settings.WORKER_RETRY_BACKOFF_SECONDS * max(attempts, 1))


def mark_job_failed(db: Session, job: Job, error: str) -> Job:
    """Back to PENDING (delayed) while attempts remain, else FAILED."""
    job.last_error = error
    if job.attempts < job.max_attempts:
        job.status = JobStatus.PENDING.value
        job.run_at = utc_now() + retry_delay(job.attempts)
    else:
        job.status = JobStatus.FAILED.value
    db.commit()
    db.refresh(job)
    return job
