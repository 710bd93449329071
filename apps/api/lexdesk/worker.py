"""
Background worker for processing scheduled jobs.

Usage:
    python -m lexdesk.worker

The worker polls the jobs table (the notification outbox and reminder
sweeps) and processes pending jobs. For production, run this as a separate
process next to the API.
"""

import asyncio
import logging

from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.core.structured_logging import build_log_context, configure_logging, setup_sentry
from lexdesk.db.session import SessionLocal
from lexdesk.jobs.registry import resolve_job_handler
from lexdesk.services import job_service

logger = logging.getLogger(__name__)


async def process_job(db: Session, job) -> None:
    """Process a single job based on its type."""
    logger.info(f"Processing job {job.id} (type={job.job_type}, attempt={job.attempts})")
    handler = resolve_job_handler(job.job_type)
    await handler(db, job)


async def process_pending_jobs(db: Session, limit: int | None = None) -> dict:
    """
    Run one batch of pending jobs.

    Returns stats: {processed, completed, failed}
    """
    jobs = job_service.get_pending_jobs(db, limit=limit or settings.WORKER_BATCH_SIZE)
    if jobs:
        logger.info(f"Found {len(jobs)} pending jobs")

    completed = 0
    failed = 0
    for job in jobs:
        try:
            job_service.mark_job_running(db, job)
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            completed += 1
            logger.info(f"Job {job.id} completed successfully")
        except Exception as e:
            db.rollback()
            job_service.mark_job_failed(db, job, str(e))
            failed += 1
            logger.error(
                "Job %s failed: %s",
                job.id,
                type(e).__name__,
                extra=build_log_context(org_id=str(job.organization_id), route="worker"),
            )

    return {"processed": len(jobs), "completed": completed, "failed": failed}


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        f"Worker starting (poll interval: {settings.WORKER_POLL_INTERVAL}s, "
        f"batch size: {settings.WORKER_BATCH_SIZE})"
    )

    while True:
        with SessionLocal() as db:
            try:
                await process_pending_jobs(db)
            except Exception as e:
                logger.error(f"Error in worker loop: {e}")

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    configure_logging()
    setup_sentry("lexdesk-worker")
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
