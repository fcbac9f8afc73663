"""Scheduler for automated jobs (recurring instance generation)."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.module_registry import get_modules
from src.core.scheduler_tracker import retry_job_with_backoff


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


def get_scheduled_job_names() -> list[str]:
    """Return the ids of all jobs contributed by registered modules."""
    return [job.id for module in get_modules().values() for job in module.get_scheduled_jobs()]


def start_scheduler() -> None:
    """Start the scheduler and register all module jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    for module in get_modules().values():
        for job in module.get_scheduled_jobs():
            scheduler.add_job(
                retry_job_with_backoff,
                args=[job.func, job.id],
                trigger=IntervalTrigger(minutes=job.interval_minutes),
                id=job.id,
                name=job.name,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info("Scheduled %s job: every %d minutes", job.id, job.interval_minutes)

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
