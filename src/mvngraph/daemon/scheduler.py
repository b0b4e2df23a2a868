"""Maintenance scheduler — runs the store cleanup on an interval."""

from __future__ import annotations
import logging
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mvngraph.services.store import MavenGraphStore

logger = logging.getLogger("mvngraph.scheduler")

CLEANUP_JOB_ID = "mvngraph-cleanup"

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


def start_scheduler():
    scheduler = get_scheduler()
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


async def run_cleanup(store: MavenGraphStore) -> None:
    """Scheduled entry point; the store logs its own failures."""
    report = await store.cleanup()
    if report is None:
        logger.warning("Scheduled cleanup did not complete")


def schedule_cleanup(store: MavenGraphStore, seconds: int) -> bool:
    """Register the periodic cleanup. ``seconds <= 0`` disables it."""
    if seconds <= 0:
        remove_job(CLEANUP_JOB_ID)
        logger.info("Periodic cleanup disabled")
        return False

    get_scheduler().add_job(
        run_cleanup,
        trigger=IntervalTrigger(seconds=seconds),
        id=CLEANUP_JOB_ID,
        kwargs={"store": store},
        replace_existing=True,
        misfire_grace_time=60,
        coalesce=True,
        max_instances=1,
    )
    logger.info(f"Cleanup scheduled every {seconds}s")
    return True


def remove_job(job_id: str):
    scheduler = get_scheduler()
    try:
        scheduler.remove_job(job_id)
        logger.info(f"Removed job '{job_id}'")
    except JobLookupError:
        pass


def list_jobs() -> list[dict]:
    scheduler = get_scheduler()
    jobs = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)  # pending until the scheduler starts
        jobs.append({
            "id": job.id,
            "next_run": next_run.isoformat() if next_run else None,
            "trigger": str(job.trigger),
        })
    return jobs
