"""APScheduler setup for background jobs."""
from __future__ import annotations
import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mediacatalog.database import Database
from mediacatalog.services.hierarchy import CascadeResult, HierarchyService

logger = logging.getLogger(__name__)


async def sweep_orphans(database: Database) -> CascadeResult:
    """Delete seasons whose series is gone and episodes whose season is gone."""
    logger.info("Starting scheduled orphan sweep")
    async with database.session_factory() as db:
        result = await HierarchyService(db).sweep_orphans()
    logger.info(
        f"Orphan sweep removed {result.deleted_seasons} seasons, "
        f"{result.deleted_episodes} episodes"
    )
    return result


async def _sweep_job(database: Database) -> None:
    try:
        await sweep_orphans(database)
    except Exception as e:
        logger.error(f"Orphan sweep failed: {e}", exc_info=True)


def start_scheduler(database: Database, interval_hours: int) -> AsyncIOScheduler | None:
    if interval_hours <= 0:
        logger.info("Orphan sweep disabled")
        return None
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _sweep_job,
        trigger=IntervalTrigger(hours=interval_hours),
        args=[database],
        id="sweep_orphans",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(f"Scheduler started (orphan sweep every {interval_hours}h)")
    return scheduler


def stop_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
