"""
Scheduled Task Module

Uses APScheduler to prune the usage log by age and by entry count.
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ollama_gateway.config import get_settings
from ollama_gateway.db.session import get_db
from ollama_gateway.repositories.sqlalchemy import SQLAlchemyUsageLogRepository
from ollama_gateway.services.log_service import LogService

logger = logging.getLogger(__name__)

# Global Scheduler Instance
_scheduler: Optional[AsyncIOScheduler] = None


async def cleanup_logs_task():
    """
    Scheduled Log Cleanup Task

    Deletes records past the retention period, then keeps only the newest
    USAGE_LOG_MAX_ENTRIES records.
    """
    settings = get_settings()
    logger.info(
        "Starting usage log cleanup (retention: %s days, max entries: %s)",
        settings.USAGE_LOG_RETENTION_DAYS,
        settings.USAGE_LOG_MAX_ENTRIES,
    )

    try:
        async for db in get_db():
            log_service = LogService(SQLAlchemyUsageLogRepository(db))

            expired = await log_service.cleanup_old_logs(settings.USAGE_LOG_RETENTION_DAYS)
            trimmed = await log_service.trim_to(settings.USAGE_LOG_MAX_ENTRIES)
            logger.info(
                "Usage log cleanup completed: %d expired, %d over limit", expired, trimmed
            )
            break

    except Exception as e:
        logger.error(f"Usage log cleanup task failed: {str(e)}", exc_info=True)


def start_scheduler():
    """
    Start Scheduled Task Scheduler
    """
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already started")
        return

    settings = get_settings()

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        cleanup_logs_task,
        trigger=IntervalTrigger(hours=settings.USAGE_LOG_CLEANUP_INTERVAL_HOURS),
        id="cleanup_usage_logs",
        name="Clean up usage logs",
        replace_existing=True,
    )
    _scheduler.start()

    logger.info(
        "Scheduler started: usage log cleanup every %s hours",
        settings.USAGE_LOG_CLEANUP_INTERVAL_HOURS,
    )


def shutdown_scheduler():
    """
    Shutdown Scheduled Task Scheduler
    """
    global _scheduler

    if _scheduler is None:
        return

    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler shutdown completed")


def get_scheduler() -> Optional[AsyncIOScheduler]:
    return _scheduler
