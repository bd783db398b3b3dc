import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from classifieds.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

scheduler: BackgroundScheduler | None = None

SESSION_PURGE_MINUTES = 60
ORPHAN_CLEANUP_HOURS = 6


def purge_expired_sessions() -> int:
    """Delete expired session rows. Returns the number removed."""
    from classifieds.database import SessionLocal
    from classifieds.services.sessions import purge_expired

    db = SessionLocal()
    removed = 0
    try:
        removed = purge_expired(db)
        logger.info("Purged %d expired sessions", removed)
    except Exception:
        logger.exception("Expired session purge failed")
        db.rollback()
    finally:
        db.close()
    return removed


def cleanup_orphaned_files() -> int:
    """Delete uploads never linked to an entity. Returns the number removed."""
    from classifieds.database import SessionLocal
    from classifieds.services.files import cleanup_orphans

    db = SessionLocal()
    removed = 0
    try:
        removed = cleanup_orphans(db, settings.orphan_file_max_age_hours)
        logger.info("Removed %d orphaned uploads", removed)
    except Exception:
        logger.exception("Orphaned upload cleanup failed")
        db.rollback()
    finally:
        db.close()
    return removed


def start_scheduler():
    """Start the background maintenance jobs."""
    global scheduler
    scheduler = BackgroundScheduler()

    scheduler.add_job(
        purge_expired_sessions,
        IntervalTrigger(minutes=SESSION_PURGE_MINUTES),
        id="purge_sessions",
        replace_existing=True,
    )
    scheduler.add_job(
        cleanup_orphaned_files,
        IntervalTrigger(hours=ORPHAN_CLEANUP_HOURS),
        id="cleanup_orphans",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    global scheduler
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler shut down")
