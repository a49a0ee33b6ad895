"""
Scheduled maintenance tasks for the back-office suite.

Uses APScheduler BackgroundScheduler to run periodic jobs. Only one worker
starts the scheduler (file-lock guard) so jobs never run twice.
"""

import os
import atexit
import fcntl
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from core.utils.logging_config import get_logger, log_with_context

logger = get_logger('backoffice.tasks.cleanup')

scheduler = BackgroundScheduler(daemon=True)
_lock_file = None


def purge_expired_commission_cache():
    """Delete commission cache rows past their expiry."""
    try:
        from commissions.services.commission_service import CommissionService
        count = CommissionService().purge_expired()
        if count > 0:
            logger.info(f"Cleanup: deleted {count} expired commission cache rows")
    except Exception as e:
        logger.error(f"Commission cache cleanup failed: {e}")


def warn_stale_time_entries():
    """Log time entries that have been open longer than the stale threshold."""
    try:
        from timeclock.services.timeclock_service import TimeClockService
        from timeclock.services.reports import employee_name
        from timeclock.config import STALE_AFTER_HOURS
        stale = TimeClockService().stale_open_entries()
        for entry in stale:
            log_with_context(
                logger, logging.WARNING, 'Time entry still open',
                entry_id=entry['id'],
                employee_number=entry.get('employee_number'),
                employee=employee_name(entry),
                clock_in=entry['clock_in'],
            )
        if stale:
            logger.warning(f"{len(stale)} time entries open for more than {STALE_AFTER_HOURS} hours")
    except Exception as e:
        logger.error(f"Stale time entry check failed: {e}")


def _acquire_scheduler_lock():
    """Try to acquire an exclusive file lock. Returns True if this process won."""
    global _lock_file
    try:
        lock_path = os.path.join(os.path.dirname(__file__), '..', '.scheduler.lock')
        _lock_file = open(lock_path, 'w')
        fcntl.flock(_lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        _lock_file.write(str(os.getpid()))
        _lock_file.flush()
        return True
    except (IOError, OSError):
        if _lock_file:
            _lock_file.close()
            _lock_file = None
        return False


def start_scheduler():
    """Start the background scheduler with all maintenance jobs.

    Uses a file lock so only one gunicorn worker runs the scheduler.
    Other workers skip silently.
    """
    if scheduler.running:
        return

    if not _acquire_scheduler_lock():
        logger.debug(f"Scheduler lock held by another worker, skipping (pid={os.getpid()})")
        return

    scheduler.add_job(
        purge_expired_commission_cache,
        'interval',
        hours=1,
        id='purge_commission_cache',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.add_job(
        warn_stale_time_entries,
        'interval',
        hours=1,
        id='stale_time_entries',
        replace_existing=True,
        misfire_grace_time=300,
        coalesce=True,
    )

    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))
    logger.info(f"Background scheduler started (pid={os.getpid()})")


def stop_scheduler():
    """Stop the background scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
