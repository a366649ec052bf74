"""
Celery tasks for the notification pipeline.

Tasks:
    purge_stale_job_files: Remove job files a worker never picked up

Design:
    - Workers delete their job file before running it, so anything left
      in NOTIFICATION_JOB_DIR belongs to a worker that died early
    - Tasks run with no request-bound queue; a notification dispatched
      from a task is emailed immediately

Usage:
    # Scheduled hourly through CELERY_BEAT_SCHEDULE, or manually:
    from notifications.tasks import purge_stale_job_files
    purge_stale_job_files.delay(max_age_hours=6)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from celery import shared_task
from django.conf import settings

logger = logging.getLogger(__name__)


@shared_task(ignore_result=False)
def purge_stale_job_files(max_age_hours: float | None = None) -> int:
    """
    Delete `jobs-*.json` files older than the age limit.

    Args:
        max_age_hours: Defaults to NOTIFICATION_JOB_FILE_MAX_AGE_HOURS

    Returns:
        Number of files deleted
    """
    if max_age_hours is None:
        max_age_hours = settings.NOTIFICATION_JOB_FILE_MAX_AGE_HOURS

    job_dir = Path(settings.NOTIFICATION_JOB_DIR)
    if not job_dir.is_dir():
        return 0

    cutoff = time.time() - float(max_age_hours) * 3600
    removed = 0
    for path in job_dir.glob("jobs-*.json"):
        try:
            if path.stat().st_mtime >= cutoff:
                continue
            path.unlink()
        except FileNotFoundError:
            # Picked up by a worker meanwhile
            continue
        except OSError as e:
            logger.warning(f"Could not remove stale job file {path}: {e}")
            continue
        removed += 1

    if removed:
        logger.info(f"Purged {removed} stale email job file(s) from {job_dir}")
    return removed
