"""
Daily cleanup: expired notifications and stale temp uploads.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    notifications_deleted: int = 0
    files_deleted: int = 0
    notifications_failed: bool = False
    files_failed: bool = False


def cleanup_temp_files(temp_dir: str, max_age_hours: int, now: Optional[float] = None) -> int:
    """Delete regular files in `temp_dir` older than `max_age_hours`. Returns the count."""
    directory = Path(temp_dir)
    if not directory.is_dir():
        return 0

    cutoff = (now if now is not None else time.time()) - max_age_hours * 3600
    deleted = 0
    for path in directory.iterdir():
        if not path.is_file():
            continue
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError as e:
            logger.warning(f"Failed to delete temp file {path}: {e}")
    if deleted:
        logger.info(f"Cleaned up {deleted} temporary files from {temp_dir}")
    return deleted


def run_cleanup(db: Session, now: Optional[datetime] = None) -> CleanupReport:
    """Both cleanup parts, each isolated. Never raises."""
    report = CleanupReport()
    cfg = settings.scheduler

    try:
        report.notifications_deleted = NotificationService(db).cleanup_old_notifications(
            cfg.notification_retention_days, now=now
        )
    except Exception as e:
        db.rollback()
        report.notifications_failed = True
        logger.error(f"Notification cleanup failed: {e}", exc_info=True)

    try:
        report.files_deleted = cleanup_temp_files(
            cfg.temp_dir, cfg.temp_file_max_age_hours, now=now.timestamp() if now else None
        )
    except Exception as e:
        report.files_failed = True
        logger.error(f"Temp file cleanup failed: {e}", exc_info=True)

    logger.info(
        f"Cleanup finished: {report.notifications_deleted} notifications, {report.files_deleted} files",
    )
    return report


def seconds_until_hour(hour: int, now: Optional[datetime] = None) -> float:
    """Seconds from `now` (local time) to the next `hour` o'clock."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()
