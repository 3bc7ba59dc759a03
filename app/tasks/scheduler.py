"""
Background loops started by the application lifespan.

Two independent asyncio tasks:
- notification sweep every `notification_interval_seconds`
- cleanup once a day at `cleanup_hour` local time

Each iteration opens its own session and runs the blocking DB work in a
worker thread. Errors are logged and the loop keeps going; cancellation on
shutdown is the only way out.
"""
import asyncio
import logging
import uuid
from typing import Callable, List, Optional

from app.core.config import settings
from app.core.logging import request_id_var
from app.database import SessionLocal
from app.tasks.cleanup import run_cleanup, seconds_until_hour
from app.tasks.notification_sweep import run_notification_sweep

logger = logging.getLogger(__name__)

_tasks: List[asyncio.Task] = []


def _run_with_session(job: Callable, name: str):
    # Worker-thread body: tag log lines with a run id, own the session
    token = request_id_var.set(f"{name}-{uuid.uuid4().hex[:8]}")
    db = SessionLocal()
    try:
        return job(db)
    finally:
        db.close()
        request_id_var.reset(token)


async def notification_loop(interval_seconds: Optional[int] = None):
    interval = interval_seconds or settings.scheduler.notification_interval_seconds
    logger.info(f"Notification sweep started (every {interval}s)")
    while True:
        try:
            await asyncio.to_thread(_run_with_session, run_notification_sweep, "notification-sweep")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Notification sweep iteration failed: {e}", exc_info=True)
        await asyncio.sleep(interval)


async def cleanup_loop(hour: Optional[int] = None):
    hour = settings.scheduler.cleanup_hour if hour is None else hour
    logger.info(f"Cleanup service started (daily at {hour:02d}:00)")
    while True:
        delay = seconds_until_hour(hour)
        logger.info(f"Next cleanup in {delay / 3600:.1f}h")
        await asyncio.sleep(delay)
        try:
            await asyncio.to_thread(_run_with_session, run_cleanup, "cleanup")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Cleanup iteration failed: {e}", exc_info=True)


def start_scheduler() -> List[asyncio.Task]:
    if not settings.scheduler.enabled:
        logger.info("Background scheduler disabled")
        return []
    _tasks.extend([
        asyncio.create_task(notification_loop(), name="notification-sweep"),
        asyncio.create_task(cleanup_loop(), name="cleanup"),
    ])
    return list(_tasks)


async def stop_scheduler() -> None:
    for task in _tasks:
        task.cancel()
    for task in _tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
    if _tasks:
        logger.info("Background scheduler stopped")
    _tasks.clear()


def running_jobs() -> List[str]:
    return [task.get_name() for task in _tasks if not task.done()]
