import os
import time
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.models.notification import Notification
from app.services.notification import NotificationService
from app.tasks.cleanup import cleanup_temp_files, run_cleanup, seconds_until_hour


def _notification(db_session, user, title, age_days, now):
    notification = Notification(
        user_id=user.id,
        title=title,
        message=title,
        type="Info",
        is_read=False,
        created_date=now - timedelta(days=age_days),
    )
    db_session.add(notification)
    db_session.commit()
    return notification


def test_old_notifications_are_removed(db_session, employee_user):
    now = datetime.now(timezone.utc)
    _notification(db_session, employee_user, "ancient", 45, now)
    _notification(db_session, employee_user, "old", 31, now)
    _notification(db_session, employee_user, "recent", 5, now)

    deleted = NotificationService(db_session).cleanup_old_notifications(30, now=now)

    assert deleted == 2
    remaining = db_session.query(Notification).filter(Notification.user_id == employee_user.id).all()
    assert [n.title for n in remaining] == ["recent"]


def test_retention_window_is_configurable(db_session, employee_user):
    now = datetime.now(timezone.utc)
    _notification(db_session, employee_user, "ten days", 10, now)

    service = NotificationService(db_session)
    assert service.cleanup_old_notifications(30, now=now) == 0
    assert service.cleanup_old_notifications(7, now=now) == 1


def test_temp_files_older_than_max_age_are_deleted(tmp_path):
    now = time.time()
    stale = tmp_path / "stale.pdf"
    fresh = tmp_path / "fresh.pdf"
    nested = tmp_path / "nested"
    for path in (stale, fresh):
        path.write_bytes(b"data")
    nested.mkdir()
    os.utime(stale, (now - 48 * 3600, now - 48 * 3600))

    assert cleanup_temp_files(str(tmp_path), 24, now=now) == 1
    assert not stale.exists()
    assert fresh.exists()
    assert nested.exists()


def test_missing_temp_dir_is_not_an_error(tmp_path):
    assert cleanup_temp_files(str(tmp_path / "absent"), 24) == 0


def test_run_cleanup_reports_both_parts(db_session, employee_user, tmp_path, monkeypatch):
    now = datetime.now(timezone.utc)
    _notification(db_session, employee_user, "old", 40, now)
    old_file = tmp_path / "upload.tmp"
    old_file.write_bytes(b"x")
    stamp = now.timestamp() - 30 * 3600
    os.utime(old_file, (stamp, stamp))
    monkeypatch.setattr(settings.scheduler, "temp_dir", str(tmp_path))

    report = run_cleanup(db_session, now=now)

    assert report.notifications_deleted == 1
    assert report.files_deleted == 1
    assert not report.notifications_failed
    assert not report.files_failed


def test_notification_failure_does_not_skip_file_cleanup(db_session, tmp_path, monkeypatch):
    def broken(self, days_to_keep=30, now=None):
        raise RuntimeError("database locked")

    monkeypatch.setattr(NotificationService, "cleanup_old_notifications", broken)
    monkeypatch.setattr(settings.scheduler, "temp_dir", str(tmp_path))
    (tmp_path / "old.tmp").write_bytes(b"x")
    os.utime(tmp_path / "old.tmp", (0, 0))

    report = run_cleanup(db_session)

    assert report.notifications_failed
    assert report.files_deleted == 1


def test_seconds_until_hour():
    assert seconds_until_hour(2, now=datetime(2026, 1, 1, 1, 30)) == 1800
    assert seconds_until_hour(2, now=datetime(2026, 1, 1, 2, 0)) == 24 * 3600
    assert seconds_until_hour(2, now=datetime(2026, 1, 1, 23, 0)) == 3 * 3600
