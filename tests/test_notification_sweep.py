from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from app.models.evaluation import EvaluationStatus
from app.models.notification import Notification
from app.services.notification import NotificationService
from app.tasks import notification_sweep
from app.tasks.notification_sweep import WEEKLY_SUMMARY_TITLE, run_notification_sweep


def _most_recent(weekday: int) -> date:
    """Most recent date (today included) falling on `weekday` (Monday is 0)."""
    today = datetime.now(timezone.utc).date()
    return today - timedelta(days=(today.weekday() - weekday) % 7)


def _notifications(db_session, user, title_prefix=None):
    query = db_session.query(Notification).filter(Notification.user_id == user.id)
    if title_prefix:
        query = query.filter(Notification.title.startswith(title_prefix))
    return query.order_by(Notification.id).all()


def test_due_soon_includes_pending_and_skips_completed(db_session, evaluator_user, make_evaluation):
    today = _most_recent(1)
    pending = make_evaluation(end_date=today + timedelta(days=3))
    completed = make_evaluation(end_date=today + timedelta(days=3), status=EvaluationStatus.COMPLETED)

    report = run_notification_sweep(db_session, today=today)

    assert report.due_soon == 1
    assert report.weekly_summaries == 0
    notes = _notifications(db_session, evaluator_user, "Performance Evaluation Due in")
    assert [n.action_url for n in notes] == [f"/evaluations/{pending.id}"]
    assert notes[0].title == "Performance Evaluation Due in 3 Days"
    assert notes[0].type == "Warning"
    assert notes[0].payload["days_remaining"] == 3
    assert all(n.action_url != f"/evaluations/{completed.id}" for n in notes)


def test_overdue_alerts_evaluator_and_managers(db_session, evaluator_user, manager_user, admin_user, make_evaluation):
    today = _most_recent(1)
    evaluation = make_evaluation(end_date=today - timedelta(days=2))

    report = run_notification_sweep(db_session, today=today)

    assert report.overdue == 1
    evaluator_notes = _notifications(db_session, evaluator_user)
    assert [n.title for n in evaluator_notes] == ["Performance Evaluation Overdue (2 days)"]
    assert evaluator_notes[0].type == "Error"
    assert evaluator_notes[0].payload == {
        "kind": "evaluation_overdue",
        "evaluation_id": evaluation.id,
        "days_overdue": 2,
        "due_date": (today - timedelta(days=2)).isoformat(),
    }
    for user in (manager_user, admin_user):
        assert [n.title for n in _notifications(db_session, user)] == ["Overdue Evaluation Alert"]


def test_due_today_is_urgent(db_session, evaluator_user, make_evaluation):
    today = _most_recent(1)
    make_evaluation(end_date=today)

    report = run_notification_sweep(db_session, today=today)

    assert report.due_today == 1
    assert report.overdue == 0
    notes = _notifications(db_session, evaluator_user)
    assert [(n.title, n.type) for n in notes] == [("URGENT: Evaluation Due Today", "Error")]
    assert notes[0].payload["urgency"] == "High"


def test_second_run_on_the_same_day_sends_nothing(db_session, evaluator_user, make_evaluation):
    today = _most_recent(1)
    make_evaluation(end_date=today + timedelta(days=3))
    make_evaluation(end_date=today)

    first = run_notification_sweep(db_session, today=today)
    second = run_notification_sweep(db_session, today=today)

    assert first.sent == 2
    assert second.sent == 0
    assert second.skipped == 2
    assert len(_notifications(db_session, evaluator_user)) == 2


def test_weekly_summary_only_on_mondays(db_session, admin_user, make_evaluation):
    tuesday = _most_recent(1)
    make_evaluation(end_date=tuesday + timedelta(days=20))

    report = run_notification_sweep(db_session, today=tuesday)

    assert report.weekly_summaries == 0
    assert _notifications(db_session, admin_user, WEEKLY_SUMMARY_TITLE) == []


def test_weekly_summary_scoped_by_department(db_session, admin_user, manager_user, sales_manager, make_evaluation):
    monday = _most_recent(0)
    make_evaluation(end_date=monday - timedelta(days=1))
    done = make_evaluation(end_date=monday + timedelta(days=10), status=EvaluationStatus.COMPLETED)
    done.total_score = Decimal("4.00")
    db_session.commit()

    report = run_notification_sweep(db_session, today=monday)

    assert report.weekly_summaries == 3
    admin_summary = _notifications(db_session, admin_user, WEEKLY_SUMMARY_TITLE)[0]
    assert admin_summary.type == "Warning"
    assert admin_summary.action_url == "/dashboard"
    assert admin_summary.payload["completed_evaluations"] == 1
    assert admin_summary.payload["pending_evaluations"] == 1
    assert admin_summary.payload["overdue_evaluations"] == 1
    assert admin_summary.payload["average_score"] == 4.0
    assert "Please follow up on overdue evaluations." in admin_summary.message

    manager_summary = _notifications(db_session, manager_user, WEEKLY_SUMMARY_TITLE)[0]
    assert manager_summary.payload["pending_evaluations"] == 1

    # Nobody from Sales is being evaluated
    sales_summary = _notifications(db_session, sales_manager, WEEKLY_SUMMARY_TITLE)[0]
    assert sales_summary.type == "Info"
    assert sales_summary.payload["completed_evaluations"] == 0
    assert sales_summary.payload["pending_evaluations"] == 0
    assert "Great work keeping evaluations on track!" in sales_summary.message


def test_one_failing_notification_does_not_stop_the_rest(db_session, evaluator_user, make_evaluation, monkeypatch):
    today = _most_recent(1)
    broken = make_evaluation(end_date=today + timedelta(days=3))
    healthy = make_evaluation(end_date=today + timedelta(days=3))
    make_evaluation(end_date=today)

    original = NotificationService.send_evaluation_due_notification

    def flaky(self, evaluation_id, today=None):
        if evaluation_id == broken.id:
            raise RuntimeError("mail relay down")
        return original(self, evaluation_id, today=today)

    monkeypatch.setattr(NotificationService, "send_evaluation_due_notification", flaky)

    report = run_notification_sweep(db_session, today=today)

    assert report.failures == [f"due:{broken.id}"]
    assert report.due_soon == 1
    assert report.due_today == 1
    urls = [n.action_url for n in _notifications(db_session, evaluator_user, "Performance Evaluation Due in")]
    assert urls == [f"/evaluations/{healthy.id}"]


def test_one_failing_part_does_not_stop_the_sweep(db_session, evaluator_user, make_evaluation, monkeypatch):
    today = _most_recent(1)
    make_evaluation(end_date=today)

    def boom(db, report, today):
        raise RuntimeError("query failed")

    monkeypatch.setattr(notification_sweep, "send_overdue_notifications", boom)

    report = run_notification_sweep(db_session, today=today)

    assert report.failures == ["overdue"]
    assert report.due_today == 1


def test_manager_without_department_gets_empty_summary(db_session, admin_user, make_user, make_evaluation):
    monday = _most_recent(0)
    lone_manager = make_user("lone.manager@company.com", ["Manager"], first_name="Lou", last_name="Lone")
    make_evaluation(end_date=monday + timedelta(days=10))

    run_notification_sweep(db_session, today=monday)

    summary = _notifications(db_session, lone_manager, WEEKLY_SUMMARY_TITLE)[0]
    assert summary.payload["pending_evaluations"] == 0
    assert summary.payload["completed_evaluations"] == 0
    admin_summary = _notifications(db_session, admin_user, WEEKLY_SUMMARY_TITLE)[0]
    assert admin_summary.payload["pending_evaluations"] == 1


def test_weekly_summary_counts_approved_as_completed(db_session, admin_user, make_evaluation):
    monday = _most_recent(0)
    approved = make_evaluation(end_date=monday + timedelta(days=10), status=EvaluationStatus.APPROVED)
    approved.total_score = Decimal("4.50")
    db_session.commit()

    run_notification_sweep(db_session, today=monday)

    summary = _notifications(db_session, admin_user, WEEKLY_SUMMARY_TITLE)[0]
    assert summary.payload["completed_evaluations"] == 1
    assert summary.payload["average_score"] == 4.5


def test_default_day_comes_from_the_utc_clock(db_session, evaluator_user, make_evaluation, monkeypatch):
    fixed = _most_recent(1)
    monkeypatch.setattr(notification_sweep, "utc_today", lambda: fixed)
    make_evaluation(end_date=fixed + timedelta(days=3))

    report = run_notification_sweep(db_session)

    assert report.due_soon == 1
    assert _notifications(db_session, evaluator_user)[0].payload["days_remaining"] == 3


def test_failed_overdue_alert_leaves_nothing_and_is_retried(
    db_session, evaluator_user, manager_user, admin_user, make_evaluation, monkeypatch
):
    today = _most_recent(1)
    evaluation = make_evaluation(end_date=today - timedelta(days=1))
    original = NotificationService._build

    def flaky(self, user_id, *args, **kwargs):
        if user_id == admin_user.id:
            raise RuntimeError("mail relay down")
        return original(self, user_id, *args, **kwargs)

    monkeypatch.setattr(NotificationService, "_build", flaky)
    first = run_notification_sweep(db_session, today=today)

    assert first.failures == [f"overdue:{evaluation.id}"]
    for user in (evaluator_user, manager_user, admin_user):
        assert _notifications(db_session, user) == []

    monkeypatch.setattr(NotificationService, "_build", original)
    second = run_notification_sweep(db_session, today=today)

    assert second.overdue == 1
    assert len(_notifications(db_session, evaluator_user)) == 1
    for user in (manager_user, admin_user):
        assert [n.title for n in _notifications(db_session, user)] == ["Overdue Evaluation Alert"]
