"""
Due/overdue notification sweep.

One run:
  (a) Pending evaluations due in `due_soon_days` days -> due reminder
  (b) Pending evaluations past their end date -> overdue alerts
  (c) Pending evaluations due today -> urgent reminder
  (d) Mondays only: weekly summary for every active manager and admin

Each part, and each notification inside a part, is isolated: a failure is
logged and the sweep moves on. A recipient gets at most one notification of
each kind per evaluation per day, so hourly runs do not repeat themselves.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.evaluation import Evaluation, EvaluationStatus
from app.models.notification import Notification, NotificationType
from app.models.user import SystemRole, User
from app.schemas.notification import WeeklySummaryMetadata
from app.services.notification import NotificationService, utc_today

logger = logging.getLogger(__name__)

WEEKLY_SUMMARY_TITLE = "Weekly Evaluation Summary"
FINISHED_STATUSES = (EvaluationStatus.COMPLETED.value, EvaluationStatus.APPROVED.value)


@dataclass
class SweepReport:
    due_soon: int = 0
    overdue: int = 0
    due_today: int = 0
    weekly_summaries: int = 0
    skipped: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return self.due_soon + self.overdue + self.due_today + self.weekly_summaries


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _pending(db: Session):
    return db.query(Evaluation).filter(
        Evaluation.status == EvaluationStatus.PENDING.value,
        Evaluation.is_active == True,  # noqa: E712
    )


def _already_sent(db: Session, user_id: int, title_prefix: str, action_url: Optional[str], today: date) -> bool:
    query = db.query(Notification.id).filter(
        Notification.user_id == user_id,
        Notification.title.startswith(title_prefix),
        Notification.created_date >= _start_of(today),
    )
    if action_url is not None:
        query = query.filter(Notification.action_url == action_url)
    return query.first() is not None


def _for_each(db: Session, report: SweepReport, label: str, evaluations: List[Evaluation],
              title_prefix: str, send: Callable[[int], list], today: date) -> int:
    sent = 0
    for evaluation in evaluations:
        try:
            if _already_sent(db, evaluation.evaluator_id, title_prefix, f"/evaluations/{evaluation.id}", today):
                report.skipped += 1
                continue
            send(evaluation.id)
            sent += 1
        except Exception as e:
            db.rollback()
            report.failures.append(f"{label}:{evaluation.id}")
            logger.error(f"Failed to send {label} notification for evaluation {evaluation.id}: {e}", exc_info=True)
    return sent


def send_due_soon_notifications(db: Session, report: SweepReport, today: date) -> None:
    target = today + timedelta(days=settings.scheduler.due_soon_days)
    evaluations = _pending(db).filter(Evaluation.end_date == target).all()
    service = NotificationService(db)
    report.due_soon += _for_each(
        db, report, "due", evaluations, "Performance Evaluation Due in",
        lambda eid: service.send_evaluation_due_notification(eid, today=today), today,
    )
    logger.info(f"Due soon: {report.due_soon} notifications for {len(evaluations)} evaluations")


def send_overdue_notifications(db: Session, report: SweepReport, today: date) -> None:
    evaluations = _pending(db).filter(Evaluation.end_date < today).all()
    service = NotificationService(db)
    report.overdue += _for_each(
        db, report, "overdue", evaluations, "Performance Evaluation Overdue",
        lambda eid: service.send_evaluation_overdue_notification(eid, today=today), today,
    )
    logger.info(f"Overdue: {report.overdue} notifications for {len(evaluations)} evaluations")


def send_due_today_notifications(db: Session, report: SweepReport, today: date) -> None:
    evaluations = _pending(db).filter(Evaluation.end_date == today).all()
    service = NotificationService(db)
    report.due_today += _for_each(
        db, report, "due_today", evaluations, "URGENT: Evaluation Due Today",
        service.send_evaluation_due_today_notification, today,
    )


def weekly_stats(
    db: Session, today: date, department_id: Optional[int] = None, all_departments: bool = True
) -> WeeklySummaryMetadata:
    """
    Counts over evaluations created in the seven days before `today`.

    With `all_departments=False` only employees of `department_id` count;
    no department then means nothing to count.
    """
    week_start = today - timedelta(days=7)
    query = db.query(Evaluation).filter(
        Evaluation.is_active == True,  # noqa: E712
        Evaluation.created_date >= _start_of(week_start),
    )
    if all_departments:
        evaluations = query.all()
    elif department_id is None:
        evaluations = []
    else:
        evaluations = (
            query.join(User, Evaluation.employee_id == User.id).filter(User.department_id == department_id).all()
        )

    completed = [e for e in evaluations if e.status in FINISHED_STATUSES]
    pending = [e for e in evaluations if e.status == EvaluationStatus.PENDING.value]
    scored = [float(e.total_score) for e in completed if e.total_score and e.total_score > 0]

    return WeeklySummaryMetadata(
        week_start_date=week_start,
        week_end_date=today,
        completed_evaluations=len(completed),
        pending_evaluations=len(pending),
        overdue_evaluations=sum(1 for e in pending if e.end_date < today),
        average_score=round(sum(scored) / len(scored), 2) if scored else 0.0,
    )


def send_weekly_summaries(db: Session, report: SweepReport, today: date) -> None:
    service = NotificationService(db)
    recipients = service.get_managers_and_admins()
    for user in recipients:
        try:
            if _already_sent(db, user.id, WEEKLY_SUMMARY_TITLE, None, today):
                report.skipped += 1
                continue
            stats = weekly_stats(
                db, today, department_id=user.department_id, all_departments=user.has_role(SystemRole.ADMIN)
            )
            follow_up = (
                "Please follow up on overdue evaluations."
                if stats.overdue_evaluations
                else "Great work keeping evaluations on track!"
            )
            message = (
                "Weekly Performance Evaluation Summary:\n\n"
                f"Evaluations Completed: {stats.completed_evaluations}\n"
                f"Evaluations Pending: {stats.pending_evaluations}\n"
                f"Overdue Evaluations: {stats.overdue_evaluations}\n"
                f"Average Score: {stats.average_score:.1f}\n\n"
                f"{follow_up}"
            )
            service.create_notification(
                user.id,
                WEEKLY_SUMMARY_TITLE,
                message,
                NotificationType.WARNING if stats.overdue_evaluations else NotificationType.INFO,
                "/dashboard",
                stats,
            )
            report.weekly_summaries += 1
        except Exception as e:
            db.rollback()
            report.failures.append(f"weekly_summary:{user.id}")
            logger.error(f"Failed to send weekly summary to user {user.id}: {e}", exc_info=True)
    logger.info(f"Weekly summary notifications completed for {len(recipients)} users")


def run_notification_sweep(db: Session, today: Optional[date] = None) -> SweepReport:
    """Run every part of the sweep once. Never raises."""
    today = today or utc_today()
    report = SweepReport()

    parts = [
        ("due_soon", send_due_soon_notifications),
        ("overdue", send_overdue_notifications),
        ("due_today", send_due_today_notifications),
    ]
    if today.weekday() == 0:
        parts.append(("weekly_summary", send_weekly_summaries))

    for name, part in parts:
        try:
            part(db, report, today)
        except Exception as e:
            db.rollback()
            report.failures.append(name)
            logger.error(f"Notification sweep part '{name}' failed: {e}", exc_info=True)

    logger.info(
        f"Notification sweep finished: {report.sent} sent, {report.skipped} skipped, {len(report.failures)} failed",
        extra={"sent": report.sent, "failures": len(report.failures)},
    )
    return report
