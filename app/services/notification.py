"""
In-app notifications.

Besides the per-user inbox operations this service is the contract the
scheduled sweeps use: the `send_evaluation_*` helpers and
`cleanup_old_notifications`.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import joinedload

from app.core.exceptions import NotFoundError
from app.models.evaluation import Evaluation
from app.models.notification import Notification, NotificationType
from app.models.user import Role, RoleAssignment, SystemRole, User
from app.schemas.notification import (
    EvaluationAssignedMetadata,
    EvaluationCompletedMetadata,
    EvaluationDueMetadata,
    EvaluationDueTodayMetadata,
    EvaluationOverdueMetadata,
    NotificationCreate,
    NotificationResponse,
    NotificationSummary,
    metadata_adapter,
)
from app.services.base import BaseService

MetadataInput = Union[BaseModel, Dict[str, Any], None]


def utc_today() -> date:
    """Calendar day on the same clock as `created_date` (UTC)."""
    return datetime.now(timezone.utc).date()


class NotificationService(BaseService):

    # --- Creation ---

    @staticmethod
    def _serialize_metadata(metadata: MetadataInput) -> Optional[Dict[str, Any]]:
        if metadata is None:
            return None
        if isinstance(metadata, BaseModel):
            metadata = metadata.model_dump()
        # Re-validate so only known payload shapes reach the column
        return metadata_adapter.dump_python(metadata_adapter.validate_python(metadata), mode="json")

    def _build(
        self,
        user_id: int,
        title: str,
        message: str,
        type: Union[NotificationType, str] = NotificationType.INFO,
        action_url: Optional[str] = None,
        metadata: MetadataInput = None,
    ) -> Notification:
        return Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=NotificationType(type).value,
            action_url=action_url,
            payload=self._serialize_metadata(metadata),
            is_read=False,
        )

    def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        type: Union[NotificationType, str] = NotificationType.INFO,
        action_url: Optional[str] = None,
        metadata: MetadataInput = None,
    ) -> Notification:
        notification = self._build(user_id, title, message, type, action_url, metadata)
        self.db.add(notification)
        self.commit()
        self.db.refresh(notification)
        return notification

    def create_from_request(self, data: NotificationCreate) -> Notification:
        if not self.db.query(User).filter(User.id == data.user_id).first():
            raise NotFoundError("User", data.user_id)
        return self.create_notification(
            data.user_id, data.title, data.message, data.type, data.action_url, data.metadata
        )

    def create_bulk_notifications(
        self,
        user_ids: Iterable[int],
        title: str,
        message: str,
        type: Union[NotificationType, str] = NotificationType.INFO,
        action_url: Optional[str] = None,
        metadata: MetadataInput = None,
    ) -> List[Notification]:
        """One notification per distinct existing user, committed together."""
        wanted = set(user_ids)
        existing = [uid for (uid,) in self.db.query(User.id).filter(User.id.in_(wanted)).all()] if wanted else []
        notifications = [self._build(uid, title, message, type, action_url, metadata) for uid in sorted(existing)]
        self.db.add_all(notifications)
        self.commit()
        self.log_info(f"Created {len(notifications)} bulk notifications: {title}")
        return notifications

    # --- Evaluation events ---

    def _load_evaluation(self, evaluation_id: int) -> Optional[Evaluation]:
        evaluation = (
            self.db.query(Evaluation)
            .options(joinedload(Evaluation.employee), joinedload(Evaluation.evaluator))
            .filter(Evaluation.id == evaluation_id)
            .first()
        )
        if evaluation is None:
            self.log_warning(f"Evaluation not found for notification: {evaluation_id}")
        return evaluation

    def get_managers_and_admins(self, department_id: Optional[int] = None) -> List[User]:
        """Active users holding an active Admin or Manager role."""
        query = (
            self.db.query(User)
            .join(RoleAssignment, RoleAssignment.user_id == User.id)
            .join(Role, Role.id == RoleAssignment.role_id)
            .filter(
                User.is_active == True,  # noqa: E712
                RoleAssignment.is_active == True,  # noqa: E712
                Role.is_active == True,  # noqa: E712
                Role.name.in_([SystemRole.ADMIN.value, SystemRole.MANAGER.value]),
            )
        )
        if department_id is not None:
            query = query.filter(User.department_id == department_id)
        return query.distinct().order_by(User.id).all()

    def send_evaluation_assigned_notification(self, evaluation_id: int) -> List[Notification]:
        evaluation = self._load_evaluation(evaluation_id)
        if evaluation is None:
            return []

        employee_name = evaluation.employee.full_name
        notification = self.create_notification(
            evaluation.evaluator_id,
            "New Performance Evaluation Assigned",
            f"You have been assigned to evaluate {employee_name} for the period {evaluation.period}.",
            NotificationType.INFO,
            f"/evaluations/{evaluation.id}",
            EvaluationAssignedMetadata(
                evaluation_id=evaluation.id,
                employee_name=employee_name,
                period=evaluation.period,
                due_date=evaluation.end_date,
            ),
        )
        self.log_info(f"Evaluation assigned notification sent for evaluation {evaluation_id}")
        return [notification]

    def send_evaluation_completed_notification(self, evaluation_id: int) -> List[Notification]:
        """Success notice to the employee, Info notice to every manager and admin."""
        evaluation = self._load_evaluation(evaluation_id)
        if evaluation is None:
            return []

        employee_name = evaluation.employee.full_name
        evaluator_name = evaluation.evaluator.full_name
        sent = [
            self.create_notification(
                evaluation.employee_id,
                "Performance Evaluation Completed",
                f"Your performance evaluation for the period {evaluation.period} "
                f"has been completed by {evaluator_name}.",
                NotificationType.SUCCESS,
                f"/evaluations/{evaluation.id}",
                EvaluationCompletedMetadata(
                    evaluation_id=evaluation.id,
                    evaluator_name=evaluator_name,
                    period=evaluation.period,
                    score=float(evaluation.total_score or 0),
                ),
            )
        ]
        for manager in self.get_managers_and_admins():
            sent.append(
                self.create_notification(
                    manager.id,
                    "Evaluation Completed",
                    f"Evaluation for {employee_name} has been completed.",
                    NotificationType.INFO,
                    f"/evaluations/{evaluation.id}",
                )
            )
        self.log_info(f"Evaluation completed notification sent for evaluation {evaluation_id}")
        return sent

    def send_evaluation_due_notification(self, evaluation_id: int, today: Optional[date] = None) -> List[Notification]:
        evaluation = self._load_evaluation(evaluation_id)
        if evaluation is None:
            return []

        today = today or utc_today()
        days_until_due = (evaluation.end_date - today).days
        notification = self.create_notification(
            evaluation.evaluator_id,
            f"Performance Evaluation Due in {days_until_due} Days",
            f"Reminder: The evaluation for {evaluation.employee.full_name} "
            f"is due on {evaluation.end_date.isoformat()}.",
            NotificationType.WARNING,
            f"/evaluations/{evaluation.id}",
            EvaluationDueMetadata(
                evaluation_id=evaluation.id,
                days_remaining=days_until_due,
                due_date=evaluation.end_date,
            ),
        )
        self.log_info(f"Evaluation due notification sent for evaluation {evaluation_id}")
        return [notification]

    def send_evaluation_due_today_notification(self, evaluation_id: int) -> List[Notification]:
        evaluation = self._load_evaluation(evaluation_id)
        if evaluation is None:
            return []

        notification = self.create_notification(
            evaluation.evaluator_id,
            "URGENT: Evaluation Due Today",
            f"The evaluation for {evaluation.employee.full_name} is due today. Please complete it as soon as possible.",
            NotificationType.ERROR,
            f"/evaluations/{evaluation.id}",
            EvaluationDueTodayMetadata(evaluation_id=evaluation.id, due_date=evaluation.end_date),
        )
        return [notification]

    def send_evaluation_overdue_notification(self, evaluation_id: int, today: Optional[date] = None) -> List[Notification]:
        """Error notice to the evaluator and an alert to every manager and admin."""
        evaluation = self._load_evaluation(evaluation_id)
        if evaluation is None:
            return []

        today = today or utc_today()
        days_overdue = (today - evaluation.end_date).days
        employee_name = evaluation.employee.full_name
        # Single commit: the evaluator notice and every manager alert, or none
        sent = [
            self._build(
                evaluation.evaluator_id,
                f"Performance Evaluation Overdue ({days_overdue} days)",
                f"URGENT: The evaluation for {employee_name} was due on {evaluation.end_date.isoformat()} "
                f"and is now {days_overdue} days overdue.",
                NotificationType.ERROR,
                f"/evaluations/{evaluation.id}",
                EvaluationOverdueMetadata(
                    evaluation_id=evaluation.id,
                    days_overdue=days_overdue,
                    due_date=evaluation.end_date,
                ),
            )
        ]
        for manager in self.get_managers_and_admins():
            sent.append(
                self._build(
                    manager.id,
                    "Overdue Evaluation Alert",
                    f"Evaluation by {evaluation.evaluator.full_name} for {employee_name} "
                    f"is {days_overdue} days overdue.",
                    NotificationType.ERROR,
                    f"/evaluations/{evaluation.id}",
                )
            )
        self.db.add_all(sent)
        self.commit()
        self.log_info(f"Evaluation overdue notification sent for evaluation {evaluation_id}")
        return sent

    # --- Retention ---

    def cleanup_old_notifications(self, days_to_keep: int = 30, now: Optional[datetime] = None) -> int:
        """Delete notifications created more than `days_to_keep` days ago. Returns the count."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_to_keep)
        deleted = (
            self.db.query(Notification)
            .filter(Notification.created_date < cutoff)
            .delete(synchronize_session=False)
        )
        self.commit()
        if deleted:
            self.log_info(f"Cleaned up {deleted} old notifications older than {days_to_keep} days")
        return deleted

    # --- Inbox ---

    def _user_query(self, user_id: int):
        return self.db.query(Notification).filter(Notification.user_id == user_id)

    def get_user_notifications(self, user_id: int, page: int = 1, size: int = 20) -> List[Notification]:
        page = max(page, 1)
        return (
            self._user_query(user_id)
            .order_by(Notification.created_date.desc(), Notification.id.desc())
            .offset((page - 1) * size)
            .limit(size)
            .all()
        )

    def get_unread(self, user_id: int) -> List[Notification]:
        return (
            self._user_query(user_id)
            .filter(Notification.is_read == False)  # noqa: E712
            .order_by(Notification.created_date.desc(), Notification.id.desc())
            .all()
        )

    def get_unread_count(self, user_id: int) -> int:
        return self._user_query(user_id).filter(Notification.is_read == False).count()  # noqa: E712

    def get_summary(self, user_id: int) -> NotificationSummary:
        now = datetime.now(timezone.utc)
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = start_of_today - timedelta(days=7)
        recent = self.get_user_notifications(user_id, 1, 5)
        return NotificationSummary(
            total_notifications=self._user_query(user_id).count(),
            unread_count=self.get_unread_count(user_id),
            today_count=self._user_query(user_id).filter(Notification.created_date >= start_of_today).count(),
            week_count=self._user_query(user_id).filter(Notification.created_date >= week_ago).count(),
            recent_notifications=[NotificationResponse.model_validate(n) for n in recent],
        )

    def get_by_id(self, notification_id: int, user_id: int) -> Notification:
        notification = self._user_query(user_id).filter(Notification.id == notification_id).first()
        if not notification:
            raise NotFoundError("Notification", notification_id)
        return notification

    def mark_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self.get_by_id(notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_date = datetime.now(timezone.utc)
            self.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: int) -> int:
        updated = (
            self._user_query(user_id)
            .filter(Notification.is_read == False)  # noqa: E712
            .update(
                {Notification.is_read: True, Notification.read_date: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        self.commit()
        return updated

    def mark_many_read(self, notification_ids: List[int], user_id: int) -> int:
        """Only the caller's own unread notifications among `notification_ids` are touched."""
        updated = (
            self._user_query(user_id)
            .filter(Notification.id.in_(notification_ids), Notification.is_read == False)  # noqa: E712
            .update(
                {Notification.is_read: True, Notification.read_date: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        self.commit()
        return updated

    def delete(self, notification_id: int, user_id: int) -> None:
        notification = self.get_by_id(notification_id, user_id)
        self.db.delete(notification)
        self.commit()

    def delete_all_read(self, user_id: int) -> int:
        deleted = (
            self._user_query(user_id)
            .filter(Notification.is_read == True)  # noqa: E712
            .delete(synchronize_session=False)
        )
        self.commit()
        return deleted

    def get_stats(self, user_id: int) -> Dict[str, int]:
        now = datetime.now(timezone.utc)
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        by_type = dict(
            self.db.query(Notification.type, func.count(Notification.id))
            .filter(Notification.user_id == user_id)
            .group_by(Notification.type)
            .all()
        )
        stats = {
            "total": self._user_query(user_id).count(),
            "unread": self.get_unread_count(user_id),
            "today": self._user_query(user_id).filter(Notification.created_date >= start_of_today).count(),
            "this_week": self._user_query(user_id)
            .filter(Notification.created_date >= start_of_today - timedelta(days=7))
            .count(),
            "this_month": self._user_query(user_id)
            .filter(Notification.created_date >= start_of_today - timedelta(days=30))
            .count(),
        }
        for t in NotificationType:
            stats[t.value.lower()] = by_type.get(t.value, 0)
        return stats
