"""
Notification schemas.

Notification metadata is a tagged union of the payload shapes the system
emits; the `kind` field selects the shape.
"""
from datetime import date, datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.models.notification import NotificationType


class EvaluationAssignedMetadata(BaseModel):
    kind: Literal["evaluation_assigned"] = "evaluation_assigned"
    evaluation_id: int
    employee_name: str
    period: str
    due_date: date


class EvaluationDueMetadata(BaseModel):
    kind: Literal["evaluation_due"] = "evaluation_due"
    evaluation_id: int
    days_remaining: int
    due_date: date


class EvaluationDueTodayMetadata(BaseModel):
    kind: Literal["evaluation_due_today"] = "evaluation_due_today"
    evaluation_id: int
    due_date: date
    urgency: Literal["High"] = "High"


class EvaluationOverdueMetadata(BaseModel):
    kind: Literal["evaluation_overdue"] = "evaluation_overdue"
    evaluation_id: int
    days_overdue: int
    due_date: date


class EvaluationCompletedMetadata(BaseModel):
    kind: Literal["evaluation_completed"] = "evaluation_completed"
    evaluation_id: int
    evaluator_name: str
    period: str
    score: float


class WeeklySummaryMetadata(BaseModel):
    kind: Literal["weekly_summary"] = "weekly_summary"
    week_start_date: date
    week_end_date: date
    completed_evaluations: int
    pending_evaluations: int
    overdue_evaluations: int
    average_score: float


NotificationMetadata = Annotated[
    Union[
        EvaluationAssignedMetadata,
        EvaluationDueMetadata,
        EvaluationDueTodayMetadata,
        EvaluationOverdueMetadata,
        EvaluationCompletedMetadata,
        WeeklySummaryMetadata,
    ],
    Field(discriminator="kind"),
]

metadata_adapter = TypeAdapter(NotificationMetadata)


class NotificationCreate(BaseModel):
    user_id: int
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=4000)
    type: NotificationType = NotificationType.INFO
    action_url: Optional[str] = Field(None, max_length=500)
    metadata: Optional[NotificationMetadata] = None


class BulkNotificationRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1, max_length=1000)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=4000)
    type: NotificationType = NotificationType.INFO
    action_url: Optional[str] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    user_id: int
    title: str
    message: str
    type: str
    action_url: Optional[str] = None
    is_read: bool
    created_date: Optional[datetime] = None
    read_date: Optional[datetime] = None
    metadata: Optional[NotificationMetadata] = Field(default=None, validation_alias="payload")


class NotificationSummary(BaseModel):
    total_notifications: int
    unread_count: int
    today_count: int
    week_count: int
    recent_notifications: List[NotificationResponse]


class MarkReadRequest(BaseModel):
    notification_ids: List[int] = Field(..., min_length=1)
