from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal

from app.models.evaluation import EvaluationStatus


class EvaluationCreate(BaseModel):
    evaluator_id: Optional[int] = None  # defaults to the caller
    employee_id: int
    period: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    general_comments: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ScoreUpsert(BaseModel):
    criteria_id: int
    score: int


class CommentCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)


class CommentUpdate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)


class CommentEdit(BaseModel):
    """Comment change inside a batch evaluation update."""
    comment_id: Optional[int] = None  # None adds a new comment
    criteria_id: Optional[int] = None  # required when adding
    description: Optional[str] = Field(None, max_length=500)
    delete: bool = False


class EvaluationUpdate(BaseModel):
    period: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    general_comments: Optional[str] = Field(None, max_length=1000)
    score_updates: List[ScoreUpsert] = []
    comment_updates: List[CommentEdit] = []


class StatusUpdate(BaseModel):
    status: EvaluationStatus


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    score_id: int
    description: str
    is_active: bool
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None


class ScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    evaluation_id: int
    criteria_id: int
    score: int
    updated_date: Optional[datetime] = None
    created_date: Optional[datetime] = None


class EvaluationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    evaluator_id: int
    employee_id: int
    period: str
    start_date: date
    end_date: date
    status: str
    total_score: Decimal
    general_comments: Optional[str] = None
    created_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None


class CriteriaWithScore(BaseModel):
    criteria_id: int
    name: str
    category_id: int
    category_name: str
    category_weight: Decimal
    description: Optional[str] = None
    example: Optional[str] = None
    score_id: Optional[int] = None
    score: Optional[int] = None
    comments: List[CommentResponse] = []


class EvaluationForm(BaseModel):
    evaluation: EvaluationResponse
    employee_name: str
    evaluator_name: str
    employee_roles: List[str]
    criteria: List[CriteriaWithScore]
    min_score: int
    max_score: int


class EvaluationSummary(BaseModel):
    evaluation_id: int
    status: str
    total_score: Decimal
    score_count: int
    applicable_criteria_count: int
    comment_count: int
    is_complete: bool
    missing_criteria: List[str] = []


class EvaluationDashboard(BaseModel):
    total: int
    by_status: Dict[str, int]
    overdue: int
    due_this_week: int
    average_completed_score: float
    recent: List[EvaluationResponse] = []
