from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field

from app.schemas.evaluation import EvaluationCreate


class BulkEvaluationCreateRequest(BaseModel):
    evaluations: List[EvaluationCreate] = Field(..., min_length=1, max_length=200)


class BulkAssignmentItem(BaseModel):
    team_id: int
    evaluator_id: int
    employee_id: int


class BulkAssignmentRequest(BaseModel):
    assignments: List[BulkAssignmentItem] = Field(..., min_length=1, max_length=200)


class BulkOperationResult(BaseModel):
    """Per-item outcome: successful items stay committed even when others fail."""
    success: bool
    total_items: int
    successful_items: int
    failed_items: int
    created_ids: List[int] = []
    errors: List[str] = []
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
