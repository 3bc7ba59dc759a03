from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.models.evaluation import EvaluationStatus
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin, require_role
from app.schemas.evaluation import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    EvaluationCreate,
    EvaluationDashboard,
    EvaluationForm,
    EvaluationResponse,
    EvaluationSummary,
    EvaluationUpdate,
    ScoreResponse,
    ScoreUpsert,
    StatusUpdate,
)
from app.services.evaluation_service import EvaluationService

router = APIRouter(
    prefix="/evaluations",
    tags=["evaluations"]
)


@router.post("/", response_model=EvaluationResponse, status_code=status.HTTP_201_CREATED)
def create_evaluation(
    data: EvaluationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(["Admin", "Evaluator"]))
):
    return EvaluationService(db).create_evaluation(data, current_user)


@router.get("/", response_model=List[EvaluationResponse])
def list_evaluations(
    status_filter: Optional[EvaluationStatus] = Query(None, alias="status"),
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).list_evaluations(current_user, status_filter, period)


@router.get("/recent", response_model=List[EvaluationResponse])
def recent_evaluations(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_recent(current_user, limit)


@router.get("/dashboard", response_model=EvaluationDashboard)
def evaluation_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_dashboard(current_user)


@router.put("/comments/{comment_id}", response_model=CommentResponse)
def update_comment(
    comment_id: int,
    data: CommentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).update_comment(comment_id, data.description, current_user)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    EvaluationService(db).delete_comment(comment_id, current_user)


@router.get("/{evaluation_id}", response_model=EvaluationResponse)
def get_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_evaluation(evaluation_id, current_user)


@router.get("/{evaluation_id}/form", response_model=EvaluationForm)
def evaluation_form(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_form(evaluation_id, current_user)


@router.get("/{evaluation_id}/summary", response_model=EvaluationSummary)
def evaluation_summary(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_summary(evaluation_id, current_user)


@router.put("/{evaluation_id}", response_model=EvaluationResponse)
def update_evaluation(
    evaluation_id: int,
    data: EvaluationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).update_evaluation(evaluation_id, data, current_user)


@router.put("/{evaluation_id}/scores", response_model=ScoreResponse)
def upsert_score(
    evaluation_id: int,
    data: ScoreUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).upsert_score(evaluation_id, data, current_user)


@router.post("/{evaluation_id}/recalculate", response_model=EvaluationResponse)
def recalculate_total(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).recalculate_total(evaluation_id, current_user)


@router.post("/{evaluation_id}/submit", response_model=EvaluationResponse)
def submit_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).submit_evaluation(evaluation_id, current_user)


@router.patch("/{evaluation_id}/status", response_model=EvaluationResponse)
def change_status(
    evaluation_id: int,
    data: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).change_status(evaluation_id, data.status, current_user)


@router.get("/{evaluation_id}/scores/{criteria_id}/comments", response_model=List[CommentResponse])
def list_comments(
    evaluation_id: int,
    criteria_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).get_comments(evaluation_id, criteria_id, current_user)


@router.post(
    "/{evaluation_id}/scores/{criteria_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    evaluation_id: int,
    criteria_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EvaluationService(db).add_comment(evaluation_id, criteria_id, data.description, current_user)


@router.delete("/{evaluation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_evaluation(
    evaluation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    EvaluationService(db).delete_evaluation(evaluation_id, current_user)
