from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import require_manager
from app.schemas.analytics import CompletionMetrics, ScoreDistribution, TopPerformer
from app.services.analytics_service import AnalyticsService

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"]
)


@router.get("/score-distribution", response_model=ScoreDistribution)
def score_distribution(
    department_id: Optional[int] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return AnalyticsService(db).score_distribution(current_user, department_id, period)


@router.get("/completion-metrics", response_model=CompletionMetrics)
def completion_metrics(
    department_id: Optional[int] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return AnalyticsService(db).completion_metrics(current_user, department_id, period)


@router.get("/top-performers", response_model=List[TopPerformer])
def top_performers(
    limit: int = Query(10, ge=1, le=100),
    department_id: Optional[int] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return AnalyticsService(db).top_performers(current_user, limit, department_id, period)
