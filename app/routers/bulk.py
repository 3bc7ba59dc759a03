from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import require_admin
from app.schemas.bulk import BulkAssignmentRequest, BulkEvaluationCreateRequest, BulkOperationResult
from app.services.bulk_service import BulkOperationService

router = APIRouter(
    prefix="/bulk",
    tags=["bulk"]
)


@router.post("/evaluations", response_model=BulkOperationResult)
def bulk_create_evaluations(
    request: BulkEvaluationCreateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return BulkOperationService(db).create_evaluations(request.evaluations, current_user)


@router.post("/assignments", response_model=BulkOperationResult)
def bulk_assign_evaluators(
    request: BulkAssignmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return BulkOperationService(db).assign_evaluators(request.assignments, current_user)
