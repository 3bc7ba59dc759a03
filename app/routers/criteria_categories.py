from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.criteria import (
    CriteriaCategoryCreate,
    CriteriaCategoryResponse,
    CriteriaCategoryUpdate,
    CriteriaCategoryWithCriteria,
    RebalanceWeightItem,
    WeightValidation,
)
from app.services.criteria_category_service import CriteriaCategoryService

router = APIRouter(
    prefix="/criteria-categories",
    tags=["criteria-categories"]
)


@router.get("/", response_model=List[CriteriaCategoryResponse])
def list_categories(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaCategoryService(db).list_categories(current_user, include_inactive)


@router.post("/", response_model=CriteriaCategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CriteriaCategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).create_category(data, current_user)


@router.get("/validate-weights", response_model=WeightValidation)
def validate_weights(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaCategoryService(db).validate_weights()


@router.post("/rebalance", response_model=WeightValidation)
def rebalance_weights(
    items: List[RebalanceWeightItem],
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).rebalance_weights(items, current_user)


@router.get("/{category_id}", response_model=CriteriaCategoryResponse)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaCategoryService(db).get_category(category_id, current_user)


@router.get("/{category_id}/with-criteria", response_model=CriteriaCategoryWithCriteria)
def get_category_with_criteria(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaCategoryService(db).get_category_with_criteria(category_id, current_user)


@router.put("/{category_id}", response_model=CriteriaCategoryResponse)
def update_category(
    category_id: int,
    data: CriteriaCategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).update_category(category_id, data, current_user)


@router.post("/{category_id}/deactivate", response_model=CriteriaCategoryResponse)
def deactivate_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).deactivate_category(category_id, current_user)


@router.post("/{category_id}/reactivate", response_model=CriteriaCategoryResponse)
def reactivate_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).reactivate_category(category_id, current_user)


@router.post("/{category_id}/cascade-deactivate", response_model=CriteriaCategoryResponse)
def cascade_deactivate_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaCategoryService(db).cascade_deactivate_category(category_id, current_user)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    CriteriaCategoryService(db).delete_category(category_id, current_user)
