from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.criteria import (
    CriteriaCreate,
    CriteriaResponse,
    CriteriaUpdate,
    CriteriaWithRoleDescription,
    RoleDescriptionCreate,
    RoleDescriptionResponse,
    RoleDescriptionUpdate,
)
from app.services.criteria_service import CriteriaService

router = APIRouter(
    prefix="/criteria",
    tags=["criteria"]
)


@router.get("/", response_model=List[CriteriaResponse])
def list_criteria(
    category_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaService(db).list_criteria(current_user, category_id)


@router.post("/", response_model=CriteriaResponse, status_code=status.HTTP_201_CREATED)
def create_criteria(
    data: CriteriaCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).create_criteria(data, current_user)


@router.get("/role/{role_id}", response_model=List[CriteriaResponse])
def criteria_for_role(
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaService(db).get_criteria_for_role(role_id)


@router.put("/role-descriptions/{description_id}", response_model=RoleDescriptionResponse)
def update_role_description(
    description_id: int,
    data: RoleDescriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).update_role_description(description_id, data, current_user)


@router.delete("/role-descriptions/{description_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role_description(
    description_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    CriteriaService(db).delete_role_description(description_id, current_user)


@router.get("/{criteria_id}", response_model=CriteriaResponse)
def get_criteria(
    criteria_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaService(db).get_criteria(criteria_id, current_user)


@router.get("/{criteria_id}/role/{role_id}", response_model=CriteriaWithRoleDescription)
def criteria_with_role_description(
    criteria_id: int,
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CriteriaService(db).get_criteria_with_role_description(criteria_id, role_id)


@router.put("/{criteria_id}", response_model=CriteriaResponse)
def update_criteria(
    criteria_id: int,
    data: CriteriaUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).update_criteria(criteria_id, data, current_user)


@router.post("/{criteria_id}/deactivate", response_model=CriteriaResponse)
def deactivate_criteria(
    criteria_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).deactivate_criteria(criteria_id, current_user)


@router.post("/{criteria_id}/reactivate", response_model=CriteriaResponse)
def reactivate_criteria(
    criteria_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).reactivate_criteria(criteria_id, current_user)


@router.delete("/{criteria_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_criteria(
    criteria_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    CriteriaService(db).delete_criteria(criteria_id, current_user)


@router.post(
    "/{criteria_id}/role-descriptions",
    response_model=RoleDescriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_role_description(
    criteria_id: int,
    data: RoleDescriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return CriteriaService(db).add_role_description(criteria_id, data, current_user)
