from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.core.exceptions import AccessDeniedError
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin, require_manager
from app.schemas.department import DepartmentCreate, DepartmentResponse, DepartmentStats, DepartmentUpdate
from app.services.department_service import DepartmentService

router = APIRouter(
    prefix="/departments",
    tags=["departments"]
)


@router.get("/", response_model=List[DepartmentResponse])
def list_departments(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DepartmentService(db).list_departments(include_inactive and current_user.is_admin)


@router.post("/", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
def create_department(
    data: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return DepartmentService(db).create_department(data)


@router.get("/{department_id}", response_model=DepartmentResponse)
def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return DepartmentService(db).get_department(department_id)


@router.put("/{department_id}", response_model=DepartmentResponse)
def update_department(
    department_id: int,
    data: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return DepartmentService(db).update_department(department_id, data)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    DepartmentService(db).delete_department(department_id)


@router.get("/{department_id}/stats", response_model=DepartmentStats)
def department_stats(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    if not current_user.is_admin and current_user.department_id != department_id:
        raise AccessDeniedError("Access denied. You can only access your own department.")
    return DepartmentService(db).get_stats(department_id)
