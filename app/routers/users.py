from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.core.exceptions import AccessDeniedError
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin, require_manager
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return UserService(db).create_user(data)


@router.get("/", response_model=List[UserResponse])
def list_users(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return UserService(db).list_users(current_user, include_inactive)


@router.get("/department/{department_id}", response_model=List[UserResponse])
def department_employees(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    if not current_user.is_admin and current_user.department_id != department_id:
        raise AccessDeniedError("Access denied. You can only access employees in your department.")
    return UserService(db).get_department_employees(department_id)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService(db).get_user(user_id, current_user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return UserService(db).update_user(user_id, data)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return UserService(db).set_active(user_id, False, current_user)


@router.post("/{user_id}/activate", response_model=UserResponse)
def activate_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return UserService(db).set_active(user_id, True, current_user)
