from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import get_current_user, require_admin
from app.schemas.user import RoleAssignmentRequest, RoleCreate, RoleResponse, UserResponse
from app.services.role_service import RoleService

router = APIRouter(
    prefix="/roles",
    tags=["roles"]
)


@router.get("/", response_model=List[RoleResponse])
def list_roles(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return RoleService(db).list_roles(include_inactive and current_user.is_admin)


@router.post("/", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    data: RoleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return RoleService(db).create_role(data)


@router.post("/{role_id}/deactivate", response_model=RoleResponse)
def deactivate_role(
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return RoleService(db).deactivate_role(role_id)


@router.post("/assign")
def assign_role(
    data: RoleAssignmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    assignment = RoleService(db).assign_role(data.user_id, data.role_name)
    return {"message": "Role assigned", "assignment_id": assignment.id}


@router.post("/unassign")
def unassign_role(
    data: RoleAssignmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    RoleService(db).unassign_role(data.user_id, data.role_name)
    return {"message": "Role removed"}


@router.get("/{role_id}/users", response_model=List[UserResponse])
def users_in_role(
    role_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return RoleService(db).users_in_role(role_id)
