from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import require_admin, require_manager
from app.schemas.team import (
    EvaluatorAssignmentCreate,
    EvaluatorAssignmentResponse,
    TeamCreate,
    TeamResponse,
    TeamUpdate,
    TeamWithAssignments,
)
from app.services.team_service import TeamService

router = APIRouter(
    prefix="/teams",
    tags=["teams"]
)


@router.get("/", response_model=List[TeamResponse])
def list_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return TeamService(db).list_teams()


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
def create_team(
    data: TeamCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return TeamService(db).create_team(data)


@router.get("/{team_id}", response_model=TeamWithAssignments)
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    service = TeamService(db)
    team = service.get_team(team_id)
    return TeamWithAssignments(
        id=team.id,
        name=team.name,
        description=team.description,
        created_date=team.created_date,
        assignments=[EvaluatorAssignmentResponse.model_validate(a) for a in service.list_assignments(team_id)],
    )


@router.put("/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: int,
    data: TeamUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return TeamService(db).update_team(team_id, data)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    TeamService(db).delete_team(team_id)


@router.get("/{team_id}/assignments", response_model=List[EvaluatorAssignmentResponse])
def list_assignments(
    team_id: int,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager())
):
    return TeamService(db).list_assignments(team_id, include_inactive)


@router.post(
    "/{team_id}/assignments",
    response_model=EvaluatorAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def assign_evaluator(
    team_id: int,
    data: EvaluatorAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    return TeamService(db).assign(team_id, data)


@router.delete("/{team_id}/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_assignment(
    team_id: int,
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    TeamService(db).remove_assignment(team_id, assignment_id)
