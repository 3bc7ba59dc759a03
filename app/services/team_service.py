from typing import List

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.team import EvaluatorAssignment, Team
from app.models.user import SystemRole, User
from app.schemas.team import EvaluatorAssignmentCreate, TeamCreate, TeamUpdate
from app.services.base import BaseService


class TeamService(BaseService):
    """Teams and the evaluator -> employee assignments inside them."""

    def _get(self, team_id: int) -> Team:
        team = self.db.query(Team).filter(Team.id == team_id).first()
        if not team:
            raise NotFoundError("Team", team_id)
        return team

    def list_teams(self) -> List[Team]:
        return self.db.query(Team).order_by(Team.name).all()

    def get_team(self, team_id: int) -> Team:
        return self._get(team_id)

    def create_team(self, data: TeamCreate) -> Team:
        team = Team(name=data.name, description=data.description)
        self.db.add(team)
        self.commit()
        self.db.refresh(team)
        self.log_info(f"Team created: {team.name}")
        return team

    def update_team(self, team_id: int, data: TeamUpdate) -> Team:
        team = self._get(team_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(team, field, value)
        self.commit()
        self.db.refresh(team)
        return team

    def delete_team(self, team_id: int) -> None:
        team = self._get(team_id)
        active = sum(1 for a in team.assignments if a.is_active)
        if active:
            raise ConflictError(
                f"Cannot delete team. Team has {active} active assignments. Remove them first."
            )
        self.db.delete(team)
        self.commit()
        self.log_warning(f"Team permanently deleted: ID {team_id}")

    def assign(self, team_id: int, data: EvaluatorAssignmentCreate) -> EvaluatorAssignment:
        self._get(team_id)
        evaluator = self.db.query(User).filter(User.id == data.evaluator_id, User.is_active == True).first()  # noqa: E712
        if not evaluator:
            raise ValidationError("Evaluator not found")
        if not evaluator.has_role(SystemRole.EVALUATOR):
            raise ValidationError("User must have Evaluator role")
        employee = self.db.query(User).filter(User.id == data.employee_id, User.is_active == True).first()  # noqa: E712
        if not employee:
            raise ValidationError("Employee not found")
        if evaluator.id == employee.id:
            raise ValidationError("An evaluator cannot be assigned to themselves")

        existing = (
            self.db.query(EvaluatorAssignment)
            .filter(
                EvaluatorAssignment.team_id == team_id,
                EvaluatorAssignment.evaluator_id == evaluator.id,
                EvaluatorAssignment.employee_id == employee.id,
            )
            .first()
        )
        if existing and existing.is_active:
            raise ConflictError("Evaluator is already assigned to this employee in this team")
        if existing:
            existing.is_active = True
            assignment = existing
        else:
            assignment = EvaluatorAssignment(
                team_id=team_id, evaluator_id=evaluator.id, employee_id=employee.id, is_active=True
            )
            self.db.add(assignment)
        self.commit()
        self.db.refresh(assignment)
        self.log_info(f"Evaluator {evaluator.id} assigned to employee {employee.id} in team {team_id}")
        return assignment

    def remove_assignment(self, team_id: int, assignment_id: int) -> None:
        assignment = (
            self.db.query(EvaluatorAssignment)
            .filter(EvaluatorAssignment.id == assignment_id, EvaluatorAssignment.team_id == team_id)
            .first()
        )
        if not assignment or not assignment.is_active:
            raise NotFoundError("Assignment", assignment_id)
        assignment.is_active = False
        self.commit()
        self.log_info(f"Assignment {assignment_id} removed from team {team_id}")

    def list_assignments(self, team_id: int, include_inactive: bool = False) -> List[EvaluatorAssignment]:
        self._get(team_id)
        query = self.db.query(EvaluatorAssignment).filter(EvaluatorAssignment.team_id == team_id)
        if not include_inactive:
            query = query.filter(EvaluatorAssignment.is_active == True)  # noqa: E712
        return query.order_by(EvaluatorAssignment.id).all()
