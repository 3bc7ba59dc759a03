from typing import List

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.user import Role, RoleAssignment, SystemRole, User
from app.schemas.user import RoleCreate
from app.services.base import BaseService

SYSTEM_ROLE_NAMES = {r.value for r in SystemRole}


class RoleService(BaseService):
    """Roles and the user <-> role assignments that make up a user's role-set."""

    def list_roles(self, include_inactive: bool = False) -> List[Role]:
        query = self.db.query(Role)
        if not include_inactive:
            query = query.filter(Role.is_active == True)  # noqa: E712
        return query.order_by(Role.name).all()

    def get_role(self, role_id: int) -> Role:
        role = self.db.query(Role).filter(Role.id == role_id).first()
        if not role:
            raise NotFoundError("Role", role_id)
        return role

    def get_by_name(self, name: str) -> Role:
        role = self.db.query(Role).filter(Role.name == name).first()
        if not role:
            raise ValidationError(f"Role '{name}' not found")
        return role

    def create_role(self, data: RoleCreate) -> Role:
        if self.db.query(Role).filter(Role.name == data.name).first():
            raise ConflictError("Role with this name already exists")
        role = Role(name=data.name, description=data.description, is_active=True)
        self.db.add(role)
        self.commit()
        self.db.refresh(role)
        self.log_info(f"Role created: {role.name}")
        return role

    def deactivate_role(self, role_id: int) -> Role:
        role = self.get_role(role_id)
        if role.name in SYSTEM_ROLE_NAMES:
            raise ValidationError("Cannot deactivate system roles (Admin, Manager, Evaluator, Employee)")
        role.is_active = False
        self.commit()
        return role

    def assign_role(self, user_id: int, role_name: str) -> RoleAssignment:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ValidationError("User not found")
        role = self.get_by_name(role_name)

        assignment = (
            self.db.query(RoleAssignment)
            .filter(RoleAssignment.user_id == user_id, RoleAssignment.role_id == role.id)
            .first()
        )
        if assignment and assignment.is_active:
            raise ConflictError("User already has this role assigned")
        if assignment:
            assignment.is_active = True
        else:
            assignment = RoleAssignment(user_id=user_id, role_id=role.id, is_active=True)
            self.db.add(assignment)
        self.commit()
        self.db.refresh(assignment)
        self.log_info(f"Role {role.name} assigned to user {user_id}")
        return assignment

    def unassign_role(self, user_id: int, role_name: str) -> None:
        role = self.get_by_name(role_name)
        assignment = (
            self.db.query(RoleAssignment)
            .filter(
                RoleAssignment.user_id == user_id,
                RoleAssignment.role_id == role.id,
                RoleAssignment.is_active == True,  # noqa: E712
            )
            .first()
        )
        if not assignment:
            raise NotFoundError("Role assignment")
        assignment.is_active = False
        self.commit()
        self.log_info(f"Role {role.name} removed from user {user_id}")

    def users_in_role(self, role_id: int) -> List[User]:
        self.get_role(role_id)
        return (
            self.db.query(User)
            .join(RoleAssignment, RoleAssignment.user_id == User.id)
            .filter(RoleAssignment.role_id == role_id, RoleAssignment.is_active == True)  # noqa: E712
            .order_by(User.last_name, User.first_name)
            .all()
        )
