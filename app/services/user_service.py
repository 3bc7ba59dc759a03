from typing import List, Optional

from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.department import Department
from app.models.user import Role, RoleAssignment, SystemRole, User
from app.schemas.user import UserCreate, UserUpdate
from app.services import auth as auth_service
from app.services.base import BaseService


class UserService(BaseService):

    def _query(self):
        return self.db.query(User).options(selectinload(User.role_assignments).selectinload(RoleAssignment.role))

    def _check_department(self, department_id: Optional[int]) -> None:
        if department_id is None:
            return
        if not self.db.query(Department).filter(Department.id == department_id).first():
            raise ValidationError(f"Department {department_id} not found")

    def create_user(self, data: UserCreate) -> User:
        if self.db.query(User).filter(User.email == data.email).first():
            raise ConflictError("User already exists!")
        self._check_department(data.department_id)

        role_names = data.roles or [SystemRole.EMPLOYEE.value]
        roles = self.db.query(Role).filter(Role.name.in_(role_names), Role.is_active == True).all()  # noqa: E712
        unknown = sorted(set(role_names) - {r.name for r in roles})
        if unknown:
            raise ValidationError(f"Unknown roles: {', '.join(unknown)}")

        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            department_id=data.department_id,
            hashed_password=auth_service.get_password_hash(data.password),
            is_active=True,
        )
        user.role_assignments = [RoleAssignment(role=r, is_active=True) for r in roles]
        self.db.add(user)
        self.commit()
        self.db.refresh(user)
        self.log_info(f"User created: {user.email} with roles {user.roles}")
        return user

    def list_users(self, current_user: User, include_inactive: bool = False) -> List[User]:
        """Admins see everyone; managers see their own department."""
        query = self._query()
        if not current_user.is_admin:
            query = query.filter(User.department_id == current_user.department_id)
        if not include_inactive:
            query = query.filter(User.is_active == True)  # noqa: E712
        return query.order_by(User.last_name, User.first_name).all()

    def get_user(self, user_id: int, current_user: Optional[User] = None) -> User:
        user = self._query().filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)
        if current_user is not None and not current_user.is_admin and current_user.id != user.id:
            if not (current_user.is_manager and current_user.department_id == user.department_id):
                raise NotFoundError("User", user_id)
        return user

    def update_user(self, user_id: int, data: UserUpdate) -> User:
        user = self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True)
        if "email" in changes and changes["email"] != user.email:
            if self.db.query(User).filter(User.email == changes["email"]).first():
                raise ConflictError("Email already in use")
        if "department_id" in changes:
            self._check_department(changes["department_id"])
        for field, value in changes.items():
            setattr(user, field, value)
        self.commit()
        self.db.refresh(user)
        self.log_info(f"User {user_id} updated: {sorted(changes)}")
        return user

    def set_active(self, user_id: int, is_active: bool, current_user: User) -> User:
        user = self.get_user(user_id)
        if user.id == current_user.id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = is_active
        self.commit()
        self.log_info(f"User {user_id} {'activated' if is_active else 'deactivated'} by user {current_user.id}")
        return user

    def get_department_employees(self, department_id: int) -> List[User]:
        if not self.db.query(Department).filter(Department.id == department_id).first():
            raise NotFoundError("Department", department_id)
        return (
            self._query()
            .filter(User.department_id == department_id, User.is_active == True)  # noqa: E712
            .order_by(User.last_name, User.first_name)
            .all()
        )
