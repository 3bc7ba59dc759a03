"""
User, Role and RoleAssignment models.
A user's role-set is the set of active roles reachable through active assignments.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class SystemRole(str, enum.Enum):
    """
    Role names the application itself depends on.

    - ADMIN: full access; weekly summaries cover every department
    - MANAGER: department-level oversight; receives overdue alerts
    - EVALUATOR: scores the employees assigned to them
    - EMPLOYEE: self-service access to their own evaluations

    Job roles (Developer, BusinessAnalyst, ...) are plain Role rows used to
    select role-specific criteria descriptions.
    """
    ADMIN = "Admin"
    MANAGER = "Manager"
    EVALUATOR = "Evaluator"
    EMPLOYEE = "Employee"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    assignments = relationship("RoleAssignment", back_populates="role", cascade="all, delete-orphan")
    criteria_descriptions = relationship("RoleCriteriaDescription", back_populates="role", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Role {self.name}>"


class RoleAssignment(Base):
    __tablename__ = "role_assignments"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_role_assignment_user_role"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_date = Column(DateTime(timezone=True), server_default=func.now())
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="role_assignments")
    role = relationship("Role", back_populates="assignments")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_date = Column(DateTime(timezone=True), server_default=func.now())
    updated_date = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    department = relationship("Department", back_populates="users")
    role_assignments = relationship("RoleAssignment", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def roles(self) -> list[str]:
        """Names of the user's active roles, sorted."""
        return sorted(
            ra.role.name
            for ra in self.role_assignments
            if ra.is_active and ra.role is not None and ra.role.is_active
        )

    @property
    def role_ids(self) -> set[int]:
        return {
            ra.role_id
            for ra in self.role_assignments
            if ra.is_active and ra.role is not None and ra.role.is_active
        }

    def has_role(self, *names: str) -> bool:
        wanted = {n.value if isinstance(n, SystemRole) else n for n in names}
        return bool(set(self.roles) & wanted)

    @property
    def is_admin(self) -> bool:
        return self.has_role(SystemRole.ADMIN)

    @property
    def is_manager(self) -> bool:
        """Admins and department managers."""
        return self.has_role(SystemRole.ADMIN, SystemRole.MANAGER)


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    refresh_token = Column(String, unique=True, index=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    is_revoked = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="sessions")
