# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, department, team, criteria, evaluation, notification

# Explicit class exports for cleaner imports
from .user import User, Role, RoleAssignment, UserSession, SystemRole
from .department import Department
from .team import Team, EvaluatorAssignment
from .criteria import CriteriaCategory, Criteria, RoleCriteriaDescription
from .evaluation import Evaluation, EvaluationScore, Comment, EvaluationStatus
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "Role",
    "RoleAssignment",
    "UserSession",
    "SystemRole",
    "Department",
    "Team",
    "EvaluatorAssignment",
    "CriteriaCategory",
    "Criteria",
    "RoleCriteriaDescription",
    "Evaluation",
    "EvaluationScore",
    "Comment",
    "EvaluationStatus",
    "Notification",
    "NotificationType",
]
