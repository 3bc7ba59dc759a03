import logging
from app.core.config import settings
from app.database import SessionLocal
from app.models.user import Role, RoleAssignment, SystemRole, User
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

SYSTEM_ROLE_DESCRIPTIONS = {
    SystemRole.ADMIN: "Full administrative access",
    SystemRole.MANAGER: "Department oversight and reporting",
    SystemRole.EVALUATOR: "Scores assigned employees",
    SystemRole.EMPLOYEE: "Views their own evaluations",
}


def ensure_system_roles(db) -> dict:
    """Create any missing system role and return them keyed by name."""
    roles = {}
    for role_name, description in SYSTEM_ROLE_DESCRIPTIONS.items():
        role = db.query(Role).filter(Role.name == role_name.value).first()
        if role is None:
            role = Role(name=role_name.value, description=description, is_active=True)
            db.add(role)
            db.flush()
            logger.info(f"Created system role: {role_name.value}")
        roles[role_name.value] = role
    return roles


def init_system_data():
    """
    Checks if the system needs initialization.
    Seeds the system roles and, when no user exists yet, a bootstrap Admin.
    """
    db = SessionLocal()
    try:
        roles = ensure_system_roles(db)

        user_count = db.query(User).count()
        if user_count == 0:
            logger.info("Running startup initialization...")
            admin_user = User(
                first_name="System",
                last_name="Administrator",
                email=settings.bootstrap_admin_email,
                hashed_password=auth_service.get_password_hash(settings.bootstrap_admin_password),
                is_active=True,
            )
            db.add(admin_user)
            db.flush()
            db.add(RoleAssignment(user_id=admin_user.id, role_id=roles[SystemRole.ADMIN.value].id, is_active=True))
            logger.info(f"Created bootstrap Admin: {settings.bootstrap_admin_email} (change the password immediately)")
        else:
            logger.info(f"System initialization check: {user_count} user(s) found.")

        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error during system initialization check: {str(e)}", exc_info=True)
    finally:
        db.close()
