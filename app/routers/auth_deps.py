"""
RBAC Dependencies.
Resolve the bearer token to a User and check role names against the user's role-set.
"""
import logging
from typing import Callable, List, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.models.user import RoleAssignment, SystemRole, User
from app.services import auth as auth_service
from app.schemas.auth import TokenData

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """
    Extracts and validates the current user from the JWT token.
    """
    payload = auth_service.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="TOKEN_EXPIRED",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email: str = payload.get("sub")
    if email is None:
        logger.warning("Authentication failed: Missing subject (email) in token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing subject in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = TokenData(email=email, roles=payload.get("roles") or [])
    user = (
        db.query(User)
        .options(selectinload(User.role_assignments).selectinload(RoleAssignment.role))
        .filter(User.email == token_data.email)
        .first()
    )

    if user is None:
        logger.warning(f"Authentication failed: User {email} not found in database")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        logger.warning(f"Authentication failed: User {email} is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is inactive"
        )
    return user


def require_role(allowed_roles: List[Union[SystemRole, str]]) -> Callable:
    """
    Dependency factory that checks if the user holds one of the allowed roles.
    Roles are read from the database, not from the token, so revocations apply at once.

    Usage:
        @router.get("/admin-only")
        def admin_endpoint(user: User = Depends(require_role([SystemRole.ADMIN]))):
            ...
    """
    names = [r.value if isinstance(r, SystemRole) else r for r in allowed_roles]

    def role_checker(current_user: User = Depends(get_current_user)):
        if not current_user.has_role(*names):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {names}"
            )
        return current_user
    return role_checker


def require_admin():
    """Shorthand for requiring the Admin role."""
    return require_role([SystemRole.ADMIN])


def require_manager():
    """Shorthand for requiring Admin or Manager."""
    return require_role([SystemRole.ADMIN, SystemRole.MANAGER])
