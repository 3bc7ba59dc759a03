import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.limiter import limiter
from app.database import get_db
from app.models.user import User, UserSession
from app.routers.auth_deps import get_current_user
from app.schemas.auth import LoginRequest, PasswordChange, RefreshRequest, Token, UserInfo
from app.schemas.user import UserResponse
from app.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _issue_tokens(db: Session, user: User) -> Token:
    token_data = {
        "sub": user.email,
        "user_id": user.id,
        "roles": user.roles,
    }
    access_token = auth_service.create_access_token(data=token_data)
    refresh_token = auth_service.create_refresh_token(data={"sub": user.email})

    expires_at = datetime.now(timezone.utc) + timedelta(days=auth_service.REFRESH_TOKEN_EXPIRE_DAYS)
    db.add(UserSession(user_id=user.id, refresh_token=refresh_token, expires_at=expires_at))
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=UserInfo(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            department_id=user.department_id,
            roles=user.roles,
        ),
    )


@router.post("/login", response_model=Token)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, login_data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not auth_service.verify_password(login_data.password, user.hashed_password):
        logger.warning("Failed login", extra={"email": login_data.email})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")

    token = _issue_tokens(db, user)
    logger.info(f"User {user.id} logged in")
    return token


@router.post("/refresh", response_model=Token)
def refresh_token(body: RefreshRequest, db: Session = Depends(get_db)):
    payload = auth_service.decode_access_token(body.refresh_token)
    if payload is None or payload.get("error") or payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    db_session = db.query(UserSession).filter(
        UserSession.refresh_token == body.refresh_token,
        UserSession.is_revoked == False,  # noqa: E712
    ).first()
    if not db_session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or revoked")

    user = db_session.user
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive or not found")

    # Rotation: revoke old, issue new
    db_session.is_revoked = True
    return _issue_tokens(db, user)


@router.post("/logout")
def logout(body: RefreshRequest, db: Session = Depends(get_db)):
    db_session = db.query(UserSession).filter(UserSession.refresh_token == body.refresh_token).first()
    if db_session and not db_session.is_revoked:
        db_session.is_revoked = True
        db.commit()
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/change-password")
def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not auth_service.verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    current_user.hashed_password = auth_service.get_password_hash(data.new_password)
    # Every open session ends with a password change
    db.query(UserSession).filter(
        UserSession.user_id == current_user.id,
        UserSession.is_revoked == False,  # noqa: E712
    ).update({UserSession.is_revoked: True}, synchronize_session=False)
    db.commit()
    logger.info(f"User {current_user.id} changed password")
    return {"message": "Password updated successfully"}
