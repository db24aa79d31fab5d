"""Sign-in, sign-out and current-user endpoints."""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_current_user, get_role_ui_permissions, verify_password
from ..config import settings
from ..database import get_db
from ..models import AuditEvent, User
from ..schemas import AuthUserResponse, LoginRequest, TokenResponse, UserResponse
from ..services.login_throttle import client_ip, login_throttle

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _auth_user_response(user: User) -> AuthUserResponse:
    base = UserResponse.model_validate(user)
    return AuthUserResponse(**base.model_dump(), permissions=get_role_ui_permissions(user.role))


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _user_audit(user: User, *, action: str, request: Request) -> AuditEvent:
    return AuditEvent(
        org_id=user.org_id,
        action=action,
        entity_type="user",
        entity_id=user.id,
        entity_name=user.username,
        user_id=user.id,
        user_name=user.initials,
        details={"ip": client_ip(request)},
    )


def _audit_best_effort(db: Session, event: AuditEvent) -> None:
    """Sign-in audit rows never change the outcome of the request."""
    try:
        db.add(event)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write %s audit event", event.action)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Exchange username/password for a bearer token."""
    _no_store(response)
    username = (payload.username or "").strip() or None
    login_throttle.check(ip=client_ip(request), username=username)

    user = None
    if username:
        user = db.query(User).filter(User.username == username, User.is_active.is_(True)).first()

    if user is None or not verify_password(payload.password, user.password_hash):
        # Only known users are counted and audited.
        if user is not None:
            login_throttle.record_failure(username=username)
            _audit_best_effort(db, _user_audit(user, action="LOGIN_FAILED", request=request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    login_throttle.reset(username=username)
    token = create_access_token({"sub": str(user.id), "ver": user.token_version})
    _audit_best_effort(db, _user_audit(user, action="user_login", request=request))
    logger.info("User signed in user=%s", user.id)

    return TokenResponse(
        access_token=token,
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=_auth_user_response(user),
    )


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Revoke every token issued so far by bumping the user's token_version."""
    started = time.perf_counter()
    _no_store(response)

    current_user.token_version = int(current_user.token_version or 0) + 1
    db.add(_user_audit(current_user, action="user_logout", request=request))
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to logout user=%s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to logout")

    if settings.DEBUG:
        logger.info("auth.logout user=%s ms=%.0f", current_user.id, (time.perf_counter() - started) * 1000)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=AuthUserResponse)
def get_me(response: Response, current_user: User = Depends(get_current_user)):
    _no_store(response)
    return _auth_user_response(current_user)
