"""Password hashing, bearer tokens and role permissions."""
import logging
import time
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer()


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # A corrupted hash is a failed login, not a server error.
        logger.exception("Stored password hash could not be verified")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(claims: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token; ``claims`` should carry ``sub`` and ``ver``."""
    issued_at = int(time.time())
    lifetime = expires_delta or timedelta(minutes=int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        **claims,
        "iat": issued_at,
        "exp": issued_at + int(lifetime.total_seconds()),
        "type": "access",
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _int_claim(payload: dict, name: str, *, required: bool) -> Optional[int]:
    value = payload.get(name)
    if value is None:
        if required:
            raise _unauthorized()
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise _unauthorized()


def decode_token(token: str) -> dict:
    """Verify signature and lifetime; exp/iat are checked here with JWT_LEEWAY_SECONDS of skew."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise _unauthorized()

    now = int(time.time())
    leeway = int(settings.JWT_LEEWAY_SECONDS)
    expires_at = _int_claim(payload, "exp", required=True)
    if now > expires_at + leeway:
        raise _unauthorized("Token expired")
    issued_at = _int_claim(payload, "iat", required=False)
    if issued_at is not None and issued_at > now + leeway:
        raise _unauthorized()
    return payload


def _token_subject(payload: dict) -> UUID:
    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise _unauthorized()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user whose token_version still matches."""
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type")

    user = db.query(User).filter(User.id == _token_subject(payload), User.is_active.is_(True)).first()
    if user is None:
        raise _unauthorized("User not found or inactive")
    if int(user.token_version or 0) != (_int_claim(payload, "ver", required=False) or 0):
        raise _unauthorized("Token has been revoked")
    return user


class PermissionChecker:
    """Dependency that returns the current user only when their role grants ``required_permission``."""

    def __init__(self, required_permission: str):
        self.required_permission = required_permission

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if not check_permission(current_user, self.required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {self.required_permission} required",
            )
        return current_user


# Role permissions matrix
ROLE_PERMISSIONS = {
    "admin": {
        "canRegisterDefects": True,
        "canViewReports": True,
        "canDeleteDefects": True,
        "canManagePlans": True,
        "canReleasePlans": True,
        "canRevertReleases": True,
        "canViewDashboard": True,
        "canViewAudit": True,
    },
    "manager": {
        "canRegisterDefects": True,
        "canViewReports": True,
        "canDeleteDefects": False,
        "canManagePlans": True,
        "canReleasePlans": True,
        "canRevertReleases": True,
        "canViewDashboard": True,
        "canViewAudit": True,
    },
    "inspector": {
        "canRegisterDefects": True,
        "canViewReports": True,
        "canDeleteDefects": False,
        "canManagePlans": False,
        "canReleasePlans": True,
        "canRevertReleases": False,
        "canViewDashboard": True,
        "canViewAudit": False,
    },
    "operator": {
        "canRegisterDefects": True,
        "canViewReports": False,
        "canDeleteDefects": False,
        "canManagePlans": False,
        "canReleasePlans": False,
        "canRevertReleases": False,
        "canViewDashboard": False,
        "canViewAudit": False,
    },
}

UI_PERMISSION_KEYS: tuple[str, ...] = tuple(ROLE_PERMISSIONS["admin"].keys())


def check_permission(user: User, permission: str) -> bool:
    return bool(ROLE_PERMISSIONS.get(user.role, {}).get(permission, False))


def get_role_ui_permissions(role: str) -> dict[str, bool]:
    """Full permission map for a role (unknown roles get everything False)."""
    granted = ROLE_PERMISSIONS.get(role, {})
    return {key: bool(granted.get(key, False)) for key in UI_PERMISSION_KEYS}
