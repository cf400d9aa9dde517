import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .domain.directory.repository import UserDirectory
from .enums import UserRole
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token carrying the user id (sub) and role.

    Token issuance endpoints live in the auth service; this helper is used by
    operators and tests.
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Verify and decode an access token

    Returns:
        Decoded payload if valid, None if missing, invalid or expired
    """
    if not token:
        return None

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None

    if not isinstance(payload.get("sub"), str) or not payload.get("role"):
        logger.warning("JWT payload missing sub or role claim")
        return None

    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the Bearer access token"""

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=401,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = UserDirectory.find_user_by_id(db, payload["sub"])
    if user is None:
        logger.warning(f"⚠️ Token subject {payload['sub']} does not match any user")
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        logger.warning(f"⚠️ Deactivated user {user.id} attempted to authenticate")
        raise HTTPException(status_code=403, detail="Account is deactivated")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory restricting a route to the given roles"""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in {role.value for role in roles}:
            logger.warning(f"⚠️ User {user.id} with role {user.role} denied access")
            raise HTTPException(
                status_code=403,
                detail=f"User role {user.role} is not authorized to access this route",
            )
        return user

    return checker
