import logging
from datetime import timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .models import User
from .shared.dates import utcnow

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our 401 envelope instead of FastAPI's 403
security = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Issue an HS256 token whose subject is the user id"""
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="unauthorized")

    payload = verify_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="unauthorized")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="unauthorized") from None

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"🔒 Token for unknown or inactive user {user_id}")
        raise HTTPException(status_code=401, detail="unauthorized")
    return user


def user_has_application(user: User, key: str) -> bool:
    return key in (user.applications or [])


def require_application(key: str):
    """
    Dependency factory gating a router on an application key.

    Example:
        router = APIRouter(dependencies=[Depends(require_application("scheduler"))])
    """

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not user_has_application(current_user, key):
            logger.warning(f"🚫 User {current_user.id} lacks '{key}' access")
            raise HTTPException(status_code=403, detail="forbidden")
        return current_user

    return checker
