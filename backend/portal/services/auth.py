"""
Password hashing, bearer tokens and the current-user dependency
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_app_settings
from ..database import get_db
from ..exceptions import UnauthorizedError
from ..models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

# Verified against when the email is unknown so that both login failures cost
# one bcrypt verification.
DUMMY_PASSWORD_HASH = pwd_context.hash("portal-dummy-password")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the account id carried by ``token``."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise UnauthorizedError("Could not validate credentials")


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> User:
    if not token:
        raise UnauthorizedError("Not authenticated")

    user_id = decode_access_token(token, settings)
    user = await db.get(User, user_id)
    if user is None:
        logger.info("Bearer token for missing account %s", user_id)
        raise UnauthorizedError("Could not validate credentials")
    return user
