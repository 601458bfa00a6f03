import hashlib
import logging
import secrets
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException
from passlib.context import CryptContext
from pymongo.database import Database

from config import settings
from database import get_db

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_current_user(
    db: Database = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
    access_token: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
) -> dict:
    """
    Resolve the acting user from the session cookie or a Bearer header.
    Raises 401 when neither carries a live session.
    """
    token = access_token or _bearer(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized request")
    user = db["user"].find_one({"sessionToken": hash_token(token)})
    if not user:
        logger.info("Rejected request with unknown session token")
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return user
