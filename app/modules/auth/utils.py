from passlib.context import CryptContext
from fastapi import HTTPException
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
import jwt
from app.core.config import settings

SECRET_KEY = settings.APP_SECRET_STRING
ALGORITHM = settings.ALGORITHM
CAPABILITY_TOKEN_EXPIRE_MINUTES = settings.CAPABILITY_TOKEN_EXPIRE_MINUTES
CAPABILITY_SCOPE = "destructive"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a hashed password against a plain password."""
    if not hashed:
        raise HTTPException(status_code=400, detail="Hashed password is empty")
    return pwd_context.verify(plain, hashed)


@lru_cache()
def admin_password_hash() -> str:
    """Hash de la clave del operador: ADMIN_PASSWORD_HASH o derivado de ADMIN_PASSWORD."""
    if settings.ADMIN_PASSWORD_HASH:
        return settings.ADMIN_PASSWORD_HASH
    return hash_password(settings.ADMIN_PASSWORD)


def verify_admin_password(plain: Optional[str]) -> bool:
    if not plain:
        return False
    return verify_password(plain, admin_password_hash())


def create_capability_token(expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a short-lived JWT that allows destructive operations.
    If expires_delta is not provided, it defaults to CAPABILITY_TOKEN_EXPIRE_MINUTES.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=CAPABILITY_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": "operator",
        "scope": CAPABILITY_SCOPE,
        "type": "capability",
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_capability_token(token: str) -> dict:
    """
    Verify a capability token and return the payload.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=403, detail="Expired token")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=403, detail="Invalid token")

    if payload.get("type") != "capability" or payload.get("scope") != CAPABILITY_SCOPE:
        raise HTTPException(status_code=403, detail="Invalid token type")
    return payload
