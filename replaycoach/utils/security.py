import secrets
from datetime import datetime, timedelta
from typing import Optional
from passlib.context import CryptContext
from jose import jwt, JWTError
from config.config import Config

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT settings
ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def generate_token(data: dict, expires_delta: timedelta = None) -> str:
    """Generate JWT token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=Config.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, Config.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify and decode JWT token"""
    try:
        return jwt.decode(token, Config.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def sign_cookie(purpose: str, data: dict, expires_delta: timedelta) -> str:
    """Sign a cookie value; the purpose claim keeps cookies from being swapped"""
    return generate_token({**data, "purpose": purpose}, expires_delta)


def read_cookie(purpose: str, value: Optional[str]) -> Optional[dict]:
    """Decode a signed cookie, None when missing, tampered, expired or for another purpose"""
    if not value:
        return None
    payload = verify_token(value)
    if not payload or payload.get("purpose") != purpose:
        return None
    return payload


def generate_secure_token() -> str:
    """Generate secure random token"""
    return secrets.token_urlsafe(32)
