from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from backoffice.core.config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)


def _token_claims(user, token_type: str, expire: datetime) -> dict:
    return {
        "id": user.id,
        "telegramId": user.telegram_id,
        "role": user.role,
        "type": token_type,
        "exp": expire,
    }


def create_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token embedding id, handle and role."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = _token_claims(user, ACCESS_TOKEN_TYPE, expire)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(user, expires_delta: Optional[timedelta] = None) -> str:
    """Create a refresh token signed with its own secret and expiry window."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)

    to_encode = _token_claims(user, REFRESH_TOKEN_TYPE, expire)
    return jwt.encode(to_encode, settings.refresh_secret_key, algorithm=settings.algorithm)


def create_token_pair(user) -> dict:
    return {
        "accessToken": create_access_token(user),
        "refreshToken": create_refresh_token(user),
    }


def _decode(token: str, secret: str, token_type: str) -> Optional[dict]:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if payload.get("type") != token_type or payload.get("id") is None:
        return None
    return payload


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate an access token. Returns the payload or None."""
    return _decode(token, settings.secret_key, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> Optional[dict]:
    """Decode and validate a refresh token. Returns the payload or None."""
    return _decode(token, settings.refresh_secret_key, REFRESH_TOKEN_TYPE)


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """Accept either ``Bearer <token>`` or a bare token value."""
    if not authorization:
        return None

    value = authorization.strip()
    if value.lower().startswith("bearer"):
        parts = value.split()
        return parts[1] if len(parts) == 2 else None
    return value or None
