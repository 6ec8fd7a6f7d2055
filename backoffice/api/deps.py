from typing import Generator, Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from backoffice.core.exceptions import UnauthorizedError
from backoffice.core.security import decode_access_token, extract_token
from backoffice.db.models import ADMIN_CLASS_ROLES, USER_CLASS_ROLE, User
from backoffice.db.session import SessionLocal
from backoffice.services.storage import FileStorage

# Accepts "Bearer <token>" as well as a bare token
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_storage() -> FileStorage:
    """Upload storage dependency; overridden in tests."""
    return FileStorage()


class Principal:
    """The authenticated caller. Exactly one of ``user`` and ``admin`` is set."""

    def __init__(self, user: Optional[User] = None, admin: Optional[User] = None):
        self.user = user
        self.admin = admin

    @property
    def identity(self) -> Optional[User]:
        return self.admin or self.user

    @property
    def is_admin(self) -> bool:
        return self.admin is not None


def _load_identity(db: Session, authorization: Optional[str]) -> Optional[User]:
    """Active identity named by a valid access token whose handle still matches."""
    token = extract_token(authorization)
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    identity = db.query(User).filter(
        User.id == payload["id"],
        User.status.is_(True),
    ).first()
    if identity is None or identity.telegram_id != payload.get("telegramId"):
        return None
    return identity


def protect_admin(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Security(authorization_header),
) -> Principal:
    """Require an active admin or director."""
    identity = _load_identity(db, authorization)
    if identity is None or identity.role not in ADMIN_CLASS_ROLES:
        raise UnauthorizedError()
    return Principal(admin=identity)


def protect_user(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Security(authorization_header),
) -> Principal:
    """Require an active user-class identity."""
    identity = _load_identity(db, authorization)
    if identity is None or identity.role != USER_CLASS_ROLE:
        raise UnauthorizedError()
    return Principal(user=identity)


def protect_user_or_admin(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Security(authorization_header),
) -> Principal:
    """Accept either class; the matching slot of the principal is filled."""
    identity = _load_identity(db, authorization)
    if identity is None:
        raise UnauthorizedError()
    if identity.role in ADMIN_CLASS_ROLES:
        return Principal(admin=identity)
    if identity.role == USER_CLASS_ROLE:
        return Principal(user=identity)
    raise UnauthorizedError()
