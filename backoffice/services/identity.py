"""Identity service: login, tokens, profiles and user administration.

Admin-class (admin, director) and user-class identities share one table and
one code path; ``admin`` flags tell the class a caller is signing in as.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from backoffice.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
)
from backoffice.core.security import decode_refresh_token, get_password_hash, verify_password
from backoffice.db.models import ADMIN_CLASS_ROLES, USER_CLASS_ROLE, Group, Role, User, UserGroup
from backoffice.db.pagination import paginate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid telegram ID or password"
DUPLICATE_HANDLE = "A user with this telegram ID already exists"
SINGLE_GROUP_REQUIRED = "A user must belong to exactly one group"


def _matches_class(user: User, admin: bool) -> bool:
    if admin:
        return user.role in ADMIN_CLASS_ROLES
    return user.role == USER_CLASS_ROLE


class IdentityService:
    def __init__(self, db: Session):
        self.db = db

    # ============== Authentication ==============

    def authenticate(self, telegram_id: str, password: str, *, admin: bool) -> User:
        """Check a handle/password pair for the given identity class.

        Unknown handles, wrong passwords, inactive accounts and the wrong class
        all raise the same 401.
        """
        user = self.find_by_handle(telegram_id)
        if (
            user is None
            or not user.status
            or not _matches_class(user, admin)
            or not verify_password(password, user.password_hash)
        ):
            logger.info("Failed login for handle %s", telegram_id)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        logger.info("Identity %s logged in", user.id)
        return user

    def refresh(self, refresh_token: str, *, admin: bool) -> User:
        """Resolve the identity behind a refresh token so a new pair can be issued."""
        payload = decode_refresh_token(refresh_token or "")
        if payload is None:
            raise UnauthorizedError()

        user = self.db.get(User, payload["id"])
        if (
            user is None
            or not user.status
            or not _matches_class(user, admin)
            or user.telegram_id != payload.get("telegramId")
        ):
            raise UnauthorizedError()
        return user

    # ============== Lookups ==============

    def find_by_handle(self, telegram_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.telegram_id == telegram_id).first()

    def get_user(self, user_id: int) -> User:
        user = (
            self.db.query(User)
            .options(selectinload(User.group_links))
            .filter(User.id == user_id)
            .first()
        )
        if not user:
            raise NotFoundError("User not found")
        return user

    def _role(self, role_id: Optional[int] = None, name: Optional[str] = None) -> Role:
        query = self.db.query(Role)
        if role_id is not None:
            query = query.filter(Role.id == role_id)
        else:
            query = query.filter(Role.name == name)
        role = query.first()
        if not role:
            raise NotFoundError("Role not found")
        return role

    def _ensure_handle_free(self, telegram_id: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(User.id).filter(User.telegram_id == telegram_id)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError(DUPLICATE_HANDLE)

    def _resolve_groups(self, group_ids: Iterable[int]) -> List[int]:
        ids = sorted(set(group_ids))
        if not ids:
            return []
        found = {gid for (gid,) in self.db.query(Group.id).filter(Group.id.in_(ids)).all()}
        if len(found) != len(ids):
            raise NotFoundError("Group not found")
        return ids

    # ============== Accounts ==============

    def register_admin(self, *, name: str, telegram_id: str, password: str, status: bool = True) -> User:
        self._ensure_handle_free(telegram_id)

        admin = User(
            name=name,
            telegram_id=telegram_id,
            password_hash=get_password_hash(password),
            status=status,
        )
        admin.set_role(self._role(name="admin"))
        self.db.add(admin)
        self.db.commit()
        self.db.refresh(admin)

        logger.info("Admin %s registered", admin.id)
        return admin

    def update_profile(
        self,
        identity: User,
        *,
        name: Optional[str] = None,
        telegram_id: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        """Change the caller's own name, handle or password.

        A new handle invalidates tokens issued under the old one.
        """
        if name is not None:
            identity.name = name
        if telegram_id is not None and telegram_id != identity.telegram_id:
            self._ensure_handle_free(telegram_id, exclude_id=identity.id)
            identity.telegram_id = telegram_id
        if password:
            identity.password_hash = get_password_hash(password)

        self.db.commit()
        self.db.refresh(identity)
        return identity

    def create_user(
        self,
        *,
        name: str,
        telegram_id: str,
        password: str,
        status: bool = True,
        role_id: Optional[int] = None,
        group_id: Optional[int] = None,
        group_ids: Optional[Iterable[int]] = None,
    ) -> User:
        """Create an identity with its role and group memberships.

        Admin-class identities take any set of groups. Everyone else must
        belong to exactly one group.
        """
        self._ensure_handle_free(telegram_id)
        role = self._role(role_id=role_id) if role_id is not None else self._role(name=USER_CLASS_ROLE)

        requested = list(group_ids) if group_ids is not None else ([group_id] if group_id is not None else [])
        groups = self._resolve_groups(requested)
        self._check_group_count(role.name, groups)

        user = User(
            name=name,
            telegram_id=telegram_id,
            password_hash=get_password_hash(password),
            status=status,
        )
        user.set_role(role)
        user.group_links = [UserGroup(group_id=gid) for gid in groups]
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info("User %s created with role %s in groups %s", user.id, role.name, groups)
        return user

    def update_user(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        telegram_id: Optional[str] = None,
        password: Optional[str] = None,
        status: Optional[bool] = None,
        role_id: Optional[int] = None,
        group_id: Optional[int] = None,
        group_ids: Optional[Iterable[int]] = None,
    ) -> User:
        """Partial update. A group list replaces every existing membership."""
        user = self.get_user(user_id)

        if name is not None:
            user.name = name
        if telegram_id is not None and telegram_id != user.telegram_id:
            self._ensure_handle_free(telegram_id, exclude_id=user.id)
            user.telegram_id = telegram_id
        if password:
            user.password_hash = get_password_hash(password)
        if status is not None:
            user.status = status
        if role_id is not None and role_id != user.role_id:
            user.set_role(self._role(role_id=role_id))

        if group_ids is not None:
            groups = self._resolve_groups(group_ids)
        elif group_id is not None:
            groups = self._resolve_groups([group_id])
        else:
            groups = None

        self._check_group_count(user.role, groups if groups is not None else user.group_ids)

        if groups is not None:
            # Old rows go before the new ones are inserted, all in one commit
            self.db.query(UserGroup).filter(UserGroup.user_id == user.id).delete(
                synchronize_session=False
            )
            self.db.flush()
            self.db.expire(user, ["group_links"])
            self.db.add_all([UserGroup(user_id=user.id, group_id=gid) for gid in groups])

        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        if user.is_admin_class:
            raise BadRequestError("Admin accounts cannot be deleted")

        self.db.delete(user)
        self.db.commit()
        logger.info("User %s deleted", user_id)

    @staticmethod
    def _check_group_count(role_name: str, groups: List[int]) -> None:
        if role_name not in ADMIN_CLASS_ROLES and len(groups) != 1:
            raise BadRequestError(SINGLE_GROUP_REQUIRED)

    # ============== Search ==============

    def search_users(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        name: Optional[str] = None,
        telegram_id: Optional[str] = None,
        group_id: Optional[int] = None,
        status: Optional[bool] = None,
        role: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        """Paginated user search ordered by name.

        ``name`` and ``telegram_id`` are case-insensitive substrings; when both
        are given a match on either is enough.
        """
        query = self.db.query(User).options(selectinload(User.group_links))

        text_filters = []
        if name:
            text_filters.append(User.name.ilike(f"%{name}%"))
        if telegram_id:
            text_filters.append(User.telegram_id.ilike(f"%{telegram_id}%"))
        if text_filters:
            query = query.filter(or_(*text_filters))

        if group_id is not None:
            query = query.filter(
                User.id.in_(self.db.query(UserGroup.user_id).filter(UserGroup.group_id == group_id))
            )
        if status is not None:
            query = query.filter(User.status == status)
        if role:
            query = query.filter(User.role == role)

        query = query.order_by(User.name, User.id)
        return paginate(query, page, limit)

    def quick_search(self, term: str, limit: int = 20) -> List[User]:
        pattern = f"%{term}%"
        return (
            self.db.query(User)
            .filter(or_(User.name.ilike(pattern), User.telegram_id.ilike(pattern)))
            .order_by(User.name, User.id)
            .limit(limit)
            .all()
        )
