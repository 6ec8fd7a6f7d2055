"""Database seeding for the back office.

Creates the default roles, the permission catalogue, the default grants and,
optionally, a bootstrap admin account. Every step is idempotent.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.core.rbac.permissions import PERMISSION_DEFINITIONS
from backoffice.core.rbac.roles import DEFAULT_ROLES
from backoffice.core.security import get_password_hash
from backoffice.db.models import Permission, Role, RolePermission, User

logger = logging.getLogger(__name__)


def seed_permissions(db: Session) -> dict[str, Permission]:
    """Create every catalogue permission that is missing."""
    existing = {p.name: p for p in db.query(Permission).all()}

    for name, perm in sorted(PERMISSION_DEFINITIONS.items()):
        if name in existing:
            continue
        permission = Permission(
            name=name,
            description=f"{perm.action.value.capitalize()} {perm.resource.value}",
        )
        db.add(permission)
        existing[name] = permission

    db.flush()
    return existing


def seed_default_roles(db: Session, permissions: Optional[dict[str, Permission]] = None) -> dict[str, Role]:
    """
    Create the default roles and grant their default permissions.

    Existing roles are left untouched so operator edits to their grants
    survive a re-run. Only roles created here receive the default set.

    Returns:
        Dict mapping role key to Role object
    """
    if permissions is None:
        permissions = seed_permissions(db)

    roles = {}
    for role_key, role_config in DEFAULT_ROLES.items():
        role = db.query(Role).filter(Role.name == role_config["name"]).first()
        if role:
            roles[role_key] = role
            continue

        role = Role(name=role_config["name"], description=role_config["description"])
        db.add(role)
        db.flush()

        for perm_name in role_config["permissions"]:
            db.add(RolePermission(role_id=role.id, permission_id=permissions[perm_name].id))
        roles[role_key] = role

    db.flush()
    return roles


def seed_bootstrap_admin(
    db: Session,
    *,
    name: str,
    telegram_id: str,
    password: str,
) -> User:
    """Create the first admin account unless the handle is already taken."""
    existing = db.query(User).filter(User.telegram_id == telegram_id).first()
    if existing:
        return existing

    role = db.query(Role).filter(Role.name == "admin").first()
    if role is None:
        role = seed_default_roles(db)["admin"]

    admin = User(name=name, telegram_id=telegram_id, password_hash=get_password_hash(password))
    admin.set_role(role)
    db.add(admin)
    db.flush()
    return admin


def seed_all(db: Session, *, with_admin: bool = True) -> None:
    """Seed roles, permissions and grants, then the bootstrap admin."""
    from backoffice.core.config import get_settings

    settings = get_settings()
    permissions = seed_permissions(db)
    roles = seed_default_roles(db, permissions)
    logger.info("Seeded %d permissions and %d roles", len(permissions), len(roles))

    if with_admin:
        admin = seed_bootstrap_admin(
            db,
            name=settings.bootstrap_admin_name,
            telegram_id=settings.bootstrap_admin_telegram_id,
            password=settings.bootstrap_admin_password,
        )
        logger.info("Bootstrap admin: %s (ID: %s)", admin.telegram_id, admin.id)

    db.commit()


# CLI script for seeding
if __name__ == "__main__":
    import sys

    from backoffice.core.config import get_settings
    from backoffice.core.logger import configure_logging
    from backoffice.db.base import Base
    from backoffice.db.session import SessionLocal, engine

    configure_logging(get_settings())
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_all(db)
        logger.info("Seeding complete")
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        sys.exit(1)
    finally:
        db.close()
