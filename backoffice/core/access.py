"""Document visibility and deletion rules.

These sit on top of the permission gate: a caller that holds
``document:read`` still only sees documents filed under one of its own groups
or one of their descendants. Admin-class identities see everything.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.core.groups import GroupHierarchy
from backoffice.db.models import Document, User, UserGroup


class DeleteDecision(str, Enum):
    """Outcome of a delete attempt on a document."""

    DIRECT = "direct"      # Delete now and remove the file
    REQUEST = "request"    # Owner: file a pending delete request
    DENIED = "denied"      # Neither admin nor owner


def member_group_ids(db: Session, identity: User) -> set[int]:
    rows = db.query(UserGroup.group_id).filter(UserGroup.user_id == identity.id).all()
    return {gid for (gid,) in rows}


def visible_group_ids(db: Session, identity: User) -> Optional[set[int]]:
    """Group ids whose documents the identity may read.

    Returns None for admin-class identities, meaning "no restriction".
    A user in a parent group reaches every descendant group, never the reverse.
    """
    if identity.is_admin_class:
        return None

    own_groups = member_group_ids(db, identity)
    if not own_groups:
        return set()
    return GroupHierarchy(db).descendants_of_many(own_groups)


def can_view_document(db: Session, identity: User, document: Document) -> bool:
    groups = visible_group_ids(db, identity)
    return groups is None or document.group_id in groups


def can_edit_document(identity: User, document: Document) -> bool:
    return identity.is_admin_class or document.uploader_id == identity.id


def deletion_decision(identity: User, document: Document) -> DeleteDecision:
    if identity.is_admin_class:
        return DeleteDecision.DIRECT
    if document.uploader_id == identity.id:
        return DeleteDecision.REQUEST
    return DeleteDecision.DENIED
