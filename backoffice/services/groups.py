"""Group CRUD on top of the hierarchy resolver."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from backoffice.core.exceptions import BadRequestError, ConflictError, NotFoundError
from backoffice.core.groups import ROOT_SENTINEL, GroupHierarchy
from backoffice.db.models import Document, Group

logger = logging.getLogger(__name__)

_UNSET = object()


class GroupService:
    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.hierarchy = GroupHierarchy(db, max_depth=max_depth)

    def list(self) -> List[Group]:
        return self.db.query(Group).order_by(Group.name, Group.id).all()

    def get(self, group_id: int) -> Group:
        group = self.db.get(Group, group_id)
        if not group:
            raise NotFoundError("Group not found")
        return group

    def subgroups(self, parent_id: int) -> List[Group]:
        """Direct children; ``0`` asks for the roots."""
        if parent_id != ROOT_SENTINEL:
            self.get(parent_id)
        return self.hierarchy.children_of(parent_id)

    def descendants(self, group_id: int) -> List[Group]:
        self.get(group_id)
        ids = self.hierarchy.descendants_of(group_id)
        return self.db.query(Group).filter(Group.id.in_(ids)).order_by(Group.name).all()

    def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(Group.id).filter(Group.name == name)
        if exclude_id is not None:
            query = query.filter(Group.id != exclude_id)
        if query.first():
            raise ConflictError("Group with this name already exists")

    def _check_parent(self, parent_id: Optional[int], subtree_height: int = 0) -> Optional[int]:
        """Validate a parent for a node carrying ``subtree_height`` levels below it."""
        if parent_id is None or parent_id == ROOT_SENTINEL:
            return None
        self.get(parent_id)
        if self.hierarchy.depth_of(parent_id) + 1 + subtree_height >= self.hierarchy.max_depth:
            raise BadRequestError("Group hierarchy is too deep")
        return parent_id

    def create(self, *, name: str, parent_id: Optional[int] = None) -> Group:
        self._ensure_name_free(name)
        group = Group(name=name, parent_id=self._check_parent(parent_id))
        self.db.add(group)
        self.db.commit()
        self.db.refresh(group)

        logger.info("Group %s created under %s", group.id, group.parent_id)
        return group

    def update(self, group_id: int, *, name: Optional[str] = None, parent_id=_UNSET) -> Group:
        """Rename and/or re-parent a group. ``parent_id=None`` (or 0) makes it a root."""
        group = self.get(group_id)

        if name is not None and name != group.name:
            self._ensure_name_free(name, exclude_id=group.id)
            group.name = name

        if parent_id is not _UNSET:
            target = None if parent_id in (None, ROOT_SENTINEL) else parent_id
            if target == group.id:
                raise BadRequestError("A group cannot be its own parent")
            if self.hierarchy.would_create_cycle(group.id, target):
                raise BadRequestError("A group cannot be moved under one of its descendants")
            group.parent_id = self._check_parent(target, self.hierarchy.height_of(group.id))

        self.db.commit()
        self.db.refresh(group)
        return group

    def delete(self, group_id: int) -> None:
        """Delete an empty leaf group. Memberships go with it."""
        group = self.get(group_id)

        if self.db.query(Group.id).filter(Group.parent_id == group.id).first():
            raise ConflictError("Group has subgroups and cannot be deleted")
        if self.db.query(Document.id).filter(Document.group_id == group.id).first():
            raise ConflictError("Group has documents and cannot be deleted")

        self.db.delete(group)
        self.db.commit()
        logger.info("Group %s deleted", group_id)
