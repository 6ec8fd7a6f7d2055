"""Group hierarchy resolver.

Read operations over the self-referencing group tree. Traversals keep a
visited set and stop at ``max_depth`` levels, so they terminate even if the
stored parent links were ever to form a cycle.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from backoffice.core.config import get_settings
from backoffice.db.models import Group

logger = logging.getLogger(__name__)

# Path parameter used by clients to ask for root groups
ROOT_SENTINEL = 0


class GroupHierarchy:
    """Queries over the parent-id edges of the group table."""

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.max_depth = max_depth if max_depth is not None else get_settings().max_group_depth

    def children_of(self, parent_id: Optional[int]) -> list[Group]:
        """Direct children of ``parent_id``; roots when it is None or 0."""
        query = self.db.query(Group)
        if parent_id is None or parent_id == ROOT_SENTINEL:
            query = query.filter(Group.parent_id.is_(None))
        else:
            query = query.filter(Group.parent_id == parent_id)
        return query.order_by(Group.name).all()

    def descendants_of(self, group_id: int) -> set[int]:
        """The group itself plus every transitive child."""
        return self.descendants_of_many([group_id])

    def descendants_of_many(self, group_ids: Iterable[int]) -> set[int]:
        start = set(group_ids)
        visited = set(start)
        frontier = set(start)
        depth = 0

        while frontier:
            if depth >= self.max_depth:
                logger.warning(
                    "Group traversal stopped at depth %d from %s", depth, sorted(start)
                )
                break
            rows = self.db.query(Group.id).filter(Group.parent_id.in_(frontier)).all()
            frontier = {gid for (gid,) in rows} - visited
            visited |= frontier
            depth += 1

        return visited

    def ancestors_of(self, group_id: int) -> list[int]:
        """Parent chain from the immediate parent up to the root."""
        chain: list[int] = []
        seen = {group_id}
        current = self.db.get(Group, group_id)

        while current is not None and current.parent_id is not None:
            if current.parent_id in seen or len(chain) >= self.max_depth:
                break
            chain.append(current.parent_id)
            seen.add(current.parent_id)
            current = self.db.get(Group, current.parent_id)

        return chain

    def would_create_cycle(self, group_id: int, new_parent_id: Optional[int]) -> bool:
        """True when re-parenting ``group_id`` under ``new_parent_id`` closes a loop."""
        if new_parent_id is None:
            return False
        if new_parent_id == group_id:
            return True
        return group_id in self.ancestors_of(new_parent_id)

    def depth_of(self, group_id: int) -> int:
        return len(self.ancestors_of(group_id))

    def height_of(self, group_id: int) -> int:
        """Levels below ``group_id``; 0 for a leaf. Capped at ``max_depth``."""
        visited = {group_id}
        frontier = {group_id}
        height = 0

        while height < self.max_depth:
            rows = self.db.query(Group.id).filter(Group.parent_id.in_(frontier)).all()
            frontier = {gid for (gid,) in rows} - visited
            if not frontier:
                break
            visited |= frontier
            height += 1

        return height

    def tree(self) -> list[dict]:
        """Every group reachable from the roots with its level, ordered by level then name."""
        groups = self.db.query(Group).all()
        by_parent: dict[Optional[int], list[Group]] = {}
        for group in groups:
            by_parent.setdefault(group.parent_id, []).append(group)

        result = []
        level_nodes = by_parent.get(None, [])
        level = 0
        while level_nodes and level < self.max_depth:
            for group in sorted(level_nodes, key=lambda g: g.name):
                result.append({
                    "id": group.id,
                    "name": group.name,
                    "parentId": group.parent_id,
                    "level": level,
                })
            level_nodes = [
                child for group in level_nodes for child in by_parent.get(group.id, [])
            ]
            level += 1

        return result
