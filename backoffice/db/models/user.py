from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from backoffice.db.base import Base

ADMIN_CLASS_ROLES = frozenset({"admin", "director"})
USER_CLASS_ROLE = "user"


class User(Base):
    """An identity record. Admin-class and user-class identities share this table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    telegram_id = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    # Denormalised label of role_id; written only through set_role()
    role = Column(String(100), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    status = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    assigned_role = relationship("Role", back_populates="users")
    group_links = relationship("UserGroup", back_populates="user", cascade="all, delete-orphan")
    task_assignments = relationship("TaskAssignment", back_populates="user", cascade="all, delete-orphan")
    inbox = relationship("UserNotification", back_populates="user", cascade="all, delete-orphan")

    def set_role(self, role) -> None:
        """Point the identity at ``role`` and keep the label in step with it."""
        self.assigned_role = role
        self.role_id = role.id
        self.role = role.name

    @property
    def is_admin_class(self) -> bool:
        return self.role in ADMIN_CLASS_ROLES

    @property
    def is_director(self) -> bool:
        return self.role == "director"

    @property
    def group_ids(self) -> list[int]:
        return sorted(link.group_id for link in self.group_links)
