from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from backoffice.db.base import Base


class Document(Base):
    """An uploaded file filed under exactly one group.

    ``uploader_name``, ``uploader_tg_id`` and ``group_name`` are snapshots taken
    at upload time and are not kept in sync with later renames.
    """

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    uploader_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    file_path = Column(String(512), nullable=False)
    uploader_name = Column(String(255))
    uploader_tg_id = Column(String(255))
    group_name = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    group = relationship("Group")
    uploader = relationship("User")
    delete_requests = relationship("DeleteRequest", back_populates="document")


class DeleteRequest(Base):
    """A document owner's request for an admin to delete their document."""

    __tablename__ = "delete_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id", ondelete="SET NULL"), nullable=True, index=True)
    document_title = Column(String(255))
    requester_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # At most one pending request per (document, requester)
        Index(
            "uq_delete_requests_pending",
            "document_id",
            "requester_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    document = relationship("Document", back_populates="delete_requests")
    requester = relationship("User", foreign_keys=[requester_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])
