"""
Books API — Document SQLAlchemy Models
=======================================

What:  ORM models for the generic typed-document store (`documents`) and
       its revision history (`document_revisions`).
How:   Inherit from the shared DeclarativeBase; Alembic reads these for
       migrations.
Who:   Used by EntityStore for CRUD operations.

Table Design:
    - Integer primary key assigned by the database on insert
    - entity_type: every document belongs to exactly one registered type
      ("hussainas_book" for books); the controller refuses documents of
      other types
    - slug: unique per entity type, derived from the title at insert time
    - trashed_from_status: the status to reinstate when a trashed document
      is restored; NULL unless status == 'trash'
    - created_at / modified_at: UTC, timezone-aware

    Index on (entity_type, created_at) serves the default collection query
    (newest books first).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from books_api.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """
    A stored document of some registered entity type.

    Lifecycle:
        1. Inserted by EntityStore.insert (status usually 'publish')
        2. Partially updated by EntityStore.update (id and author never change)
        3. Trashed (status='trash', previous status remembered) or
           permanently deleted by EntityStore.delete
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Store-assigned identifier",
    )

    entity_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Registered entity type name, e.g. hussainas_book",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Plain-text title (sanitized on write)",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Rich-text body (allow-list sanitized on write)",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        comment="Key-safe status token: publish, draft, private, trash, ...",
    )

    trashed_from_status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        default=None,
        comment="Status before trashing; reinstated on restore",
    )

    author_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Identifier of the creating user (immutable)",
    )

    slug: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
        comment="URL-safe name derived from the title",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the document was created (UTC)",
    )

    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the document was last updated (UTC)",
    )

    __table_args__ = (
        Index("idx_documents_type_created_at", "entity_type", "created_at"),
        Index("idx_documents_type_slug", "entity_type", "slug"),
        # ids are never reused after a permanent delete
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Document(id={self.id}, type='{self.entity_type}', "
            f"status='{self.status}', slug='{self.slug}')>"
        )


class DocumentRevision(Base):
    """
    Snapshot of a document's title and content taken before an update.

    Only recorded for entity types that declare the 'revisions' feature.
    """

    __tablename__ = "document_revisions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    document_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    author_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="User whose update produced this revision",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_revisions_document", "document_id"),
    )

    def __repr__(self) -> str:
        return f"<DocumentRevision(id={self.id}, document_id={self.document_id})>"
