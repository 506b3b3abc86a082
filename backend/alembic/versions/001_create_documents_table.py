"""Create documents and document_revisions tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the typed-document store and its revision history.
       See books_api/models/document.py for column documentation.

Rollback: downgrade() drops both tables (all books are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False,
                  comment="Store-assigned identifier"),
        sa.Column("entity_type", sa.String(20), nullable=False,
                  comment="Registered entity type name, e.g. hussainas_book"),
        sa.Column("title", sa.Text(), nullable=False, server_default=sa.text("''"),
                  comment="Plain-text title (sanitized on write)"),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''"),
                  comment="Rich-text body (allow-list sanitized on write)"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft",
                  comment="Key-safe status token: publish, draft, private, trash, ..."),
        sa.Column("trashed_from_status", sa.String(20), nullable=True,
                  comment="Status before trashing; reinstated on restore"),
        sa.Column("author_id", sa.Integer(), nullable=False, server_default="0",
                  comment="Identifier of the creating user (immutable)"),
        sa.Column("slug", sa.String(200), nullable=False, server_default=sa.text("''"),
                  comment="URL-safe name derived from the title"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP"),
                  comment="When the document was created (UTC)"),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP"),
                  comment="When the document was last updated (UTC)"),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
        sqlite_autoincrement=True,
    )
    op.create_index("idx_documents_type_created_at", "documents", ["entity_type", "created_at"])
    op.create_index("idx_documents_type_slug", "documents", ["entity_type", "slug"])

    op.create_table(
        "document_revisions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("document_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("author_id", sa.Integer(), nullable=False, server_default="0",
                  comment="User whose update produced this revision"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_document_revisions"),
        sa.ForeignKeyConstraint(
            ["document_id"], ["documents.id"],
            name="fk_document_revisions_document", ondelete="CASCADE",
        ),
    )
    op.create_index("idx_revisions_document", "document_revisions", ["document_id"])


def downgrade() -> None:
    op.drop_index("idx_revisions_document", table_name="document_revisions")
    op.drop_table("document_revisions")
    op.drop_index("idx_documents_type_slug", table_name="documents")
    op.drop_index("idx_documents_type_created_at", table_name="documents")
    op.drop_table("documents")
