"""
Books API — Entity Store
=========================

What:  Create/read/update/delete of generic typed documents.
How:   Async SQLAlchemy over the `documents` table. Every method receives the
       request's AsyncSession; the session dependency commits or rolls back.
Who:   Consumed by BookController. Knows nothing about HTTP or permissions.

Interface:
    find(db, id)                                   → Document | None
    query(db, type, filters, orderby, order,
          page, page_size)                         → (documents, total)
    insert(db, type, fields)                       → id
    update(db, id, fields, editor_id)              → id
    delete(db, id, force)                          → bool
    restore(db, id)                                → bool
    revisions(db, id)                              → [DocumentRevision]

Error Handling:
    SQLAlchemy failures are logged and re-raised as OperationError
    (code `rest_db_error`) with a generic message; the original error type
    is kept in the context for logs only.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Set, Tuple

from sqlalchemy import and_, asc, delete, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from books_api.exceptions import OperationError
from books_api.models.document import Document, DocumentRevision, utcnow
from books_api.services.registry import EntityRegistry
from books_api.services.sanitize import sanitize_title

logger = logging.getLogger(__name__)

# Request-level orderby value → sortable column
ORDERABLE_COLUMNS = {
    "date": Document.created_at,
    "id": Document.id,
    "title": Document.title,
    "slug": Document.slug,
}

WRITABLE_FIELDS: FrozenSet[str] = frozenset({"title", "content", "status", "author_id"})


@dataclass(frozen=True)
class QueryFilters:
    """Collection filters understood by EntityStore.query."""

    search: Optional[str] = None
    statuses: Optional[FrozenSet[str]] = None
    exclude_statuses: FrozenSet[str] = field(default_factory=lambda: frozenset({"trash"}))


def _db_failure(operation: str, exc: Exception, **context: Any) -> OperationError:
    logger.error("Database error during %s: %s", operation, str(exc), exc_info=True)
    return OperationError(
        message="A database error occurred. Please try again later.",
        code="rest_db_error",
        context={"operation": operation, "error_type": type(exc).__name__, **context},
    )


class EntityStore:
    """Typed-document store backed by SQLAlchemy."""

    def __init__(self, registry: EntityRegistry) -> None:
        self.registry = registry

    # ── Reads ─────────────────────────────────────────────────────────────

    async def find(self, db: AsyncSession, entity_id: int) -> Optional[Document]:
        try:
            return await db.get(Document, entity_id)
        except SQLAlchemyError as e:
            raise _db_failure("find", e, entity_id=entity_id)

    async def query(
        self,
        db: AsyncSession,
        entity_type: str,
        filters: QueryFilters,
        orderby: str = "date",
        order: str = "desc",
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Document], int]:
        """
        One page of documents of `entity_type` plus the total match count.

        Ties on the ordering column are broken by id in the same direction,
        so paging through a stable data set visits every row exactly once.
        """
        conditions = [Document.entity_type == entity_type]
        if filters.statuses is not None:
            conditions.append(Document.status.in_(sorted(filters.statuses)))
        if filters.exclude_statuses:
            conditions.append(Document.status.notin_(sorted(filters.exclude_statuses)))
        if filters.search:
            conditions.extend(self._search_conditions(filters.search))
        where = and_(*conditions)

        column = ORDERABLE_COLUMNS.get(orderby, Document.created_at)
        direction = asc if order == "asc" else desc
        ordering = [direction(column)]
        if column is not Document.id:
            ordering.append(direction(Document.id))

        statement = (
            select(Document)
            .where(where)
            .order_by(*ordering)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_statement = select(func.count(Document.id)).where(where)

        try:
            result = await db.execute(statement)
            documents = list(result.scalars().all())
            count_result = await db.execute(count_statement)
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            raise _db_failure("query", e, entity_type=entity_type)

        return documents, total

    @staticmethod
    def _search_conditions(search: str) -> List[Any]:
        """Every whitespace-separated term must occur in title or content."""
        conditions = []
        for term in search.split():
            needle = term.lower()
            conditions.append(
                or_(
                    func.lower(Document.title).contains(needle, autoescape=True),
                    func.lower(Document.content).contains(needle, autoescape=True),
                )
            )
        return conditions

    async def revisions(self, db: AsyncSession, entity_id: int) -> List[DocumentRevision]:
        statement = (
            select(DocumentRevision)
            .where(DocumentRevision.document_id == entity_id)
            .order_by(desc(DocumentRevision.id))
        )
        try:
            result = await db.execute(statement)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _db_failure("revisions", e, entity_id=entity_id)

    # ── Writes ────────────────────────────────────────────────────────────

    async def insert(self, db: AsyncSession, entity_type: str, fields: Mapping[str, Any]) -> int:
        """
        Stores a new document and returns its identifier.

        `fields` may hold title, content, status and author_id; anything else
        is ignored. The slug is derived from the title and made unique within
        the entity type; an empty slug falls back to the identifier.
        """
        values = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
        now = utcnow()
        document = Document(
            entity_type=entity_type,
            title=values.get("title") or "",
            content=values.get("content") or "",
            status=values.get("status") or "draft",
            author_id=values.get("author_id") or 0,
            created_at=now,
            modified_at=now,
        )
        try:
            document.slug = await self._unique_slug(db, entity_type, sanitize_title(document.title))
            db.add(document)
            await db.flush()  # Assigns the id without committing
            if not document.slug:
                document.slug = str(document.id)
                await db.flush()
        except SQLAlchemyError as e:
            raise _db_failure("insert", e, entity_type=entity_type)

        logger.info("Inserted %s %s (slug=%s)", entity_type, document.id, document.slug)
        return document.id

    async def update(
        self,
        db: AsyncSession,
        entity_id: int,
        fields: Mapping[str, Any],
        editor_id: int = 0,
    ) -> int:
        """
        Applies a partial update. Only title, content and status are
        writable; id, author and created_at never change.
        """
        document = await self.find(db, entity_id)
        if document is None:
            raise OperationError(
                message="Invalid post ID.",
                code="invalid_post",
                context={"entity_id": entity_id},
            )

        changes: Dict[str, Any] = {
            k: v for k, v in fields.items() if k in ("title", "content", "status")
        }
        try:
            if self._records_revision(document, changes):
                db.add(DocumentRevision(
                    document_id=document.id,
                    title=document.title,
                    content=document.content,
                    author_id=editor_id,
                    created_at=utcnow(),
                ))

            for name, value in changes.items():
                setattr(document, name, value)
            if changes.get("status") and changes["status"] != "trash":
                document.trashed_from_status = None
            document.modified_at = utcnow()
            await db.flush()
        except SQLAlchemyError as e:
            raise _db_failure("update", e, entity_id=entity_id)

        logger.info("Updated %s %s (fields=%s)", document.entity_type, entity_id, sorted(changes))
        return document.id

    async def delete(self, db: AsyncSession, entity_id: int, force: bool = False) -> bool:
        """
        Trashes (force=False) or permanently removes (force=True) a document.

        Returns False when there is nothing to do: the document is gone, or
        a soft delete targets an already trashed document.
        """
        document = await self.find(db, entity_id)
        if document is None:
            return False
        entity_type = document.entity_type

        try:
            if not force:
                if document.status == "trash":
                    return False
                document.trashed_from_status = document.status
                document.status = "trash"
                document.modified_at = utcnow()
                await db.flush()
                logger.info("Trashed %s %s", entity_type, entity_id)
                return True

            await db.execute(
                delete(DocumentRevision).where(DocumentRevision.document_id == entity_id)
            )
            await db.delete(document)
            await db.flush()
        except SQLAlchemyError as e:
            raise _db_failure("delete", e, entity_id=entity_id)

        logger.info("Permanently deleted %s %s", entity_type, entity_id)
        return True

    async def restore(self, db: AsyncSession, entity_id: int) -> bool:
        """Takes a document out of the trash, reinstating its previous status."""
        document = await self.find(db, entity_id)
        if document is None or document.status != "trash":
            return False
        try:
            document.status = document.trashed_from_status or "draft"
            document.trashed_from_status = None
            document.modified_at = utcnow()
            await db.flush()
        except SQLAlchemyError as e:
            raise _db_failure("restore", e, entity_id=entity_id)
        logger.info("Restored %s %s to '%s'", document.entity_type, entity_id, document.status)
        return True

    # ── Helpers ───────────────────────────────────────────────────────────

    def _records_revision(self, document: Document, changes: Mapping[str, Any]) -> bool:
        if not self.registry.supports(document.entity_type, "revisions"):
            return False
        return any(
            name in changes and changes[name] != getattr(document, name)
            for name in ("title", "content")
        )

    async def _unique_slug(self, db: AsyncSession, entity_type: str, slug: str) -> str:
        """"dune" → "dune-2" when "dune" is taken, "dune-3" after that, ..."""
        if not slug:
            return ""
        result = await db.execute(
            select(Document.slug).where(
                Document.entity_type == entity_type,
                or_(Document.slug == slug, Document.slug.startswith(f"{slug}-", autoescape=True)),
            )
        )
        taken: Set[str] = set(result.scalars().all())
        if slug not in taken:
            return slug
        suffix = 2
        while f"{slug}-{suffix}" in taken:
            suffix += 1
        return f"{slug}-{suffix}"
