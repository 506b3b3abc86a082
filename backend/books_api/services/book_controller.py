"""
Books API — Book Resource Controller
=====================================

What:  Permission checks, CRUD handlers and response shaping for the Book
       resource under `/{namespace}/books`.
How:   Composes the entity registry, entity store, authorizer and content
       renderer it is constructed with. Constructed once by the app factory
       and shared by every request; it holds no per-request state.
Who:   Called by the route handlers in `routes/books.py`.

Request Flow (per route):
    ┌──────────┐   ┌──────────────┐   ┌──────────────┐   ┌──────────┐   ┌─────────┐
    │  Route   │──▶│ Validate args│──▶│  Permission  │──▶│ Handler  │──▶│  Shape  │
    │  match   │   │ (descriptors)│   │  check_*()   │   │ (store)  │   │ entity  │
    └──────────┘   └──────────────┘   └──────────────┘   └──────────┘   └─────────┘

Permission model:
    List    always permitted
    Create  can_publish(principal)
    Get     entity exists and is a Book (else 404); anyone may read
    Update  entity exists and is a Book (else 404), then can_edit
    Delete  entity exists and is a Book (else 404), then can_delete

    Existence is checked before capabilities, so an unknown id is a 404 for
    every caller.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from books_api.config import Settings
from books_api.exceptions import AuthorizationError, NotFoundError, OperationError, ValidationError
from books_api.models.document import Document
from books_api.schemas.book import (
    BookData,
    BookResponse,
    CollectionParams,
    DeleteResponse,
    EndpointDescription,
    Link,
    RouteDescription,
)
from books_api.schemas.descriptor import (
    CREATABLE,
    DELETABLE,
    DELETE_ARGS,
    EDITABLE,
    READABLE,
    collection_params_schema,
    describe_args,
    endpoint_args_for_item_schema,
    public_item_schema,
    validate_write_args,
)
from books_api.services.authorization import Authorizer, Principal
from books_api.services.content import ContentRenderer, render_title
from books_api.services.entity_store import EntityStore, QueryFilters
from books_api.services.registry import BOOK_TYPE, EntityRegistry, EntityType
from books_api.services.sanitize import kses_post, sanitize_key, sanitize_text_field

logger = logging.getLogger(__name__)


@dataclass
class BookPage:
    """One page of shaped books plus the pagination totals."""

    items: List[BookResponse]
    total: int
    total_pages: int
    page: int
    per_page: int


class BookController:
    """Resource controller for Books."""

    def __init__(
        self,
        settings: Settings,
        registry: EntityRegistry,
        store: EntityStore,
        authorizer: Authorizer,
        renderer: ContentRenderer,
        entity_type: str = BOOK_TYPE,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.store = store
        self.authorizer = authorizer
        self.renderer = renderer
        self.entity_type: EntityType = registry.get(entity_type)
        self.namespace = settings.api_namespace
        self.rest_base = self.entity_type.rest_base or self.entity_type.name

    @property
    def base_route(self) -> str:
        """"hussainas/v1/books" """
        return f"{self.namespace}/{self.rest_base}"

    def item_url(self, entity_id: int) -> str:
        return self.settings.rest_url(f"{self.base_route}/{entity_id}")

    def collection_url(self) -> str:
        return self.settings.rest_url(self.base_route)

    # ══════════════════════════════════════════════════════════════════════
    # Argument validation
    # ══════════════════════════════════════════════════════════════════════

    def validate_create_args(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return validate_write_args(payload, CREATABLE)

    def validate_update_args(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return validate_write_args(payload, EDITABLE)

    # ══════════════════════════════════════════════════════════════════════
    # Permission checks
    # ══════════════════════════════════════════════════════════════════════

    def check_list_permission(self, principal: Principal) -> None:
        """Anyone may list books."""
        return None

    def check_create_permission(self, principal: Principal) -> None:
        if not self.authorizer.can_publish(principal):
            logger.info("User %s denied create on %s", principal.user_id, self.entity_type.name)
            raise AuthorizationError(
                message="Sorry, you are not allowed to create books.",
                code="rest_cannot_create",
            )

    async def check_get_permission(
        self, db: AsyncSession, principal: Principal, entity_id: int
    ) -> Document:
        return await self._get_entity(db, entity_id)

    async def check_update_permission(
        self, db: AsyncSession, principal: Principal, entity_id: int
    ) -> Document:
        entity = await self._get_entity(db, entity_id)
        if not self.authorizer.can_edit(principal, entity):
            logger.info("User %s denied edit on book %s", principal.user_id, entity_id)
            raise AuthorizationError(
                message="Sorry, you are not allowed to edit this book.",
                code="rest_cannot_edit",
            )
        return entity

    async def check_delete_permission(
        self, db: AsyncSession, principal: Principal, entity_id: int
    ) -> Document:
        entity = await self._get_entity(db, entity_id)
        if not self.authorizer.can_delete(principal, entity):
            logger.info("User %s denied delete on book %s", principal.user_id, entity_id)
            raise AuthorizationError(
                message="Sorry, you are not allowed to delete this book.",
                code="rest_cannot_delete",
            )
        return entity

    async def _get_entity(self, db: AsyncSession, entity_id: int) -> Document:
        entity = await self.store.find(db, entity_id)
        if entity is None or entity.entity_type != self.entity_type.name:
            raise NotFoundError(resource=self.entity_type.label, resource_id=entity_id)
        return entity

    # ══════════════════════════════════════════════════════════════════════
    # Handlers
    # ══════════════════════════════════════════════════════════════════════

    async def list_books(
        self, db: AsyncSession, principal: Principal, params: CollectionParams
    ) -> BookPage:
        statuses = {"publish"}
        if self.authorizer.can_read_private(principal):
            statuses.add("private")

        filters = QueryFilters(
            search=sanitize_text_field(params.search) or None,
            statuses=frozenset(statuses),
        )
        documents, total = await self.store.query(
            db,
            self.entity_type.name,
            filters,
            orderby=params.orderby,
            order=params.order,
            page=params.page,
            page_size=params.per_page,
        )
        total_pages = math.ceil(total / params.per_page) if total else 0

        logger.debug(
            "Listed books page=%d per_page=%d total=%d", params.page, params.per_page, total
        )
        return BookPage(
            items=[self.prepare_item(doc) for doc in documents],
            total=total,
            total_pages=total_pages,
            page=params.page,
            per_page=params.per_page,
        )

    async def get_book(self, db: AsyncSession, entity_id: int) -> BookResponse:
        # The entity may have changed since the permission check fetched it
        entity = await self._get_entity(db, entity_id)
        return self.prepare_item(entity)

    async def create_book(
        self, db: AsyncSession, principal: Principal, args: Mapping[str, Any]
    ) -> BookResponse:
        title = sanitize_text_field(args.get("title"))
        if not title:
            raise ValidationError(
                message="Title is required.",
                field="title",
                code="rest_missing_title",
            )

        entity_id = await self.store.insert(
            db,
            self.entity_type.name,
            {
                "title": title,
                "content": kses_post(args.get("content")),
                "status": "publish",
                "author_id": principal.user_id,
            },
        )
        entity = await self.store.find(db, entity_id)
        if entity is None:
            raise OperationError(
                message="The book could not be created.",
                code="rest_insert_failed",
                context={"entity_id": entity_id},
            )
        logger.info("User %s created book %s", principal.user_id, entity_id)
        return self.prepare_item(entity)

    async def update_book(
        self,
        db: AsyncSession,
        principal: Principal,
        entity_id: int,
        args: Mapping[str, Any],
    ) -> BookResponse:
        await self._get_entity(db, entity_id)

        changes: Dict[str, Any] = {}
        if "title" in args:
            changes["title"] = sanitize_text_field(args["title"])
            if not changes["title"]:
                raise ValidationError(
                    message="Title cannot be empty.",
                    field="title",
                    code="rest_invalid_param",
                )
        if "content" in args:
            changes["content"] = kses_post(args["content"])
        if "status" in args:
            changes["status"] = sanitize_key(args["status"]) or "draft"

        await self.store.update(db, entity_id, changes, editor_id=principal.user_id)

        entity = await self._get_entity(db, entity_id)
        logger.info("User %s updated book %s (%s)", principal.user_id, entity_id, sorted(changes))
        return self.prepare_item(entity)

    async def delete_book(self, db: AsyncSession, entity_id: int, force: bool = False) -> DeleteResponse:
        entity = await self._get_entity(db, entity_id)
        previous = BookData(**self.prepare_item(entity).model_dump(exclude={"links"}))

        deleted = await self.store.delete(db, entity_id, force=force)
        if not deleted:
            raise OperationError(
                message="Failed to delete the book.",
                code="rest_delete_failed",
                context={"entity_id": entity_id, "force": force},
            )

        logger.info("Book %s %s", entity_id, "deleted" if force else "trashed")
        return DeleteResponse(deleted=True, previous=previous)

    # ══════════════════════════════════════════════════════════════════════
    # Response shaping
    # ══════════════════════════════════════════════════════════════════════

    def prepare_item(self, entity: Document) -> BookResponse:
        return BookResponse(
            id=entity.id,
            date=self.format_date(entity.created_at),
            slug=entity.slug,
            status=entity.status,
            title=render_title(entity.title, entity.status),
            content=self.renderer.render(entity.content),
            author=int(entity.author_id),
            links=self.prepare_links(entity),
        )

    def prepare_links(self, entity: Document) -> Dict[str, List[Link]]:
        return {
            "self": [Link(href=self.item_url(entity.id))],
            "collection": [Link(href=self.collection_url())],
            "author": [
                Link(href=self.settings.rest_url(f"{self.settings.users_rest_base}/{entity.author_id}"))
            ],
        }

    @staticmethod
    def format_date(value: Optional[datetime]) -> str:
        """UTC timestamp as "YYYY-MM-DDTHH:MM:SS"; naive values are taken as UTC."""
        if value is None:
            return ""
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="seconds")

    def pagination_links(self, params: CollectionParams, total_pages: int) -> Optional[str]:
        """RFC 8288 Link header value with prev/next relations, if any."""
        query = params.model_dump(exclude_none=True)
        links = []
        if params.page > 1 and total_pages:
            prev_page = min(params.page - 1, total_pages)
            links.append(f'<{self._page_url(query, prev_page)}>; rel="prev"')
        if params.page < total_pages:
            links.append(f'<{self._page_url(query, params.page + 1)}>; rel="next"')
        return ", ".join(links) or None

    def _page_url(self, query: Dict[str, Any], page: int) -> str:
        return f"{self.collection_url()}?{urlencode({**query, 'page': page})}"

    # ══════════════════════════════════════════════════════════════════════
    # Route description (OPTIONS)
    # ══════════════════════════════════════════════════════════════════════

    def item_schema(self) -> Dict[str, Any]:
        return public_item_schema(title=self.entity_type.name)

    def describe_collection(self) -> RouteDescription:
        endpoints = [
            EndpointDescription(methods=[READABLE], args=collection_params_schema()),
            EndpointDescription(
                methods=[CREATABLE],
                args=describe_args(endpoint_args_for_item_schema(CREATABLE)),
            ),
        ]
        return self._describe(endpoints)

    def describe_item(self) -> RouteDescription:
        id_arg = {"id": {"description": "Unique identifier for the book.", "type": "integer"}}
        endpoints = [
            EndpointDescription(methods=[READABLE], args=id_arg),
            EndpointDescription(
                methods=["PUT", "PATCH"],
                args={**id_arg, **describe_args(endpoint_args_for_item_schema(EDITABLE))},
            ),
            EndpointDescription(methods=[DELETABLE], args={**id_arg, **DELETE_ARGS}),
        ]
        return self._describe(endpoints)

    def _describe(self, endpoints: List[EndpointDescription]) -> RouteDescription:
        methods: List[str] = []
        for endpoint in endpoints:
            methods.extend(m for m in endpoint.methods if m not in methods)
        return RouteDescription(
            namespace=self.namespace,
            methods=methods,
            endpoints=endpoints,
            schema=self.item_schema(),
        )
