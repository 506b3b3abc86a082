"""
Books API — Pydantic Request/Response Schemas
==============================================

What:  Pydantic models defining the JSON contract of the books resource.
How:   FastAPI uses these to validate query strings, serialize responses and
       generate the OpenAPI document. Write bodies are validated against the
       field descriptors in `schemas.descriptor` instead, so that missing
       input yields the 400 taxonomy rather than FastAPI's 422.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class Link(BaseModel):
    href: str


class BookData(BaseModel):
    """
    Shaped Book without hyperlinks.

    Used as the `previous` snapshot in delete responses.
    """
    id: int = Field(description="Unique identifier for the book")
    date: str = Field(description="Creation time, UTC, ISO 8601 without offset")
    slug: str = Field(description="URL-safe name derived from the title")
    status: str = Field(description="publish, draft, private, trash, ...")
    title: str = Field(description="Display-rendered title")
    content: str = Field(description="Content after output filters")
    author: int = Field(description="Identifier of the authoring user")


class BookResponse(BookData):
    """
    Shaped Book as returned by Get, Create, Update and in List arrays.

    Example:
        {
            "id": 7, "date": "2024-01-15T12:00:00", "slug": "dune",
            "status": "publish", "title": "Dune", "content": "<p>Spice</p>",
            "author": 1,
            "_links": {
                "self": [{"href": ".../hussainas/v1/books/7"}],
                "collection": [{"href": ".../hussainas/v1/books"}],
                "author": [{"href": ".../wp/v2/users/1"}]
            }
        }
    """
    model_config = ConfigDict(populate_by_name=True)

    links: Dict[str, List[Link]] = Field(alias="_links", default_factory=dict)


class DeleteResponse(BaseModel):
    deleted: bool = Field(description="Whether the book was deleted (or trashed)")
    previous: BookData = Field(description="The book as it was before deletion")


# ══════════════════════════════════════════════════════════════════════════
# Query Parameter Models
# ══════════════════════════════════════════════════════════════════════════


class CollectionParams(BaseModel):
    """
    Validated List query parameters.

    Parameters:
        page:      1-based page number
        per_page:  items per page (1-100)
        search:    free text; every term must match title or content
        orderby:   date | id | title | slug
        order:     asc | desc
    """
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None
    orderby: Literal["date", "id", "title", "slug"] = "date"
    order: Literal["asc", "desc"] = "desc"


# ══════════════════════════════════════════════════════════════════════════
# Error / Describe / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error body for every non-2xx response.

    Example:
        {
            "code": "rest_post_not_found",
            "message": "Book not found.",
            "data": {"status": 404, "resource_id": 42},
            "request_id": "a1b2c3d4"
        }
    """
    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    data: Dict[str, Any] = Field(default_factory=dict, description="Status and context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class EndpointDescription(BaseModel):
    methods: List[str]
    args: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class RouteDescription(BaseModel):
    """OPTIONS document: what a route accepts and the item schema."""
    namespace: str
    methods: List[str]
    endpoints: List[EndpointDescription]
    schema_: Dict[str, Any] = Field(alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    entity_types: List[str] = Field(description="Registered entity types")
    uptime_seconds: float = Field(description="Seconds since service started")
