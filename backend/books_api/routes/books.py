"""
Books API — Book Route Handlers
================================

What:  The `/{namespace}/books` collection and `/{namespace}/books/{id}` item
       routes.
How:   Each handler validates its arguments against the field descriptors,
       runs the controller's permission check and then the controller
       operation. Errors propagate as BooksAPIError subclasses and are
       rendered by the handlers registered in main.py.
Who:   REST clients.

Route Table:
    GET     /books           List         X-WP-Total, X-WP-TotalPages, Link
    POST    /books           Create       201 + Location
    OPTIONS /books           Describe collection route
    GET     /books/{id}      Get
    PUT     /books/{id}      Update
    PATCH   /books/{id}      Update
    DELETE  /books/{id}      Delete       ?force=true bypasses the trash
    OPTIONS /books/{id}      Describe item route

    `{id}` only matches digits; anything else is a 404 with no route.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from books_api.auth import get_principal
from books_api.database import get_db_session
from books_api.schemas.book import (
    BookResponse,
    CollectionParams,
    DeleteResponse,
    ErrorResponse,
    RouteDescription,
)
from books_api.services.authorization import Principal
from books_api.services.book_controller import BookController

logger = logging.getLogger(__name__)

# Mounted under `/{settings.api_namespace}` by create_app
router = APIRouter(tags=["Books"])

_ERRORS = {
    400: {"description": "Invalid or missing arguments", "model": ErrorResponse},
    403: {"description": "Not allowed", "model": ErrorResponse},
    404: {"description": "Book not found", "model": ErrorResponse},
    500: {"description": "Operation failed", "model": ErrorResponse},
}


def get_book_controller(request: Request) -> BookController:
    """The controller instance built by the application factory."""
    return request.app.state.book_controller


# ══════════════════════════════════════════════════════════════════════════
# Collection route
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/books",
    response_model=List[BookResponse],
    responses={400: _ERRORS[400]},
    summary="List books",
)
async def list_books(
    response: Response,
    page: int = Query(default=1, ge=1, description="Current page of the collection."),
    per_page: int = Query(
        default=10, ge=1, le=100,
        description="Maximum number of items to be returned in response.",
    ),
    search: Optional[str] = Query(
        default=None, description="Limit results to those matching a search query.",
    ),
    orderby: Literal["date", "id", "title", "slug"] = Query(
        default="date", description="Sort collection by post attribute.",
    ),
    order: Literal["asc", "desc"] = Query(
        default="desc", description="Order sort attribute ascending or descending.",
    ),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
    controller: BookController = Depends(get_book_controller),
) -> List[BookResponse]:
    """
    A page of published books, newest first by default.

    Principals allowed to read private content also see private books.
    Totals are reported in headers:

        X-WP-Total:      number of matching books
        X-WP-TotalPages: ceil(total / per_page)
        Link:            <...?page=1>; rel="prev", <...?page=3>; rel="next"
    """
    params = CollectionParams(
        page=page, per_page=per_page, search=search, orderby=orderby, order=order,
    )
    controller.check_list_permission(principal)
    result = await controller.list_books(db, principal, params)

    response.headers["X-WP-Total"] = str(result.total)
    response.headers["X-WP-TotalPages"] = str(result.total_pages)
    link = controller.pagination_links(params, result.total_pages)
    if link:
        response.headers["Link"] = link
    return result.items


@router.post(
    "/books",
    status_code=201,
    response_model=BookResponse,
    responses={k: _ERRORS[k] for k in (400, 403, 500)},
    summary="Create a book",
)
async def create_book(
    response: Response,
    payload: Dict[str, Any] = Body(default_factory=dict),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
    controller: BookController = Depends(get_book_controller),
) -> BookResponse:
    """
    Creates a published book authored by the caller.

    Body: {"title": "Dune", "content": "<p>Spice</p>"}; title is required.
    """
    args = controller.validate_create_args(payload)
    controller.check_create_permission(principal)
    book = await controller.create_book(db, principal, args)

    response.headers["Location"] = controller.item_url(book.id)
    return book


@router.options(
    "/books",
    response_model=RouteDescription,
    summary="Describe the books collection route",
)
async def describe_books(
    controller: BookController = Depends(get_book_controller),
) -> RouteDescription:
    return controller.describe_collection()


# ══════════════════════════════════════════════════════════════════════════
# Item route
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/books/{book_id:int}",
    response_model=BookResponse,
    responses={404: _ERRORS[404]},
    summary="Get a book",
)
async def get_book(
    book_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
    controller: BookController = Depends(get_book_controller),
) -> BookResponse:
    await controller.check_get_permission(db, principal, book_id)
    return await controller.get_book(db, book_id)


@router.api_route(
    "/books/{book_id:int}",
    methods=["PUT", "PATCH"],
    response_model=BookResponse,
    responses=_ERRORS,
    summary="Update a book",
)
async def update_book(
    book_id: int,
    payload: Dict[str, Any] = Body(default_factory=dict),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
    controller: BookController = Depends(get_book_controller),
) -> BookResponse:
    """
    Partial update: only title, content and status present in the body
    change. An empty status is stored as "draft".
    """
    args = controller.validate_update_args(payload)
    await controller.check_update_permission(db, principal, book_id)
    return await controller.update_book(db, principal, book_id, args)


@router.delete(
    "/books/{book_id:int}",
    response_model=DeleteResponse,
    responses={k: _ERRORS[k] for k in (403, 404, 500)},
    summary="Delete a book",
)
async def delete_book(
    book_id: int,
    force: bool = Query(default=False, description="Whether to bypass trash and force deletion."),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
    controller: BookController = Depends(get_book_controller),
) -> DeleteResponse:
    """
    Moves the book to the trash, or removes it for good with `force=true`.

    Trashing a book that is already in the trash fails with
    `rest_delete_failed`.
    """
    await controller.check_delete_permission(db, principal, book_id)
    return await controller.delete_book(db, book_id, force=force)


@router.options(
    "/books/{book_id:int}",
    response_model=RouteDescription,
    summary="Describe the book item route",
)
async def describe_book(
    book_id: int,
    controller: BookController = Depends(get_book_controller),
) -> RouteDescription:
    return controller.describe_item()
