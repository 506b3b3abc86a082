"""
Books API — Book Controller Unit Tests
=======================================

What:  Permission checks, handlers and response shaping of BookController.
How:   The store and authorizer are mocks; no database or HTTP involved.

What we test:
    ✅ Existence is checked before capabilities (404 before 403)
    ✅ Create sanitizes input, forces publish status and the caller as author
    ✅ Update only touches supplied fields; empty status becomes draft
    ✅ Delete returns the pre-deletion snapshot; failures become 500
    ✅ Shaping: date format, private title prefix, rendered content, links
"""

from datetime import datetime, timezone, timedelta

import pytest

from books_api.config import Settings
from books_api.exceptions import AuthorizationError, NotFoundError, OperationError, ValidationError
from books_api.schemas.book import CollectionParams
from books_api.services.authorization import ANONYMOUS, Principal
from books_api.services.book_controller import BookController
from books_api.services.content import ContentRenderer
from books_api.services.registry import EntityRegistry, register_book_type

EDITOR = Principal(user_id=2, roles=frozenset({"editor"}))


@pytest.fixture
def controller(mock_store, mock_authorizer):
    registry = EntityRegistry()
    register_book_type(registry)
    return BookController(
        settings=Settings(site_url="http://example.test/"),
        registry=registry,
        store=mock_store,
        authorizer=mock_authorizer,
        renderer=ContentRenderer(),
    )


class TestPermissionChecks:

    @pytest.mark.asyncio
    async def test_missing_entity_is_not_found_before_capabilities(
        self, controller, mock_store, mock_authorizer, mock_db_session
    ):
        mock_store.find.return_value = None
        mock_authorizer.can_edit.return_value = False

        with pytest.raises(NotFoundError) as exc_info:
            await controller.check_update_permission(mock_db_session, ANONYMOUS, 42)

        assert exc_info.value.code == "rest_post_not_found"
        assert exc_info.value.message == "Book not found."
        mock_authorizer.can_edit.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_entity_type_is_not_found(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document(entity_type="page")

        with pytest.raises(NotFoundError):
            await controller.check_get_permission(mock_db_session, ANONYMOUS, 1)

    @pytest.mark.asyncio
    async def test_edit_denied(
        self, controller, mock_store, mock_authorizer, mock_db_session, make_document
    ):
        book = make_document()
        mock_store.find.return_value = book
        mock_authorizer.can_edit.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            await controller.check_update_permission(mock_db_session, EDITOR, 1)

        assert exc_info.value.code == "rest_cannot_edit"
        mock_authorizer.can_edit.assert_called_once_with(EDITOR, book)

    @pytest.mark.asyncio
    async def test_delete_denied(
        self, controller, mock_store, mock_authorizer, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()
        mock_authorizer.can_delete.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            await controller.check_delete_permission(mock_db_session, EDITOR, 1)

        assert exc_info.value.code == "rest_cannot_delete"

    def test_create_denied(self, controller, mock_authorizer):
        mock_authorizer.can_publish.return_value = False

        with pytest.raises(AuthorizationError) as exc_info:
            controller.check_create_permission(ANONYMOUS)

        assert exc_info.value.code == "rest_cannot_create"
        assert exc_info.value.status_code == 403

    def test_list_always_allowed(self, controller):
        assert controller.check_list_permission(ANONYMOUS) is None


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_sanitizes_and_publishes(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.insert.return_value = 7
        mock_store.find.return_value = make_document(id=7, author_id=2)

        book = await controller.create_book(
            mock_db_session,
            EDITOR,
            {"title": "  <b>Dune</b> ", "content": '<p onclick="x()">Spice</p>'},
        )

        _, entity_type, fields = mock_store.insert.await_args.args
        assert entity_type == "hussainas_book"
        assert fields == {
            "title": "Dune",
            "content": "<p>Spice</p>",
            "status": "publish",
            "author_id": 2,
        }
        assert book.id == 7

    @pytest.mark.asyncio
    async def test_create_with_blank_title_never_inserts(
        self, controller, mock_store, mock_db_session
    ):
        with pytest.raises(ValidationError) as exc_info:
            await controller.create_book(mock_db_session, EDITOR, {"title": " <br> "})

        assert exc_info.value.code == "rest_missing_title"
        assert exc_info.value.message == "Title is required."
        mock_store.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_missing_content_stores_empty(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()

        await controller.create_book(mock_db_session, EDITOR, {"title": "Dune"})

        assert mock_store.insert.await_args.args[2]["content"] == ""


class TestUpdate:

    @pytest.mark.asyncio
    async def test_only_supplied_fields_change(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()

        await controller.update_book(mock_db_session, EDITOR, 1, {"title": " New <i>Title</i> "})

        mock_store.update.assert_awaited_once_with(
            mock_db_session, 1, {"title": "New Title"}, editor_id=2
        )

    @pytest.mark.asyncio
    async def test_status_is_key_sanitized(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()

        await controller.update_book(mock_db_session, EDITOR, 1, {"status": " Draft!"})

        assert mock_store.update.await_args.args[2] == {"status": "draft"}

    @pytest.mark.asyncio
    async def test_empty_status_becomes_draft(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()

        await controller.update_book(mock_db_session, EDITOR, 1, {"status": "!!!"})

        assert mock_store.update.await_args.args[2] == {"status": "draft"}

    @pytest.mark.asyncio
    async def test_update_of_missing_entity(self, controller, mock_store, mock_db_session):
        with pytest.raises(NotFoundError):
            await controller.update_book(mock_db_session, EDITOR, 5, {"title": "x"})
        mock_store.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_title_sanitized_to_empty_is_rejected(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document()

        with pytest.raises(ValidationError) as exc_info:
            await controller.update_book(mock_db_session, EDITOR, 1, {"title": "  <b></b> "})

        assert exc_info.value.code == "rest_invalid_param"
        assert exc_info.value.context["field"] == "title"
        mock_store.update.assert_not_awaited()


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_returns_previous_snapshot(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.find.return_value = make_document(id=9, title="Dune")

        result = await controller.delete_book(mock_db_session, 9, force=True)

        assert result.deleted is True
        assert result.previous.id == 9
        assert result.previous.title == "Dune"
        assert "links" not in result.previous.model_dump()
        mock_store.delete.assert_awaited_once_with(mock_db_session, 9, force=True)

    @pytest.mark.asyncio
    async def test_failed_delete(self, controller, mock_store, mock_db_session, make_document):
        mock_store.find.return_value = make_document(status="trash")
        mock_store.delete.return_value = False

        with pytest.raises(OperationError) as exc_info:
            await controller.delete_book(mock_db_session, 1)

        assert exc_info.value.code == "rest_delete_failed"
        assert exc_info.value.message == "Failed to delete the book."
        assert exc_info.value.status_code == 500


class TestList:

    @pytest.mark.asyncio
    async def test_totals_and_visible_statuses(
        self, controller, mock_store, mock_db_session, make_document
    ):
        mock_store.query.return_value = ([make_document(id=1), make_document(id=2)], 21)

        page = await controller.list_books(
            mock_db_session, ANONYMOUS, CollectionParams(page=2, per_page=10, search="  dune ")
        )

        assert page.total == 21
        assert page.total_pages == 3
        assert [item.id for item in page.items] == [1, 2]
        filters = mock_store.query.await_args.args[2]
        assert filters.statuses == frozenset({"publish"})
        assert filters.search == "dune"

    @pytest.mark.asyncio
    async def test_private_visible_to_privileged(
        self, controller, mock_store, mock_authorizer, mock_db_session
    ):
        mock_authorizer.can_read_private.return_value = True

        page = await controller.list_books(mock_db_session, EDITOR, CollectionParams())

        assert page.total_pages == 0
        filters = mock_store.query.await_args.args[2]
        assert filters.statuses == frozenset({"publish", "private"})

    def test_pagination_links(self, controller):
        params = CollectionParams(page=2, per_page=5, orderby="title", order="asc")

        link = controller.pagination_links(params, total_pages=3)

        assert link == (
            '<http://example.test/hussainas/v1/books?page=1&per_page=5&orderby=title&order=asc>; rel="prev", '
            '<http://example.test/hussainas/v1/books?page=3&per_page=5&orderby=title&order=asc>; rel="next"'
        )

    def test_no_pagination_links_for_single_page(self, controller):
        assert controller.pagination_links(CollectionParams(), total_pages=1) is None


class TestShaping:

    def test_prepare_item(self, controller, make_document):
        book = make_document(id=7, title="Dune", content="Spice", author_id=3)

        shaped = controller.prepare_item(book).model_dump(by_alias=True)

        assert shaped["id"] == 7
        assert shaped["date"] == "2024-01-15T12:00:00"
        assert shaped["slug"] == "dune"
        assert shaped["title"] == "Dune"
        assert shaped["content"] == "<p>Spice</p>"
        assert shaped["author"] == 3
        assert shaped["_links"] == {
            "self": [{"href": "http://example.test/hussainas/v1/books/7"}],
            "collection": [{"href": "http://example.test/hussainas/v1/books"}],
            "author": [{"href": "http://example.test/wp/v2/users/3"}],
        }

    def test_private_title_prefixed(self, controller, make_document):
        shaped = controller.prepare_item(make_document(status="private"))
        assert shaped.title == "Private: Dune"

    def test_date_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2024, 1, 15, 14, 0, 0, 123456, tzinfo=plus_two)
        assert BookController.format_date(value) == "2024-01-15T12:00:00"

    def test_naive_date_taken_as_utc(self):
        assert BookController.format_date(datetime(2024, 1, 15, 12, 0)) == "2024-01-15T12:00:00"

    def test_location(self, controller):
        assert controller.item_url(7) == "http://example.test/hussainas/v1/books/7"


class TestDescribe:

    def test_collection_description(self, controller):
        description = controller.describe_collection().model_dump(by_alias=True)

        assert description["namespace"] == "hussainas/v1"
        assert description["methods"] == ["GET", "POST"]
        create_args = description["endpoints"][1]["args"]
        assert create_args["title"]["required"] is True
        assert description["schema"]["title"] == "hussainas_book"

    def test_item_description(self, controller):
        description = controller.describe_item().model_dump(by_alias=True)

        assert description["methods"] == ["GET", "PUT", "PATCH", "DELETE"]
        update_args = description["endpoints"][1]["args"]
        assert update_args["title"]["required"] is False
        assert "force" in description["endpoints"][2]["args"]
