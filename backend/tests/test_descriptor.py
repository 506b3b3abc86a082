"""
Books API — Schema Descriptor Tests
====================================

What:  Tests for the item schema, derived write arguments and their
       validation, and the collection parameter schema.
"""

import pytest

from books_api.exceptions import ValidationError
from books_api.schemas.descriptor import (
    CREATABLE,
    EDITABLE,
    collection_params_schema,
    describe_args,
    endpoint_args_for_item_schema,
    public_item_schema,
    validate_write_args,
)


class TestPublicItemSchema:

    def setup_method(self):
        self.schema = public_item_schema(title="hussainas_book")

    def test_envelope(self):
        assert self.schema["$schema"] == "http://json-schema.org/draft-04/schema#"
        assert self.schema["title"] == "hussainas_book"
        assert self.schema["type"] == "object"
        assert set(self.schema["properties"]) == {"id", "title", "content", "status"}

    def test_id_is_readonly_integer(self):
        id_schema = self.schema["properties"]["id"]
        assert id_schema["type"] == "integer"
        assert id_schema["readonly"] is True
        assert id_schema["context"] == ["view", "edit", "embed"]

    def test_title_required_everywhere(self):
        title = self.schema["properties"]["title"]
        assert title["required"] is True
        assert title["context"] == ["view", "edit", "embed"]

    def test_content_and_status_not_embedded(self):
        for name in ("content", "status"):
            prop = self.schema["properties"][name]
            assert prop["type"] == "string"
            assert prop["context"] == ["view", "edit"]
            assert "required" not in prop

    def test_status_length_bounded(self):
        assert self.schema["properties"]["status"]["maxLength"] == 20
        assert "maxLength" not in self.schema["properties"]["title"]


class TestEndpointArgs:

    def test_create_args_exclude_readonly(self):
        args = endpoint_args_for_item_schema(CREATABLE)
        assert set(args) == {"title", "content", "status"}
        assert args["title"].required is True

    def test_edit_args_drop_required(self):
        args = endpoint_args_for_item_schema(EDITABLE)
        assert set(args) == {"title", "content", "status"}
        assert not any(arg.required for arg in args.values())

    def test_describe_args(self):
        described = describe_args(endpoint_args_for_item_schema(CREATABLE))
        assert described["title"] == {
            "description": "The title of the book.",
            "type": "string",
            "required": True,
        }


class TestValidateWriteArgs:

    def test_create_requires_title(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_write_args({"content": "x"}, CREATABLE)
        assert exc_info.value.code == "rest_missing_callback_param"
        assert exc_info.value.context["params"] == ["title"]

    def test_null_title_counts_as_missing(self):
        with pytest.raises(ValidationError):
            validate_write_args({"title": None}, CREATABLE)

    def test_update_accepts_empty_body(self):
        assert validate_write_args({}, EDITABLE) == {}

    def test_type_mismatch(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_write_args({"title": 42}, EDITABLE)
        assert exc_info.value.code == "rest_invalid_param"
        assert "title" in exc_info.value.context["params"]

    def test_boolean_is_not_a_string(self):
        with pytest.raises(ValidationError):
            validate_write_args({"status": True}, EDITABLE)

    def test_unknown_and_readonly_keys_dropped(self):
        args = validate_write_args(
            {"id": 99, "title": "Dune", "author": 7, "slug": "x"}, CREATABLE
        )
        assert args == {"title": "Dune"}

    def test_null_optional_args_dropped(self):
        assert validate_write_args({"title": "Dune", "content": None}, CREATABLE) == {
            "title": "Dune"
        }

    def test_status_longer_than_column(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_write_args({"status": "a" * 21}, EDITABLE)
        assert exc_info.value.code == "rest_invalid_param"
        assert "status" in exc_info.value.context["params"]

    def test_status_at_limit_accepted(self):
        assert validate_write_args({"status": "a" * 20}, EDITABLE) == {"status": "a" * 20}


class TestCollectionParamsSchema:

    def test_params(self):
        schema = collection_params_schema()

        assert schema["page"] == {
            "description": "Current page of the collection.",
            "type": "integer",
            "default": 1,
            "minimum": 1,
        }
        assert schema["per_page"]["default"] == 10
        assert schema["per_page"]["maximum"] == 100
        assert schema["orderby"]["enum"] == ["date", "id", "title", "slug"]
        assert schema["order"]["enum"] == ["asc", "desc"]
        assert "default" not in schema["search"]
