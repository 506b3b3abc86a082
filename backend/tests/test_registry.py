"""
Books API — Entity Registry Tests
==================================
"""

import dataclasses

import pytest

from books_api.services.registry import (
    BOOK_TYPE,
    EntityRegistry,
    EntityType,
    book_entity_type,
    register_book_type,
)


class TestEntityRegistry:

    def setup_method(self):
        self.registry = EntityRegistry()

    def test_register_book_type(self):
        entity_type = register_book_type(self.registry)

        assert entity_type.name == BOOK_TYPE
        assert entity_type.rest_base == "books"
        assert self.registry.is_registered(BOOK_TYPE)
        assert self.registry.registered_names() == [BOOK_TYPE]

    def test_book_declaration(self):
        book = book_entity_type()

        assert book.label == "Book"
        assert book.plural_label == "Books"
        assert book.public and book.has_archive and book.show_in_rest
        assert not book.hierarchical
        assert book.supports == {"title", "editor", "author", "thumbnail", "revisions"}

    def test_registration_is_idempotent(self):
        first = register_book_type(self.registry)
        second = register_book_type(self.registry)

        assert first == second
        assert self.registry.registered_names() == [BOOK_TYPE]

    def test_conflicting_declaration_rejected(self):
        register_book_type(self.registry)
        changed = dataclasses.replace(book_entity_type(), label="Novel")

        with pytest.raises(ValueError):
            self.registry.register(changed)

    @pytest.mark.parametrize("name", ["", "x" * 21])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(ValueError):
            self.registry.register(EntityType(name=name, label="X", plural_label="Xs"))

    def test_get_unknown_raises(self):
        with pytest.raises(KeyError):
            self.registry.get("nope")

    def test_supports(self):
        register_book_type(self.registry)

        assert self.registry.supports(BOOK_TYPE, "revisions")
        assert not self.registry.supports(BOOK_TYPE, "comments")
        assert not self.registry.supports("nope", "revisions")
