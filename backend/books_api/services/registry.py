"""
Books API — Entity Registry
============================

What:  Declares the entity types the document store holds and the
       storage-level features each one supports.
How:   `EntityType` is an immutable declaration; `EntityRegistry` keeps them
       by name. `register_book_type()` declares the Book type and is called
       once by the app factory, before any route handling.
Who:   Consulted by the controller (type matching, REST base) and by the
       store (revision support).

Registration is idempotent: registering an identical declaration again is a
no-op. A conflicting declaration under a registered name is a startup-time
misconfiguration and raises ValueError.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

logger = logging.getLogger(__name__)

BOOK_TYPE = "hussainas_book"


@dataclass(frozen=True)
class EntityType:
    """Declaration of a stored document type."""

    name: str
    label: str
    plural_label: str
    description: str = ""
    rest_base: Optional[str] = None
    supports: FrozenSet[str] = field(default_factory=frozenset)
    public: bool = True
    publicly_queryable: bool = True
    exclude_from_search: bool = False
    show_in_rest: bool = True
    hierarchical: bool = False
    has_archive: bool = False
    can_export: bool = True
    capability_type: str = "post"

    def supports_feature(self, feature: str) -> bool:
        return feature in self.supports


class EntityRegistry:
    """Process-wide table of declared entity types."""

    def __init__(self) -> None:
        self._types: Dict[str, EntityType] = {}

    def register(self, entity_type: EntityType) -> EntityType:
        # Storage column is VARCHAR(20)
        if not entity_type.name or len(entity_type.name) > 20:
            raise ValueError(
                f"Entity type name '{entity_type.name}' must be 1-20 characters"
            )

        existing = self._types.get(entity_type.name)
        if existing is not None:
            if existing != entity_type:
                raise ValueError(
                    f"Entity type '{entity_type.name}' is already registered "
                    "with a different declaration"
                )
            return existing

        self._types[entity_type.name] = entity_type
        logger.info(
            "Registered entity type '%s' (supports: %s)",
            entity_type.name,
            ", ".join(sorted(entity_type.supports)),
        )
        return entity_type

    def get(self, name: str) -> EntityType:
        try:
            return self._types[name]
        except KeyError:
            raise KeyError(f"Entity type '{name}' is not registered") from None

    def is_registered(self, name: str) -> bool:
        return name in self._types

    def supports(self, name: str, feature: str) -> bool:
        """False for unknown types, so the store can ask about any document."""
        entity_type = self._types.get(name)
        return entity_type is not None and entity_type.supports_feature(feature)

    def registered_names(self) -> List[str]:
        return sorted(self._types)


def book_entity_type() -> EntityType:
    return EntityType(
        name=BOOK_TYPE,
        label="Book",
        plural_label="Books",
        description="Custom Post Type for Books",
        rest_base="books",
        supports=frozenset({"title", "editor", "author", "thumbnail", "revisions"}),
        public=True,
        publicly_queryable=True,
        exclude_from_search=False,
        show_in_rest=True,
        hierarchical=False,
        has_archive=True,
        can_export=True,
        capability_type="post",
    )


def register_book_type(registry: EntityRegistry) -> EntityType:
    """Declares the Book entity type. Safe to call more than once."""
    return registry.register(book_entity_type())
