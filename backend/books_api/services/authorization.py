"""
Books API — Capability Evaluation
==================================

What:  Decides whether a principal may publish, edit or delete content.
How:   Roles grant primitive capabilities; per-entity decisions map the
       target entity (owner, status) onto the primitive capabilities a
       principal needs for it.
Who:   Consumed by BookController through the `Authorizer` interface.

Decision table for edit (delete is symmetric with DELETE_* capabilities):

    Entity state               Own entity                 Someone else's
    ─────────────────────────  ─────────────────────────  ─────────────────────────────
    draft / pending / other    EDIT_POSTS                 EDIT_POSTS + EDIT_OTHERS_POSTS
    publish / future           EDIT_PUBLISHED_POSTS       ... + EDIT_PUBLISHED_POSTS
    private                    EDIT_PRIVATE_POSTS         ... + EDIT_PRIVATE_POSTS
    trash                      evaluated as its pre-trash status

Anonymous principals (user_id 0) hold no capabilities.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Set

from books_api.models.document import Document

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    PUBLISH_POSTS = "publish_posts"
    EDIT_POSTS = "edit_posts"
    EDIT_OTHERS_POSTS = "edit_others_posts"
    EDIT_PUBLISHED_POSTS = "edit_published_posts"
    EDIT_PRIVATE_POSTS = "edit_private_posts"
    DELETE_POSTS = "delete_posts"
    DELETE_OTHERS_POSTS = "delete_others_posts"
    DELETE_PUBLISHED_POSTS = "delete_published_posts"
    DELETE_PRIVATE_POSTS = "delete_private_posts"
    READ_PRIVATE_POSTS = "read_private_posts"


_EDITOR_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)

ROLE_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    "administrator": _EDITOR_CAPABILITIES,
    "editor": _EDITOR_CAPABILITIES,
    "author": frozenset({
        Capability.PUBLISH_POSTS,
        Capability.EDIT_POSTS,
        Capability.EDIT_PUBLISHED_POSTS,
        Capability.DELETE_POSTS,
        Capability.DELETE_PUBLISHED_POSTS,
    }),
    "contributor": frozenset({
        Capability.EDIT_POSTS,
        Capability.DELETE_POSTS,
    }),
    "subscriber": frozenset(),
}


@dataclass(frozen=True)
class Principal:
    """The identity a request is made on behalf of."""

    user_id: int = 0
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id == 0


ANONYMOUS = Principal()


class Authorizer(ABC):
    """Capability decisions consumed by the resource controller."""

    @abstractmethod
    def can_publish(self, principal: Principal) -> bool:
        ...

    @abstractmethod
    def can_edit(self, principal: Principal, entity: Document) -> bool:
        ...

    @abstractmethod
    def can_delete(self, principal: Principal, entity: Document) -> bool:
        ...

    @abstractmethod
    def can_read_private(self, principal: Principal) -> bool:
        ...


class RoleAuthorizer(Authorizer):
    """Authorizer backed by the role → capability table."""

    def __init__(self, role_capabilities: Optional[Dict[str, FrozenSet[Capability]]] = None) -> None:
        self._roles = role_capabilities if role_capabilities is not None else ROLE_CAPABILITIES

    def capabilities(self, principal: Principal) -> Set[Capability]:
        if principal.is_anonymous:
            return set()
        granted: Set[Capability] = set()
        for role in principal.roles:
            granted |= self._roles.get(role, frozenset())
        return granted

    def has(self, principal: Principal, *required: Capability) -> bool:
        granted = self.capabilities(principal)
        return all(cap in granted for cap in required)

    def can_publish(self, principal: Principal) -> bool:
        return self.has(principal, Capability.PUBLISH_POSTS)

    def can_read_private(self, principal: Principal) -> bool:
        return self.has(principal, Capability.READ_PRIVATE_POSTS)

    def can_edit(self, principal: Principal, entity: Document) -> bool:
        required = self._required_for(
            principal,
            entity,
            base=Capability.EDIT_POSTS,
            others=Capability.EDIT_OTHERS_POSTS,
            published=Capability.EDIT_PUBLISHED_POSTS,
            private=Capability.EDIT_PRIVATE_POSTS,
        )
        allowed = self.has(principal, *required)
        logger.debug(
            "can_edit user=%s entity=%s required=%s → %s",
            principal.user_id, entity.id, [c.value for c in required], allowed,
        )
        return allowed

    def can_delete(self, principal: Principal, entity: Document) -> bool:
        required = self._required_for(
            principal,
            entity,
            base=Capability.DELETE_POSTS,
            others=Capability.DELETE_OTHERS_POSTS,
            published=Capability.DELETE_PUBLISHED_POSTS,
            private=Capability.DELETE_PRIVATE_POSTS,
        )
        allowed = self.has(principal, *required)
        logger.debug(
            "can_delete user=%s entity=%s required=%s → %s",
            principal.user_id, entity.id, [c.value for c in required], allowed,
        )
        return allowed

    @staticmethod
    def _required_for(
        principal: Principal,
        entity: Document,
        base: Capability,
        others: Capability,
        published: Capability,
        private: Capability,
    ) -> Set[Capability]:
        status = entity.status
        if status == "trash":
            status = entity.trashed_from_status or "draft"

        required = {base}
        if entity.author_id != principal.user_id:
            required.add(others)
        if status in ("publish", "future"):
            required.add(published)
        elif status == "private":
            required.add(private)
        return required
