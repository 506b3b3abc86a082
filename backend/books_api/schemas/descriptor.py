"""
Books API — Schema Descriptors
===============================

What:  The declarative description of a Book as exposed over REST, and
       everything derived from it.
How:   One tuple of `FieldDescriptor`s feeds:
         - public_item_schema()            → JSON Schema document (OPTIONS)
         - endpoint_args_for_item_schema() → write argument set per method
         - validate_write_args()           → 400 on missing/mistyped input
       `COLLECTION_PARAMS` does the same for the List query string.

Argument derivation:
    CREATABLE  read-only fields removed, required flags enforced
    EDITABLE   read-only fields removed, required flags dropped
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from books_api.exceptions import ValidationError

CREATABLE = "POST"
EDITABLE = "PUT, PATCH"
READABLE = "GET"
DELETABLE = "DELETE"

VIEW, EDIT, EMBED = "view", "edit", "embed"

_JSON_TYPES: Dict[str, Tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of an item schema."""

    name: str
    type: str
    description: str
    context: FrozenSet[str] = frozenset({VIEW, EDIT})
    readonly: bool = False
    required: bool = False
    max_length: Optional[int] = None

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {
            "description": self.description,
            "type": self.type,
            "context": [c for c in (VIEW, EDIT, EMBED) if c in self.context],
        }
        if self.readonly:
            schema["readonly"] = True
        if self.required:
            schema["required"] = True
        if self.max_length is not None:
            schema["maxLength"] = self.max_length
        return schema

    def accepts(self, value: Any) -> bool:
        expected = _JSON_TYPES.get(self.type, (object,))
        # bool is an int subclass; JSON true is not an integer
        if isinstance(value, bool) and bool not in expected:
            return False
        return isinstance(value, expected)


BOOK_FIELDS: Tuple[FieldDescriptor, ...] = (
    FieldDescriptor(
        name="id",
        type="integer",
        description="Unique identifier for the book.",
        context=frozenset({VIEW, EDIT, EMBED}),
        readonly=True,
    ),
    FieldDescriptor(
        name="title",
        type="string",
        description="The title of the book.",
        context=frozenset({VIEW, EDIT, EMBED}),
        required=True,
    ),
    FieldDescriptor(
        name="content",
        type="string",
        description="The content of the book.",
    ),
    FieldDescriptor(
        name="status",
        type="string",
        description="The status of the book (e.g., publish, draft).",
        max_length=20,
    ),
)


def public_item_schema(
    title: str,
    fields: Tuple[FieldDescriptor, ...] = BOOK_FIELDS,
) -> Dict[str, Any]:
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": title,
        "type": "object",
        "properties": {f.name: f.to_schema() for f in fields},
    }


def endpoint_args_for_item_schema(
    method: str = CREATABLE,
    fields: Tuple[FieldDescriptor, ...] = BOOK_FIELDS,
) -> Dict[str, FieldDescriptor]:
    """Write arguments for `method`, keyed by field name."""
    args: Dict[str, FieldDescriptor] = {}
    for descriptor in fields:
        if descriptor.readonly:
            continue
        if method != CREATABLE and descriptor.required:
            descriptor = replace(descriptor, required=False)
        args[descriptor.name] = descriptor
    return args


def describe_args(args: Mapping[str, FieldDescriptor]) -> Dict[str, Dict[str, Any]]:
    """Argument set as published in the OPTIONS document."""
    return {
        name: {
            "description": descriptor.description,
            "type": descriptor.type,
            "required": descriptor.required,
        }
        for name, descriptor in args.items()
    }


def validate_write_args(
    payload: Mapping[str, Any],
    method: str,
    fields: Tuple[FieldDescriptor, ...] = BOOK_FIELDS,
) -> Dict[str, Any]:
    """
    Checks a write body against the derived argument set.

    Returns only the known, non-null arguments. Unknown keys (including
    read-only ones such as `id`) are dropped.

    Raises:
        ValidationError: `rest_missing_callback_param` when a required
            argument is absent, `rest_invalid_param` on a type mismatch or
            a string longer than the field allows.
    """
    args = endpoint_args_for_item_schema(method, fields)

    missing = [
        name for name, descriptor in args.items()
        if descriptor.required and payload.get(name) is None
    ]
    if missing:
        raise ValidationError(
            message=f"Missing parameter(s): {', '.join(missing)}",
            code="rest_missing_callback_param",
            context={"params": missing},
        )

    invalid: Dict[str, str] = {}
    accepted: Dict[str, Any] = {}
    for name, descriptor in args.items():
        if name not in payload or payload[name] is None:
            continue
        value = payload[name]
        if not descriptor.accepts(value):
            invalid[name] = f"{name} is not of type {descriptor.type}."
            continue
        if descriptor.max_length is not None and len(value) > descriptor.max_length:
            invalid[name] = f"{name} must be at most {descriptor.max_length} characters long."
            continue
        accepted[name] = value

    if invalid:
        raise ValidationError(
            message=f"Invalid parameter(s): {', '.join(invalid)}",
            context={"params": invalid},
        )
    return accepted


# ══════════════════════════════════════════════════════════════════════════
# Collection parameters (List)
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CollectionParam:
    name: str
    type: str
    description: str
    default: Any = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    enum: List[str] = field(default_factory=list)

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"description": self.description, "type": self.type}
        if self.default is not None:
            schema["default"] = self.default
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


ORDERBY_VALUES = ["date", "id", "title", "slug"]
ORDER_VALUES = ["asc", "desc"]

COLLECTION_PARAMS: Tuple[CollectionParam, ...] = (
    CollectionParam(
        name="page",
        type="integer",
        description="Current page of the collection.",
        default=1,
        minimum=1,
    ),
    CollectionParam(
        name="per_page",
        type="integer",
        description="Maximum number of items to be returned in response.",
        default=10,
        minimum=1,
        maximum=100,
    ),
    CollectionParam(
        name="search",
        type="string",
        description="Limit results to those matching a search query.",
    ),
    CollectionParam(
        name="orderby",
        type="string",
        description="Sort collection by post attribute.",
        default="date",
        enum=ORDERBY_VALUES,
    ),
    CollectionParam(
        name="order",
        type="string",
        description="Order sort attribute ascending or descending.",
        default="desc",
        enum=ORDER_VALUES,
    ),
)


def collection_params_schema() -> Dict[str, Dict[str, Any]]:
    return {p.name: p.to_schema() for p in COLLECTION_PARAMS}


DELETE_ARGS: Dict[str, Dict[str, Any]] = {
    "force": {
        "type": "boolean",
        "default": False,
        "description": "Whether to bypass trash and force deletion.",
    },
}
