"""
Field Type Detector

Maps a classification to an edit-surface shape. When a capability schema is
available it overrides the local shape for the same node type and field; when
it is not, the local shape stands.
"""

from typing import Optional

from .node_tables import SEED_LIMIT
from .workflow_model import Category, FieldCandidate, FieldMatch, ShapeKind, TypeShape

# Text longer than this (or containing a newline) gets a multi-line editor
MULTILINE_LENGTH = 100


def local_shape(candidate: FieldCandidate, match: FieldMatch) -> TypeShape:
    category = match.category
    if category is Category.SEED:
        return TypeShape(ShapeKind.INTEGER, minimum=0, maximum=SEED_LIMIT - 1, step=1)
    if category is Category.PROMPT:
        return TypeShape(ShapeKind.MULTILINE_TEXT)
    if category is Category.TEXT:
        raw = candidate.value.raw
        if isinstance(raw, str) and (len(raw) > MULTILINE_LENGTH or "\n" in raw):
            return TypeShape(ShapeKind.MULTILINE_TEXT)
        return TypeShape(ShapeKind.TEXT)
    if category is Category.MODEL:
        return TypeShape(ShapeKind.DYNAMIC_DROPDOWN, catalog=match.subtype, option_source="filesystem")
    if category is Category.DROPDOWN:
        if match.options:
            return TypeShape(ShapeKind.STATIC_DROPDOWN, options=tuple(match.options), option_source="combo")
        if match.subtype:
            return TypeShape(ShapeKind.DYNAMIC_DROPDOWN, catalog=match.subtype, option_source="filesystem")
        return TypeShape(ShapeKind.DYNAMIC_DROPDOWN, option_source="schema")
    if category is Category.NUMBER:
        return TypeShape(ShapeKind.NUMBER)
    if category is Category.BOOLEAN:
        return TypeShape(ShapeKind.BOOLEAN)
    return TypeShape(ShapeKind.NONE)


def schema_shape(candidate: FieldCandidate, match: FieldMatch, schema) -> Optional[TypeShape]:
    """Shape from the capability schema, or None when it has nothing to add."""
    node_type = candidate.declared_type
    field_name = candidate.field_name
    input_type = schema.input_type(node_type, field_name)
    if input_type is None:
        return None
    category = match.category

    if input_type == "COMBO" and category in (Category.MODEL, Category.DROPDOWN, Category.TEXT):
        options = schema.options(node_type, field_name) or []
        if not options:
            return None
        return TypeShape(
            ShapeKind.STATIC_DROPDOWN,
            options=tuple(options),
            catalog=match.subtype,
            option_source="schema",
            source="schema",
        )
    if input_type in ("INT", "FLOAT") and category is Category.NUMBER:
        bounds = schema.bounds(node_type, field_name)
        step = bounds.get("step", 1 if input_type == "INT" else None)
        return TypeShape(
            ShapeKind.NUMBER,
            minimum=bounds.get("min"),
            maximum=bounds.get("max"),
            step=step,
            source="schema",
        )
    if input_type == "BOOLEAN" and category is Category.BOOLEAN:
        return TypeShape(ShapeKind.BOOLEAN, source="schema")
    if input_type == "STRING" and category in (Category.TEXT, Category.PROMPT):
        multiline = category is Category.PROMPT or schema.is_multiline(node_type, field_name)
        return TypeShape(ShapeKind.MULTILINE_TEXT if multiline else ShapeKind.TEXT, source="schema")
    return None


def detect_shape(candidate: FieldCandidate, match: FieldMatch, schema=None) -> TypeShape:
    if schema is not None and match.category is not Category.IGNORED:
        override = schema_shape(candidate, match, schema)
        if override is not None:
            return override
    return local_shape(candidate, match)
