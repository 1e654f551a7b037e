"""
Parameter Classifier (Model / Dropdown / Number / Boolean)

Runs only on candidates the seed and text classifiers rejected.

Ordered strategies, first match wins:
1. table   - slot named by a known widget layout (config-known)
2. pattern - model file suffix -> Model, image file suffix -> Dropdown
3. schema  - combo / numeric / boolean input in the capability schema
4. pattern - curated parameter names -> Dropdown or Text
5. fallback - remaining numbers and booleans

Graph-edge lists, seeds, long strings and prompt-like names are never parameters.
"""

from typing import Optional

from . import node_tables
from .seed_classifier import in_seed_range
from .workflow_model import Category, DetectionMethod, FieldCandidate, FieldMatch, ValueKind

MAX_PARAMETER_LENGTH = 50


def is_hard_excluded(candidate: FieldCandidate) -> bool:
    """Values that are never parameters, even in a config-known slot."""
    if candidate.value.kind in (ValueKind.NESTED, ValueKind.CONNECTION):
        return True
    # Out-of-range seed slots fall through to Number
    if not in_seed_range(candidate):
        return False
    if candidate.field_name in node_tables.SEED_FIELD_NAMES:
        return True
    return node_tables.SEED_NODE_TYPES.get(candidate.declared_type) == candidate.field_name


def is_soft_excluded(candidate: FieldCandidate) -> bool:
    """Strings that belong to the text classifier; config-known slots bypass this."""
    if not candidate.value.is_string:
        return False
    raw = candidate.value.raw
    if len(raw) > MAX_PARAMETER_LENGTH or "\n" in raw:
        return True
    field_name = candidate.field_name.lower()
    return any(pattern in field_name for pattern in node_tables.PROMPT_NAME_PATTERNS)


def _match_by_value(candidate: FieldCandidate, method: DetectionMethod) -> Optional[FieldMatch]:
    value = candidate.value
    if value.kind is ValueKind.BOOLEAN:
        return FieldMatch(Category.BOOLEAN, method)
    if value.kind is ValueKind.NUMBER:
        return FieldMatch(Category.NUMBER, method)
    if value.kind is ValueKind.STRING:
        raw = value.raw
        if node_tables.has_suffix(raw, node_tables.MODEL_SUFFIXES):
            return FieldMatch(Category.MODEL, method, subtype=node_tables.infer_catalog(candidate.field_name, raw))
        if node_tables.has_suffix(raw, node_tables.IMAGE_SUFFIXES):
            return FieldMatch(Category.DROPDOWN, method, subtype="input")
        return _known_name_match(candidate, method) or FieldMatch(Category.TEXT, method)
    return None


def _known_name_match(candidate: FieldCandidate, method: DetectionMethod) -> Optional[FieldMatch]:
    options = node_tables.known_parameter_options(candidate.field_name)
    if options is None:
        return None
    # A generic name ("type", "mode") on an unrelated node keeps free text
    if options and candidate.value.raw in options:
        return FieldMatch(Category.DROPDOWN, method, options=options)
    return FieldMatch(Category.TEXT, method)


def parameter_table_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if not candidate.config_known:
        return None
    return _match_by_value(candidate, DetectionMethod.TABLE_MATCH)


def parameter_file_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if not candidate.value.is_string:
        return None
    raw = candidate.value.raw
    if node_tables.has_suffix(raw, node_tables.MODEL_SUFFIXES):
        catalog = node_tables.infer_catalog(candidate.field_name, raw)
        return FieldMatch(Category.MODEL, DetectionMethod.PATTERN_MATCH, subtype=catalog)
    if node_tables.has_suffix(raw, node_tables.IMAGE_SUFFIXES):
        return FieldMatch(Category.DROPDOWN, DetectionMethod.PATTERN_MATCH, subtype="input")
    return None


def parameter_schema_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if schema is None:
        return None
    input_type = schema.input_type(candidate.declared_type, candidate.field_name)
    kind = candidate.value.kind
    if input_type == "COMBO" and kind in (ValueKind.STRING, ValueKind.NUMBER):
        options = schema.options(candidate.declared_type, candidate.field_name) or []
        return FieldMatch(Category.DROPDOWN, DetectionMethod.SCHEMA_MATCH, options=tuple(options))
    if input_type in ("INT", "FLOAT") and kind is ValueKind.NUMBER:
        return FieldMatch(Category.NUMBER, DetectionMethod.SCHEMA_MATCH)
    if input_type == "BOOLEAN" and kind is ValueKind.BOOLEAN:
        return FieldMatch(Category.BOOLEAN, DetectionMethod.SCHEMA_MATCH)
    return None


def parameter_name_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if not candidate.value.is_string:
        return None
    return _known_name_match(candidate, DetectionMethod.PATTERN_MATCH)


def parameter_default_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    # Short unknown strings are incidental configuration and stay unmatched
    if candidate.value.kind in (ValueKind.BOOLEAN, ValueKind.NUMBER):
        return _match_by_value(candidate, DetectionMethod.FALLBACK)
    return None


PARAMETER_STRATEGIES = [
    parameter_table_match,
    parameter_file_match,
    parameter_schema_match,
    parameter_name_match,
    parameter_default_match,
]


def classify_parameter(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if is_hard_excluded(candidate):
        return None
    if not candidate.config_known and is_soft_excluded(candidate):
        return None
    for strategy in PARAMETER_STRATEGIES:
        match = strategy(candidate, schema)
        if match is not None:
            return match
    return None
