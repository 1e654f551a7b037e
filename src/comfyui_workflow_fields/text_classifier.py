"""
Text Classifier

Ordered strategies over string values, first match wins:
1. table   - known text-bearing node types with per-slot role
2. pattern - reject values that look like numbers, booleans, control keywords,
             paths or file names; accept on naming clues or length
3. schema  - STRING inputs in the capability schema

Accepted values become Prompt or Text. The prompt sub-classification looks at
the field name and length only, never at which prompt role the text fills.
"""

from typing import Optional

from . import node_tables
from .field_types import parse_number
from .workflow_model import Category, DetectionMethod, FieldCandidate, FieldMatch

_TYPE_CLUES = ("text", "prompt", "string", "multiline")
_NAME_CLUES = ("text", "prompt")
_PROMPT_NAME_CLUES = ("prompt", "positive", "negative")

MIN_TEXT_LENGTH = 3
LONG_TEXT_LENGTH = 15
PROMPT_LENGTH = 50


def is_rejected_text(value: str) -> bool:
    """True for strings that are configuration, not text."""
    stripped = value.strip()
    lowered = stripped.lower()
    if len(stripped) < MIN_TEXT_LENGTH:
        return True
    if stripped.isdigit() or parse_number(stripped) is not None:
        return True
    if lowered in node_tables.BOOLEAN_WORDS or lowered in node_tables.CONTROL_KEYWORDS:
        return True
    if "/" in stripped or "\\" in stripped:
        return True
    if node_tables.has_suffix(stripped, node_tables.MODEL_SUFFIXES + node_tables.IMAGE_SUFFIXES):
        return True
    return False


def sub_classify(candidate: FieldCandidate) -> Category:
    field_name = candidate.field_name.lower()
    if any(clue in field_name for clue in _PROMPT_NAME_CLUES):
        return Category.PROMPT
    raw = candidate.value.raw
    if len(raw) > PROMPT_LENGTH and " " in raw:
        return Category.PROMPT
    return Category.TEXT


def _owned_by_parameters(candidate: FieldCandidate) -> bool:
    if node_tables.known_parameter_options(candidate.field_name) is not None:
        return True
    roles = node_tables.TEXT_NODE_TYPES.get(candidate.declared_type, {})
    return candidate.config_known and candidate.field_name not in roles


def text_table_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if not candidate.value.is_string:
        return None
    roles = node_tables.TEXT_NODE_TYPES.get(candidate.declared_type)
    if not roles or candidate.field_name not in roles:
        return None
    category = Category.PROMPT if roles[candidate.field_name] == node_tables.ROLE_PROMPT else Category.TEXT
    return FieldMatch(category, DetectionMethod.TABLE_MATCH)


def text_pattern_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if not candidate.value.is_string or _owned_by_parameters(candidate):
        return None
    raw = candidate.value.raw
    if is_rejected_text(raw):
        return None

    node_type = candidate.declared_type.lower()
    title = (candidate.title or "").lower()
    field_name = candidate.field_name.lower()

    accepted = (
        any(clue in node_type or clue in title for clue in _TYPE_CLUES)
        or any(clue in field_name for clue in _NAME_CLUES)
        or len(raw) > LONG_TEXT_LENGTH
        or ("encode" in node_type and len(raw) > 5)
    )
    if not accepted:
        return None
    return FieldMatch(sub_classify(candidate), DetectionMethod.PATTERN_MATCH)


def text_schema_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if schema is None or not candidate.value.is_string or _owned_by_parameters(candidate):
        return None
    if schema.input_type(candidate.declared_type, candidate.field_name) != "STRING":
        return None
    if schema.is_multiline(candidate.declared_type, candidate.field_name):
        return FieldMatch(Category.PROMPT, DetectionMethod.SCHEMA_MATCH)
    return FieldMatch(sub_classify(candidate), DetectionMethod.SCHEMA_MATCH)


TEXT_STRATEGIES = [text_table_match, text_pattern_match, text_schema_match]


def classify_text(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    for strategy in TEXT_STRATEGIES:
        match = strategy(candidate, schema)
        if match is not None:
            return match
    return None
