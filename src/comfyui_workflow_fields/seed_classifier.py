"""
Seed Classifier

Ordered strategies, first match wins:
1. table   - seed slot of a known seed-bearing node type
2. pattern - naming clues on node type, title or field name
3. schema  - INT input the engine pairs with control_after_generate

Every accepted value satisfies 0 <= value < 2**31.
"""

from typing import Optional

from .node_tables import SEED_LIMIT, SEED_NODE_TYPES
from .workflow_model import Category, DetectionMethod, FieldCandidate, FieldMatch, ValueKind


def in_seed_range(candidate: FieldCandidate) -> bool:
    value = candidate.value
    if value.kind is not ValueKind.NUMBER or not value.is_integer:
        return False
    return 0 <= value.raw < SEED_LIMIT


def seed_table_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    seed_field = SEED_NODE_TYPES.get(candidate.declared_type)
    if seed_field is None or candidate.field_name != seed_field:
        return None
    if not in_seed_range(candidate):
        return None
    return FieldMatch(Category.SEED, DetectionMethod.TABLE_MATCH)


def seed_pattern_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    # Only the table slot of a known seed node may be a seed
    if candidate.declared_type in SEED_NODE_TYPES:
        return None
    if not in_seed_range(candidate):
        return None

    node_type = candidate.declared_type.lower()
    title = (candidate.title or "").lower()
    field_name = candidate.field_name.lower()

    if "seed" in node_type or "seed" in title or "seed" in field_name:
        return FieldMatch(Category.SEED, DetectionMethod.PATTERN_MATCH)
    if "sampl" in node_type and candidate.value.raw > 1000:
        return FieldMatch(Category.SEED, DetectionMethod.PATTERN_MATCH)
    if "random" in node_type or "noise" in node_type:
        return FieldMatch(Category.SEED, DetectionMethod.PATTERN_MATCH)
    return None


def seed_schema_match(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    if schema is None or candidate.declared_type in SEED_NODE_TYPES:
        return None
    if not in_seed_range(candidate):
        return None
    if schema.has_seed_control(candidate.declared_type, candidate.field_name):
        return FieldMatch(Category.SEED, DetectionMethod.SCHEMA_MATCH)
    return None


SEED_STRATEGIES = [seed_table_match, seed_pattern_match, seed_schema_match]


def classify_seed(candidate: FieldCandidate, schema=None) -> Optional[FieldMatch]:
    for strategy in SEED_STRATEGIES:
        match = strategy(candidate, schema)
        if match is not None:
            return match
    return None
