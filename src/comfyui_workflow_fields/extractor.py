"""
Candidate Extractor

Walks canonical nodes and yields one FieldCandidate per addressable leaf value.
Connection references (graph edges) are dropped here so no classifier sees them.
"""

from typing import List

from . import node_tables
from .workflow_model import CanonicalNode, Encoding, FieldCandidate, Slot, ValueKind


def extract_candidates(nodes: List[CanonicalNode], schema=None) -> List[FieldCandidate]:
    """
    Extract classification candidates.

    Args:
        nodes: Output of normalize().
        schema: Optional NodeSchemaIndex used to name GUI widgets of unknown node types.

    Returns:
        Candidates in node order, then slot order.
    """
    candidates = []
    for node in nodes:
        if node.encoding is Encoding.POSITIONAL:
            candidates.extend(_positional_candidates(node, schema))
        else:
            candidates.extend(_named_candidates(node))
    return candidates


def positional_field_name(declared_type: str, index: int, schema=None) -> tuple:
    """
    Resolve the field name of a GUI widget slot.

    Returns:
        (field_name, config_known)
    """
    name = node_tables.layout_field_name(declared_type, index)
    if name:
        return name, True
    if schema is not None:
        widget_names = schema.widget_names(declared_type)
        if widget_names and index < len(widget_names) and widget_names[index]:
            return widget_names[index], False
    return f"widget_{index}", False


def _positional_candidates(node: CanonicalNode, schema) -> List[FieldCandidate]:
    result = []
    for index, value in enumerate(node.values):
        field_name, config_known = positional_field_name(node.declared_type, index, schema)
        result.append(
            FieldCandidate(
                node_id=node.id,
                declared_type=node.declared_type,
                title=node.title,
                slot=Slot.positional(index),
                value=value,
                encoding=Encoding.POSITIONAL,
                field_name=field_name,
                config_known=config_known,
            )
        )
    return result


def _named_candidates(node: CanonicalNode) -> List[FieldCandidate]:
    layout = node_tables.WIDGET_LAYOUTS.get(node.declared_type) or []
    result = []
    for name, value in node.values.items():
        if value.kind is ValueKind.CONNECTION:
            continue
        result.append(
            FieldCandidate(
                node_id=node.id,
                declared_type=node.declared_type,
                title=node.title,
                slot=Slot.named(name),
                value=value,
                encoding=Encoding.NAMED,
                field_name=name,
                config_known=name in layout,
            )
        )
    return result
