"""
Edit Reconciler

Writes committed edits into a deep copy of the original document:
- GUI workflows: field name -> widgets_values index
- API prompts:   inputs[field_name] = value

Nothing else in the document changes. An edit that cannot be addressed is
dropped with a warning; the rest of the edits are still applied.
"""

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core import AddressingError

from . import node_tables
from .edit_session import CommittedEdits
from .mcp_utils import log_structured
from .normalizer import detect_encoding
from .types import ReconcileResultDict
from .workflow_model import Encoding

_WIDGET_NAME_RE = re.compile(r"^widget_(\d+)$")

# Last resort for GUI nodes without a known layout
_FALLBACK_TEXT_FIELDS = ("text", "prompt")


@dataclass
class ReconcileResult:
    document: Any
    applied: List[Dict[str, Any]] = field(default_factory=list)
    dropped: List[AddressingError] = field(default_factory=list)

    def to_dict(self) -> ReconcileResultDict:
        return {
            "document": self.document,
            "applied": list(self.applied),
            "dropped": [error.to_dict() for error in self.dropped],
        }


def resolve_widget_index(declared_type: str, field_name: str, schema=None) -> Optional[int]:
    """
    Map a field name to a widgets_values index.

    Order: widget_<N>, layout table, schema widget order, text/prompt -> 0.
    """
    match = _WIDGET_NAME_RE.match(field_name)
    if match:
        return int(match.group(1))
    index = node_tables.layout_index(declared_type, field_name)
    if index is not None:
        return index
    if schema is not None:
        names = schema.widget_names(declared_type)
        if field_name in names:
            return names.index(field_name)
    if field_name in _FALLBACK_TEXT_FIELDS:
        return 0
    return None


def reconcile(document: Any, edits: CommittedEdits, schema=None) -> ReconcileResult:
    """
    Apply committed edits to an independent copy of document.

    Args:
        document: The original GUI workflow or API prompt; never modified.
        edits: Committed edits {node_id: {field_name: value}}.
        schema: Optional NodeSchemaIndex for GUI nodes without a known layout.

    Returns:
        ReconcileResult with the new document, applied edits and dropped edits.
    """
    result = ReconcileResult(copy.deepcopy(document))
    if not len(edits):
        return result

    encoding = detect_encoding(result.document)
    if encoding is Encoding.POSITIONAL:
        nodes = {str(node.get("id")): node for node in result.document["nodes"] if isinstance(node, dict)}
        for node_id, field_name, value in edits.items():
            node = nodes.get(node_id)
            if node is None:
                _drop(result, node_id, field_name, "node not found")
                continue
            _apply_gui(result, node, node_id, field_name, value, schema)
    elif encoding is Encoding.NAMED:
        for node_id, field_name, value in edits.items():
            node = result.document.get(node_id)
            if not isinstance(node, dict) or not isinstance(node.get("inputs"), dict):
                _drop(result, node_id, field_name, "node not found")
                continue
            node["inputs"][field_name] = copy.deepcopy(value)
            _applied(result, node_id, field_name, value)
    else:
        for node_id, field_name, _value in edits.items():
            _drop(result, node_id, field_name, "document is not a recognised workflow")

    log_structured(
        "info",
        "reconcile_completed",
        applied=len(result.applied),
        dropped=len(result.dropped),
    )
    return result


def _apply_gui(result: ReconcileResult, node: dict, node_id: str, field_name: str, value: Any, schema):
    widgets = node.get("widgets_values")
    if isinstance(widgets, dict):
        if field_name not in widgets:
            _drop(result, node_id, field_name, "widget name not present on node")
            return
        widgets[field_name] = copy.deepcopy(value)
        _applied(result, node_id, field_name, value)
        return

    declared_type = node.get("type") or node.get("class_type") or ""
    index = resolve_widget_index(declared_type, field_name, schema)
    if index is None:
        _drop(result, node_id, field_name, f"no widget index for '{field_name}' on {declared_type or 'node'}")
        return
    if not isinstance(widgets, list) or index >= len(widgets):
        _drop(result, node_id, field_name, f"widget index {index} out of range")
        return
    widgets[index] = copy.deepcopy(value)
    _applied(result, node_id, field_name, value, index)


def _applied(result: ReconcileResult, node_id: str, field_name: str, value: Any, index: Optional[int] = None):
    entry = {"node_id": node_id, "field_name": field_name, "value": value}
    if index is not None:
        entry["index"] = index
    result.applied.append(entry)


def _drop(result: ReconcileResult, node_id: str, field_name: str, reason: str):
    error = AddressingError(node_id=node_id, field_name=field_name, reason=reason)
    result.dropped.append(error)
    log_structured("warning", "reconcile_edit_dropped", node_id=node_id, field_name=field_name, reason=reason)
