"""
Graph Normalizer

Detects whether a workflow document is a GUI export or an API prompt and turns
it into a list of CanonicalNode. Pure: the input document is never modified.

Unknown shapes do not raise; they yield a NormalizationResult with no nodes and
a StructuralError attached.
"""

import re
from typing import Any, Dict, List, Optional

from core import StructuralError

from .mcp_utils import log_structured
from .workflow_model import CanonicalNode, Encoding, NormalizationResult, wrap_value

# Node ids in API prompts: "12", "12:3" (subgraph), "abc-1"
_NODE_ID_RE = re.compile(r"^[\w:.\-]+$")


def detect_encoding(document: Any) -> Optional[Encoding]:
    """
    Decide which encoding a document uses.

    Returns:
        Encoding.POSITIONAL for GUI exports, Encoding.NAMED for API prompts, None otherwise.
    """
    if not isinstance(document, dict):
        return None
    if isinstance(document.get("nodes"), list):
        return Encoding.POSITIONAL

    entries = {k: v for k, v in document.items() if not str(k).startswith("_")}
    if not entries:
        return None
    for key, node in entries.items():
        if not isinstance(key, str) or not _NODE_ID_RE.match(key):
            return None
        if not isinstance(node, dict) or not isinstance(node.get("class_type"), str):
            return None
    return Encoding.NAMED


def normalize(document: Any) -> NormalizationResult:
    """
    Normalize a workflow document into canonical nodes.

    Args:
        document: Parsed JSON of a GUI workflow or an API prompt.

    Returns:
        NormalizationResult with encoding and nodes, or an error and zero nodes.
    """
    encoding = detect_encoding(document)
    if encoding is Encoding.POSITIONAL:
        return NormalizationResult(encoding, _normalize_gui(document["nodes"]))
    if encoding is Encoding.NAMED:
        return NormalizationResult(encoding, _normalize_api(document))

    error = StructuralError(reason=_describe_shape(document))
    log_structured("warning", "normalization_failed", reason=error.details.get("reason"))
    return NormalizationResult(None, [], error)


def _normalize_gui(nodes: List[Any]) -> List[CanonicalNode]:
    result = []
    for node in nodes:
        if not isinstance(node, dict) or "id" not in node:
            continue
        declared_type = node.get("type") or node.get("class_type") or ""
        if not isinstance(declared_type, str):
            declared_type = str(declared_type)
        title = node.get("title") if isinstance(node.get("title"), str) else None
        widgets = node.get("widgets_values")

        if isinstance(widgets, dict):
            # Some custom nodes (video combine) store widgets by name
            values: Any = {name: wrap_value(raw, Encoding.POSITIONAL) for name, raw in widgets.items()}
            node_encoding = Encoding.NAMED
        else:
            if not isinstance(widgets, list):
                widgets = []
            values = tuple(wrap_value(raw, Encoding.POSITIONAL) for raw in widgets)
            node_encoding = Encoding.POSITIONAL

        result.append(CanonicalNode(str(node["id"]), declared_type, title, node_encoding, values))
    return result


def _normalize_api(document: Dict[str, Any]) -> List[CanonicalNode]:
    result = []
    for node_id, node in document.items():
        if str(node_id).startswith("_"):
            continue
        meta = node.get("_meta")
        title = meta.get("title") if isinstance(meta, dict) and isinstance(meta.get("title"), str) else None
        inputs = node.get("inputs")
        if not isinstance(inputs, dict):
            inputs = {}
        values = {name: wrap_value(raw, Encoding.NAMED) for name, raw in inputs.items()}
        result.append(CanonicalNode(str(node_id), node["class_type"], title, Encoding.NAMED, values))
    return result


def _describe_shape(document: Any) -> str:
    if document is None:
        return "document is empty"
    if not isinstance(document, dict):
        return f"top-level value is {type(document).__name__}, expected object"
    if not document:
        return "document has no nodes"
    if "nodes" in document:
        return "'nodes' is not a list"
    return "entries are not nodes with 'class_type'"
