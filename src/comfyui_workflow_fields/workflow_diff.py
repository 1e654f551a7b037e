"""
Workflow Diff

Compare two versions of the same workflow document (typically the original and
its reconciled copy) and report which node values changed. Works for GUI
workflows (widgets_values) and API prompts (inputs).
"""

from typing import Any, Dict, List

from .normalizer import detect_encoding
from .workflow_model import Encoding


def diff_documents(document_a: Any, document_b: Any) -> dict:
    """
    Compare two workflow documents and return differences.

    Returns:
        {
            "encoding": "positional" | "named",
            "nodes_added": [...],       # In B but not A
            "nodes_removed": [...],     # In A but not B
            "nodes_modified": [...],    # In both but different
            "nodes_unchanged": N,
            "identical": bool,
            "summary": "..."
        }
    """
    encoding_a = detect_encoding(document_a)
    encoding_b = detect_encoding(document_b)
    if encoding_a is None or encoding_a is not encoding_b:
        return {
            "error": "Documents must both be GUI workflows or both be API prompts",
            "code": "VALIDATION_ERROR",
            "encodings": [
                encoding_a.value if encoding_a else None,
                encoding_b.value if encoding_b else None,
            ],
        }

    if encoding_a is Encoding.POSITIONAL:
        nodes_a = _index_gui(document_a)
        nodes_b = _index_gui(document_b)
        type_key, diff_fn = "type", _diff_gui_nodes
    else:
        nodes_a = {k: v for k, v in document_a.items() if not str(k).startswith("_")}
        nodes_b = {k: v for k, v in document_b.items() if not str(k).startswith("_")}
        type_key, diff_fn = "class_type", _diff_api_nodes

    added = sorted(set(nodes_b) - set(nodes_a))
    removed = sorted(set(nodes_a) - set(nodes_b))
    common = sorted(set(nodes_a) & set(nodes_b))

    nodes_added = [{"node_id": n, "class_type": _node_type(nodes_b[n], type_key)} for n in added]
    nodes_removed = [{"node_id": n, "class_type": _node_type(nodes_a[n], type_key)} for n in removed]

    nodes_modified = []
    unchanged_count = 0
    for node_id in common:
        changes = diff_fn(nodes_a[node_id], nodes_b[node_id])
        if changes:
            nodes_modified.append(
                {
                    "node_id": node_id,
                    "class_type": _node_type(nodes_a[node_id], type_key),
                    "changes": changes,
                }
            )
        else:
            unchanged_count += 1

    parts = []
    if nodes_added:
        parts.append(f"{len(nodes_added)} node(s) added")
    if nodes_removed:
        parts.append(f"{len(nodes_removed)} node(s) removed")
    if nodes_modified:
        parts.append(f"{len(nodes_modified)} node(s) modified")
    if unchanged_count:
        parts.append(f"{unchanged_count} node(s) unchanged")
    summary = ", ".join(parts) if parts else "Workflows are identical"

    return {
        "encoding": encoding_a.value,
        "nodes_added": nodes_added,
        "nodes_removed": nodes_removed,
        "nodes_modified": nodes_modified,
        "nodes_unchanged": unchanged_count,
        "summary": summary,
        "identical": not nodes_added and not nodes_removed and not nodes_modified,
    }


def _index_gui(document: dict) -> Dict[str, dict]:
    return {str(node.get("id")): node for node in document.get("nodes", []) if isinstance(node, dict)}


def _node_type(node: Any, type_key: str) -> str:
    if isinstance(node, dict):
        return node.get(type_key) or "unknown"
    return "unknown"


def _diff_gui_nodes(node_a: dict, node_b: dict) -> List[dict]:
    changes = []
    if node_a.get("type") != node_b.get("type"):
        changes.append({"field": "type", "from": node_a.get("type"), "to": node_b.get("type")})

    widgets_a = node_a.get("widgets_values")
    widgets_b = node_b.get("widgets_values")
    if isinstance(widgets_a, list) and isinstance(widgets_b, list):
        for index in range(max(len(widgets_a), len(widgets_b))):
            val_a = widgets_a[index] if index < len(widgets_a) else None
            val_b = widgets_b[index] if index < len(widgets_b) else None
            if val_a != val_b:
                changes.append(
                    {
                        "field": f"widgets_values[{index}]",
                        "from": _summarize_value(val_a),
                        "to": _summarize_value(val_b),
                    }
                )
    elif isinstance(widgets_a, dict) and isinstance(widgets_b, dict):
        changes.extend(_diff_mapping(widgets_a, widgets_b, "widgets_values"))
    elif widgets_a != widgets_b:
        changes.append(
            {
                "field": "widgets_values",
                "from": _summarize_value(widgets_a),
                "to": _summarize_value(widgets_b),
            }
        )

    # Anything outside widgets_values (pos, size, properties, links) is reported as one entry
    rest_a = {k: v for k, v in node_a.items() if k not in ("type", "widgets_values")}
    rest_b = {k: v for k, v in node_b.items() if k not in ("type", "widgets_values")}
    if rest_a != rest_b:
        keys = sorted(k for k in set(rest_a) | set(rest_b) if rest_a.get(k) != rest_b.get(k))
        changes.append({"field": "structure", "keys": keys})
    return changes


def _diff_api_nodes(node_a: Any, node_b: Any) -> List[dict]:
    if not isinstance(node_a, dict) or not isinstance(node_b, dict):
        if node_a != node_b:
            return [{"field": "node", "from": str(node_a)[:100], "to": str(node_b)[:100]}]
        return []

    changes = []
    if node_a.get("class_type") != node_b.get("class_type"):
        changes.append(
            {
                "field": "class_type",
                "from": node_a.get("class_type"),
                "to": node_b.get("class_type"),
            }
        )
    changes.extend(_diff_mapping(node_a.get("inputs", {}), node_b.get("inputs", {}), "inputs"))
    return changes


def _diff_mapping(values_a: dict, values_b: dict, prefix: str) -> List[dict]:
    changes = []
    for key in sorted(set(values_a) | set(values_b)):
        val_a = values_a.get(key)
        val_b = values_b.get(key)
        if val_a != val_b:
            changes.append(
                {
                    "field": f"{prefix}.{key}",
                    "from": _summarize_value(val_a),
                    "to": _summarize_value(val_b),
                }
            )
    return changes


def _summarize_value(value: Any) -> Any:
    """Summarize a value for display in diff output."""
    if value is None:
        return None
    if isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        return value[:100] + "..." if len(value) > 100 else value
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return f"<dict with {len(value)} keys>"
    return str(value)[:100]
