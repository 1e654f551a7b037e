"""ComfyUI Workflow Fields MCP Server - Main entry point."""

from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from .classification import classify_document
from .client import get_client
from .dropdown_provider import available_catalogs, get_option_provider, source_for_name
from .editor import WorkflowEditor
from .mcp_utils import log_structured, mcp_error, mcp_success, mcp_tool_wrapper, validation_error
from .schema_provider import get_schema_provider
from .workflow_diff import diff_documents
from .workflow_model import Category

# Initialize MCP server
mcp = FastMCP(
    "comfyui-workflow-fields",
    instructions="Find, validate and edit the user-editable fields of ComfyUI workflows",
)


def _to_mcp_response(result: dict) -> dict:
    """Convert result to MCP format with isError flag."""
    if isinstance(result, dict) and "error" in result and "isError" not in result:
        return {
            **result,
            "isError": True,
            "code": result.get("code", "TOOL_ERROR"),
        }
    return result


def _editor(workflow: Any) -> WorkflowEditor:
    return WorkflowEditor(
        workflow,
        schema_provider=get_schema_provider(),
        option_provider=get_option_provider(),
    )


def _parse_category(category: Optional[str]):
    """Category enum for a name like "seed", None when not given; raises ValueError."""
    if not category:
        return None
    try:
        return Category(category.lower())
    except ValueError:
        names = ", ".join(c.value for c in Category)
        raise ValueError(f"Unknown category '{category}'. Use: {names}")


def _apply(workflow: Any, edits: Dict[str, Dict[str, Any]]) -> dict:
    editor = _editor(workflow)
    if editor.summary.error is not None:
        return editor.summary.error.to_dict()
    loaded = editor.apply_stored_edits(edits)
    reconciled = editor.reconcile()
    return {
        "workflow": reconciled.document,
        "applied": loaded["applied"],
        "skipped": loaded["skipped"],
        "dropped": [error.to_dict() for error in reconciled.dropped],
        "diff": diff_documents(editor.original_document, reconciled.document),
    }


# =============================================================================
# Classification
# =============================================================================


@mcp.tool()
@mcp_tool_wrapper
def analyze_workflow(workflow: dict) -> dict:
    """
    Classify every editable value of a workflow.

    Accepts both the GUI export ({"nodes": [...]}) and the API prompt format.
    Returns per-category counts, editable fields and media (image input) fields.
    """
    schema = get_schema_provider().peek()
    summary = classify_document(workflow, schema)
    if summary.error is not None:
        return _to_mcp_response(summary.error.to_dict())
    result = summary.to_dict()
    result["schema_loaded"] = schema is not None
    return result


@mcp.tool()
@mcp_tool_wrapper
def list_editable_fields(workflow: dict, category: str = None) -> dict:
    """
    List editable fields, optionally for one category.

    Args:
        workflow: GUI or API workflow JSON.
        category: seed, prompt, text, model, dropdown, number or boolean.
    """
    try:
        wanted = _parse_category(category)
    except ValueError as e:
        return _to_mcp_response(validation_error(str(e), field="category"))
    editor = _editor(workflow)
    if editor.summary.error is not None:
        return _to_mcp_response(editor.summary.error.to_dict())
    fields = editor.fields(wanted)
    return mcp_success({"fields": [f.to_dict() for f in fields], "count": len(fields)})


@mcp.tool()
@mcp_tool_wrapper
def get_field_options(node_type: str, field_name: str, value: str = "", wait: bool = False) -> dict:
    """
    Option list for a dropdown or model field.

    Status "pending" means the listing is still loading; call again or pass
    wait=True. An empty list means free-text entry.
    """
    source = source_for_name(node_type, field_name, value)
    result = get_option_provider().resolve_source(source, wait=wait)
    data = result.to_dict()
    data["subtype"] = source.subtype
    if source.catalog:
        data["catalog"] = source.catalog
    return data


@mcp.tool()
@mcp_tool_wrapper
def validate_field_value(workflow: dict, node_id: str, field_name: str, value: Any) -> dict:
    """Check a candidate value for one field without changing anything."""
    editor = _editor(workflow)
    if editor.summary.error is not None:
        return _to_mcp_response(editor.summary.error.to_dict())
    if editor.get_field(node_id, field_name) is None:
        return _to_mcp_response(
            mcp_error(f"No field '{field_name}' on node {node_id}", "NOT_FOUND", {"field_id": f"{node_id}-{field_name}"})
        )
    errors = editor.validate_value(node_id, field_name, value)
    return {"valid": not errors, "errors": errors, "field_id": f"{node_id}-{field_name}"}


# =============================================================================
# Editing
# =============================================================================


@mcp.tool()
@mcp_tool_wrapper
def apply_field_edits(workflow: dict, edits: dict) -> dict:
    """
    Apply edits and return the reconciled workflow.

    Args:
        workflow: GUI or API workflow JSON. Never modified.
        edits: {node_id: {field_name: value}}. Invalid or unknown entries are
            reported under "skipped"; edits that cannot be addressed in the
            document are reported under "dropped".
    """
    return _to_mcp_response(_apply(workflow, edits))


@mcp.tool()
@mcp_tool_wrapper
def randomize_seeds(workflow: dict) -> dict:
    """Give every seed field a fresh random value; returns the reconciled workflow."""
    editor = _editor(workflow)
    if editor.summary.error is not None:
        return _to_mcp_response(editor.summary.error.to_dict())
    seeds = editor.randomize_all_seeds()
    return {"workflow": editor.reconcile().document, "seeds": seeds}


@mcp.tool()
@mcp_tool_wrapper
def diff_workflow_documents(workflow_a: dict, workflow_b: dict) -> dict:
    """Field-level differences between two workflows of the same encoding."""
    return _to_mcp_response(diff_documents(workflow_a, workflow_b))


@mcp.tool()
@mcp_tool_wrapper
def submit_workflow(workflow: dict, edits: dict = None) -> dict:
    """
    Apply edits and queue the result on ComfyUI.

    The workflow must be in API format for ComfyUI to execute it. The /prompt
    response is returned unchanged under "response".
    """
    applied = _apply(workflow, edits or {})
    if "error" in applied:
        return _to_mcp_response(applied)
    response = get_client().queue_prompt(applied["workflow"])
    if isinstance(response, dict) and "error" in response:
        log_structured("error", "workflow_submit_failed", error=str(response["error"]))
        return _to_mcp_response(mcp_error(str(response["error"]), "CONNECTION_ERROR"))
    return {
        "response": response,
        "applied": applied["applied"],
        "skipped": applied["skipped"],
        "dropped": applied["dropped"],
    }


@mcp.tool()
@mcp_tool_wrapper
def clear_option_cache(catalog: str = None) -> dict:
    """Drop cached option lists (all of them, or one catalog such as "loras")."""
    if catalog and catalog not in available_catalogs():
        known = ", ".join(available_catalogs())
        return validation_error(f"Unknown catalog '{catalog}'. Use: {known}", field="catalog")
    provider = get_option_provider()
    if catalog:
        cleared = provider.clear_cache_for_catalog(catalog)
    else:
        cleared = provider.clear_cache()
        get_schema_provider().invalidate()
    return {"cleared": cleared, "catalog": catalog}


@mcp.tool()
@mcp_tool_wrapper
def list_option_catalogs() -> dict:
    """Model and input folders that file dropdowns are listed from."""
    return {"catalogs": available_catalogs()}


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
