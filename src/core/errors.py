"""
Core Error Handling System

Centralized error classes with actionable guidance for field classification
and edit reconciliation.

All errors follow MCP specification:
- Include "isError": true
- Include "code" for error categorization
- Include "suggestion" for actionable guidance
- Include "details" for additional context

None of these errors terminate the engine. They are recorded on degraded
results (zero fields, empty options, a skipped edit) and rendered with
to_dict() at the MCP/CLI boundary.
"""

from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field


@dataclass
class RichMCPError:
    """
    Rich MCP-compliant error response with actionable guidance.

    The simpler MCPError in mcp_utils.py is used by @mcp_tool_wrapper.
    This class is used by the domain-specific error subclasses below.

    Per MCP spec, tool execution errors should include:
    - isError: true (required)
    - code: error category (required)
    - error: human-readable message (required)
    - suggestion: actionable guidance (recommended)
    - details: additional context (optional)
    """

    code: str = ""
    error: str = ""
    suggestion: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    troubleshooting: Optional[str | List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to MCP-compliant error dict."""
        result: Dict[str, Any] = {
            "isError": True,
            "code": self.code,
            "error": self.error,
            "suggestion": self.suggestion,
        }
        if self.details:
            result["details"] = self.details
        if self.troubleshooting:
            result["troubleshooting"] = self.troubleshooting
        return result


@dataclass
class StructuralError(RichMCPError):
    """
    Document matches neither the GUI (Positional) nor the API (Named) encoding.

    Example:
        StructuralError(reason="top-level value is a list").to_dict()
    """

    reason: str = ""

    def __post_init__(self):
        self.code = "STRUCTURAL_ERROR"
        self.error = "Workflow document is not a recognised ComfyUI encoding."
        if self.reason:
            self.error = f"Workflow document is not a recognised ComfyUI encoding: {self.reason}"
        self.suggestion = (
            "Pass either a GUI workflow (object with a 'nodes' list) or an API prompt "
            "(object of node ids with 'class_type')."
        )
        self.details = {"reason": self.reason} if self.reason else {}
        self.troubleshooting = (
            "1. Export the workflow again from ComfyUI (Save or Save (API Format))\n"
            "2. Check the file is a JSON object, not a list or a string"
        )


@dataclass
class ResolutionError(RichMCPError):
    """
    Capability schema or catalog listing could not be fetched.

    Never propagated: callers fall back to local heuristics or empty options.
    """

    source: str = ""
    key: str = ""
    reason: str = ""

    def __post_init__(self):
        self.code = "RESOLUTION_ERROR"
        self.error = f"Could not resolve {self.source or 'resource'}"
        if self.key:
            self.error += f" '{self.key}'"
        if self.reason:
            self.error += f": {self.reason}"
        self.suggestion = "Is ComfyUI running? Options fall back to free-text entry until it is reachable."
        self.details = {"source": self.source, "key": self.key}
        if self.reason:
            self.details["reason"] = self.reason


@dataclass
class ValidationError(RichMCPError):
    """
    Staged edit value fails validation for its field shape.

    Example:
        ValidationError(field_id="3-steps", messages=["Must be a valid number"]).to_dict()
    """

    field_id: str = ""
    messages: List[str] = field(default_factory=list)
    value: Optional[Any] = None

    def __post_init__(self):
        self.code = "VALIDATION_ERROR"
        joined = "; ".join(self.messages) if self.messages else "invalid value"
        self.error = f"Invalid value for field '{self.field_id}': {joined}"
        self.suggestion = "Correct the staged value; the edit was not committed."
        self.details = {"field_id": self.field_id, "errors": list(self.messages), "value": self.value}


@dataclass
class AddressingError(RichMCPError):
    """
    A committed edit could not be mapped to a slot during reconciliation.

    Only the single edit is dropped; the rest of the document is still reconciled.
    """

    node_id: str = ""
    field_name: str = ""
    reason: str = ""

    def __post_init__(self):
        self.code = "ADDRESSING_ERROR"
        self.error = f"Edit for node {self.node_id} field '{self.field_name}' could not be applied"
        if self.reason:
            self.error += f": {self.reason}"
        self.suggestion = "Use the field names reported by list_editable_fields, or widget_<index>."
        self.details = {"node_id": self.node_id, "field_name": self.field_name, "reason": self.reason}


@dataclass
class EditStateError(RichMCPError):
    """Edit session operation called in a state where it is not legal."""

    operation: str = ""
    state: str = ""

    def __post_init__(self):
        self.code = "EDIT_STATE_ERROR"
        self.error = f"Cannot {self.operation} while edit session is {self.state}"
        self.suggestion = "Call start_edit() first; update/commit/cancel are only legal while editing."
        self.details = {"operation": self.operation, "state": self.state}


class EditStateException(Exception):
    """Raised for illegal edit session transitions; carries the rich error."""

    def __init__(self, error: EditStateError):
        super().__init__(error.error)
        self.rich_error = error


# =============================================================================
# Error Factory Functions
# =============================================================================


def format_structural_error(reason: str) -> Dict[str, Any]:
    """Format error for an unrecognised workflow document."""
    return StructuralError(reason=reason).to_dict()


def format_validation_error(field_id: str, messages: List[str], value: Any = None) -> Dict[str, Any]:
    """Format error for a rejected field value."""
    return ValidationError(field_id=field_id, messages=messages, value=value).to_dict()
