"""
MCP Utilities

Structured logging, correlation ids, MCP-compliant responses and the tool wrapper
shared by the field engine, the MCP server and the CLI.
"""

import time
import uuid
import json
import logging
import functools
from datetime import datetime
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from contextvars import ContextVar

from core import EditStateException

# =============================================================================
# Structured Logging
# =============================================================================

logger = logging.getLogger("comfyui-fields")
logger.setLevel(logging.INFO)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for machine parseability."""

    def format(self, record):
        # ISO 8601 with milliseconds
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

        log_entry = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "correlation_id"):
            log_entry["correlation_id"] = record.correlation_id
        if hasattr(record, "custom_fields"):
            log_entry.update(record.custom_fields)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, separators=(",", ":"), default=str)


if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def set_correlation_id(cid: str):
    """Set correlation ID for current context."""
    correlation_id_var.set(cid)


def get_correlation_id() -> str:
    """Get current correlation ID or generate new one."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())[:8]
        correlation_id_var.set(cid)
    return cid


def clear_correlation_id():
    """Clear correlation ID from context."""
    correlation_id_var.set(None)


def log_structured(level: str, message: str, **kwargs):
    """Emit structured JSON log with correlation ID and custom fields."""
    cid = get_correlation_id()
    extra = {"correlation_id": cid}
    if kwargs:
        extra["custom_fields"] = kwargs
    getattr(logger, level)(message, extra=extra)


@dataclass
class ToolInvocation:
    """Track a tool invocation for logging with correlation support."""

    tool_name: str
    invocation_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    correlation_id: str = field(default_factory=get_correlation_id)
    start_time: float = field(default_factory=time.time)

    def complete(self, status: str = "success", error: str = None) -> Dict[str, Any]:
        """Log completion with structured JSON format."""
        latency_ms = (time.time() - self.start_time) * 1000
        log_entry = {
            "tool": self.tool_name,
            "invocation_id": self.invocation_id,
            "correlation_id": self.correlation_id,
            "latency_ms": round(latency_ms, 2),
            "status": status,
        }
        if error:
            log_entry["error"] = error

        if status == "success":
            log_structured("info", "tool_completed", **log_entry)
        else:
            log_structured("error", "tool_failed", **log_entry)

        return log_entry


# =============================================================================
# MCP-Compliant Error Responses
# =============================================================================


@dataclass
class MCPError:
    """
    MCP-compliant error response.

    Per MCP spec, tool execution errors should include isError: true
    """

    message: str
    code: str = "TOOL_ERROR"
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to MCP-compliant error dict."""
        result = {
            "error": self.message,
            "code": self.code,
            "isError": True,
        }
        if self.details:
            result["details"] = self.details
        return result


def mcp_error(
    message: str,
    code: str = "TOOL_ERROR",
    details: Dict[str, Any] = None,
) -> Dict[str, Any]:
    """
    Create an MCP-compliant error response.

    Example:
        return mcp_error("Node not found", "NOT_FOUND", {"node_id": "12"})
    """
    return MCPError(message, code, details).to_dict()


def not_found_error(resource_type: str, identifier: str) -> Dict[str, Any]:
    """Resource not found error."""
    return mcp_error(
        f"{resource_type} not found: {identifier}",
        "NOT_FOUND",
        {resource_type.lower().replace(" ", "_"): identifier},
    )


def validation_error(message: str, field: str = None, errors: List[str] = None) -> Dict[str, Any]:
    """Input validation error."""
    details = {}
    if field:
        details["field"] = field
    if errors:
        details["errors"] = errors
    return mcp_error(message, "VALIDATION_ERROR", details or None)


def mcp_success(
    data: Any,
    message: str = None,
    metadata: Dict[str, Any] = None,
) -> Dict[str, Any]:
    """
    Create an MCP-compliant success response.

    Dict data is returned as a shallow copy, anything else is wrapped in {"data": ...}.
    """
    if isinstance(data, dict):
        result = data.copy()
    else:
        result = {"data": data}

    if message:
        result["message"] = message

    if metadata:
        result["_meta"] = metadata

    return result


# =============================================================================
# Tool Decorator with Logging
# =============================================================================


def mcp_tool_wrapper(func):
    """
    Decorator that adds MCP-compliant logging and error formatting to tools.

    Example:
        @mcp.tool()
        @mcp_tool_wrapper
        def my_tool(param: str) -> dict:
            ...
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        tool_name = func.__name__
        invocation = ToolInvocation(tool_name)

        try:
            result = func(*args, **kwargs)

            if isinstance(result, dict) and result.get("isError"):
                invocation.complete("error", result.get("error"))
            else:
                invocation.complete("success")

            return result

        except EditStateException as e:
            invocation.complete("error", str(e))
            return e.rich_error.to_dict()
        except Exception as e:
            invocation.complete("error", str(e))
            return mcp_error(str(e), "INTERNAL_ERROR")

    return wrapper
