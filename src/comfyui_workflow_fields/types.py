"""
Type Definitions for result dicts returned by the engine, the MCP tools and the CLI.

Usage:
    from comfyui_workflow_fields.types import FieldSummaryDict

    def analyze(workflow: dict) -> FieldSummaryDict:
        ...
"""

from typing import Any, Dict, List, Literal, Optional, TypedDict, Union
from typing_extensions import NotRequired, Required

CategoryName = Literal["seed", "prompt", "text", "model", "dropdown", "number", "boolean", "ignored"]
DetectionMethodName = Literal["tableMatch", "patternMatch", "schemaMatch", "fallback"]


class TypeShapeDict(TypedDict, total=False):
    """Edit-surface shape."""

    kind: Required[str]
    source: Required[Literal["local", "schema"]]
    options: List[str]
    catalog: str
    option_source: Literal["combo", "filesystem", "schema"]
    minimum: float
    maximum: float
    step: float


class ClassifiedFieldDict(TypedDict):
    """One classified field, as rendered for presentation layers."""

    field_id: str
    node_id: str
    node_type: str
    field_name: str
    display_name: str
    slot: Union[int, str]
    encoding: Literal["positional", "named"]
    value: Any
    category: CategoryName
    detection_method: DetectionMethodName
    shape: TypeShapeDict
    title: NotRequired[str]
    prompt_role: NotRequired[Literal["positive", "negative"]]
    subtype: NotRequired[str]


class FieldSummaryDict(TypedDict):
    """Structured summary of a classified document."""

    encoding: Optional[Literal["positional", "named"]]
    counts: Dict[str, int]
    total_candidates: int
    total_fields: int
    ignored: int
    unique_node_types: List[str]
    fields: List[ClassifiedFieldDict]
    media_fields: List[ClassifiedFieldDict]
    error: NotRequired[Dict[str, Any]]


class OptionResultDict(TypedDict):
    """Dropdown option resolution."""

    key: str
    status: Literal["loaded", "pending", "empty"]
    options: List[str]
    free_text: bool
    fetched_at: NotRequired[float]
    error: NotRequired[Dict[str, Any]]


class ReconcileResultDict(TypedDict):
    """Reconciled document plus what was applied and dropped."""

    document: Dict[str, Any]
    applied: List[Dict[str, Any]]
    dropped: List[Dict[str, Any]]
