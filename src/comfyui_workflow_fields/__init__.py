"""
ComfyUI Workflow Fields

Finds the user-editable fields of a ComfyUI workflow (GUI export or API
prompt), classifies them as seeds, prompts, models, dropdowns, numbers and
toggles, and writes validated edits back into the document. Exposed as an MCP
server and a CLI.
"""

__version__ = "0.1.0"

from .server import mcp, main
from .classification import FieldSummary, classify_document
from .editor import WorkflowEditor, random_seed
from .edit_session import CommittedEdits, EditSessionManager, SessionState
from .reconciler import ReconcileResult, reconcile
from .workflow_diff import diff_documents
from .workflow_model import Category, ClassifiedField, DetectionMethod, Encoding

__all__ = [
    "mcp",
    "main",
    "FieldSummary",
    "classify_document",
    "WorkflowEditor",
    "random_seed",
    "CommittedEdits",
    "EditSessionManager",
    "SessionState",
    "ReconcileResult",
    "reconcile",
    "diff_documents",
    "Category",
    "ClassifiedField",
    "DetectionMethod",
    "Encoding",
]
