"""
Edit Session

Holds at most one in-flight edit per document and the edits committed so far.

States: IDLE -> EDITING -> (COMMITTED | CANCELLED) -> IDLE

- start_edit() while EDITING cancels the live session (logged, never merged)
- update_staged() re-validates on every call
- commit() only succeeds when the staged value is valid
- cancel() leaves committed edits untouched
"""

import copy
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from core import EditStateError, EditStateException, ValidationError

from .field_types import coerce_value, validate_value
from .mcp_utils import log_structured
from .workflow_model import ClassifiedField, is_connection_reference

STRICT_OPTIONS = os.environ.get("COMFYUI_STRICT_OPTIONS", "").lower() in ("1", "true", "yes")


class SessionState(Enum):
    IDLE = "idle"
    EDITING = "editing"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class CommittedEdits:
    """
    Committed values per node and field: {node_id: {field_name: value}}.

    Connection references are never stored.
    """

    def __init__(self, edits: Optional[Dict[str, Dict[str, Any]]] = None):
        self._edits: Dict[str, Dict[str, Any]] = {}
        for node_id, fields in (edits or {}).items():
            for field_name, value in fields.items():
                self.set(node_id, field_name, value)

    @classmethod
    def from_dict(cls, edits: Dict[str, Dict[str, Any]]) -> "CommittedEdits":
        return cls(edits)

    def set(self, node_id, field_name: str, value: Any):
        if is_connection_reference(value):
            raise ValueError(f"Connection reference cannot be committed for {node_id}-{field_name}")
        self._edits.setdefault(str(node_id), {})[field_name] = value

    def get(self, node_id, field_name: str, default: Any = None) -> Any:
        return self._edits.get(str(node_id), {}).get(field_name, default)

    def has(self, node_id, field_name: str) -> bool:
        return field_name in self._edits.get(str(node_id), {})

    def remove(self, node_id, field_name: str) -> bool:
        fields = self._edits.get(str(node_id))
        if not fields or field_name not in fields:
            return False
        del fields[field_name]
        if not fields:
            del self._edits[str(node_id)]
        return True

    def clear(self):
        self._edits.clear()

    def node_ids(self) -> List[str]:
        return list(self._edits)

    def items(self) -> Iterator[Tuple[str, str, Any]]:
        for node_id, fields in self._edits.items():
            for field_name, value in fields.items():
                yield node_id, field_name, value

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        return copy.deepcopy(self._edits)

    def __len__(self) -> int:
        return sum(len(fields) for fields in self._edits.values())

    def __eq__(self, other) -> bool:
        if isinstance(other, CommittedEdits):
            return self._edits == other._edits
        if isinstance(other, dict):
            return self._edits == other
        return NotImplemented


@dataclass
class EditSession:
    """The one live edit: target field, original and staged values, validation state."""

    target: ClassifiedField
    original_value: Any
    staged_value: Any
    started_at: float
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)

    @property
    def field_id(self) -> str:
        return self.target.field_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_id": self.field_id,
            "node_id": self.target.node_id,
            "field_name": self.target.field_name,
            "original_value": self.original_value,
            "staged_value": self.staged_value,
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "started_at": self.started_at,
        }


@dataclass
class CommitResult:
    success: bool
    field_id: str
    value: Any = None
    errors: List[str] = field(default_factory=list)
    error: Optional[ValidationError] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success and self.error is not None:
            return self.error.to_dict()
        return {"success": self.success, "field_id": self.field_id, "value": self.value}


@dataclass(frozen=True)
class EditCheckpoint:
    """Snapshot of the live session and committed edits."""

    session: Optional[EditSession]
    edits: Dict[str, Dict[str, Any]]
    created_at: float


class EditSessionManager:
    """
    Single-session edit state machine for one document.

    Args:
        committed: Existing CommittedEdits to accumulate into.
        option_lookup: Returns known options for a field (used in strict mode only).
        strict_options: Validate dropdown values against resolved options.
        clock: Time source for started_at and checkpoints.
    """

    def __init__(
        self,
        committed: Optional[CommittedEdits] = None,
        option_lookup: Optional[Callable[[ClassifiedField], Optional[List[str]]]] = None,
        strict_options: bool = STRICT_OPTIONS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.committed = committed if committed is not None else CommittedEdits()
        self.option_lookup = option_lookup
        self.strict_options = strict_options
        self.clock = clock or time.time
        self.state = SessionState.IDLE
        self.last_outcome: Optional[SessionState] = None
        self.session: Optional[EditSession] = None

    def _require_editing(self, operation: str):
        if self.state is not SessionState.EDITING or self.session is None:
            raise EditStateException(EditStateError(operation=operation, state=self.state.value))

    def _finish(self, outcome: SessionState):
        self.state = outcome
        self.last_outcome = outcome
        self.session = None
        self.state = SessionState.IDLE

    def start_edit(self, target: ClassifiedField) -> EditSession:
        if not target.surfaced:
            raise ValueError(f"Field {target.field_id} is not editable")

        if self.state is SessionState.EDITING and self.session is not None:
            log_structured(
                "info",
                "edit_session_replaced",
                previous_field=self.session.field_id,
                field_id=target.field_id,
            )
            self._finish(SessionState.CANCELLED)

        current = self.committed.get(target.node_id, target.field_name, target.value)
        self.session = EditSession(
            target=target,
            original_value=target.value,
            staged_value=coerce_value(target.type_shape, current),
            started_at=self.clock(),
        )
        self.state = SessionState.EDITING
        self._validate()
        log_structured("debug", "edit_session_started", field_id=target.field_id)
        return self.session

    def update_staged(self, value: Any) -> EditSession:
        self._require_editing("update_staged")
        self.session.staged_value = value
        self._validate()
        return self.session

    def _validate(self):
        session = self.session
        options = None
        if self.strict_options and self.option_lookup is not None:
            options = self.option_lookup(session.target)
        session.errors = validate_value(
            session.target.type_shape,
            session.staged_value,
            options=options,
            strict_options=self.strict_options,
        )
        session.is_valid = not session.errors

    def commit(self) -> CommitResult:
        self._require_editing("commit")
        self._validate()
        session = self.session

        if not session.is_valid:
            error = ValidationError(field_id=session.field_id, messages=session.errors, value=session.staged_value)
            log_structured("info", "edit_commit_rejected", field_id=session.field_id, errors=session.errors)
            return CommitResult(False, session.field_id, session.staged_value, list(session.errors), error)

        value = coerce_value(session.target.type_shape, session.staged_value)
        self.committed.set(session.target.node_id, session.target.field_name, value)
        log_structured("info", "edit_committed", field_id=session.field_id)
        result = CommitResult(True, session.field_id, value)
        self._finish(SessionState.COMMITTED)
        return result

    def cancel(self):
        self._require_editing("cancel")
        log_structured("debug", "edit_cancelled", field_id=self.session.field_id)
        self._finish(SessionState.CANCELLED)

    def is_editing_field(self, node_id, field_name: str) -> bool:
        if self.state is not SessionState.EDITING or self.session is None:
            return False
        target = self.session.target
        return target.node_id == str(node_id) and target.field_name == field_name

    def create_checkpoint(self) -> EditCheckpoint:
        return EditCheckpoint(copy.deepcopy(self.session), self.committed.as_dict(), self.clock())

    def restore_from_checkpoint(self, checkpoint: EditCheckpoint):
        self.committed.clear()
        for node_id, fields in checkpoint.edits.items():
            for field_name, value in fields.items():
                self.committed.set(node_id, field_name, value)
        self.session = copy.deepcopy(checkpoint.session)
        self.state = SessionState.EDITING if self.session is not None else SessionState.IDLE
        log_structured("debug", "edit_checkpoint_restored", editing=self.session is not None)

    def reset_edits(self):
        """Drop all committed edits and any live session."""
        self.committed.clear()
        self.session = None
        self.state = SessionState.IDLE
