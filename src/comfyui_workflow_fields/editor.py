"""
Workflow Editor

Facade tying the engine together for one document: classification, the
single-session edit state machine, dropdown options, seed helpers and
reconciliation.

Usage:
    editor = WorkflowEditor(workflow)
    editor.start_edit("3", "steps")
    editor.update_staged("30")
    editor.commit()
    result = editor.reconcile()   # result.document is ready to submit
"""

import copy
import random
from typing import Any, Callable, Dict, List, Optional

from . import node_tables
from .classification import FieldSummary, classify_document
from .dropdown_provider import DropdownOptionProvider, OptionResult, OptionStatus, source_for_field
from .edit_session import STRICT_OPTIONS, CommitResult, CommittedEdits, EditSession, EditSessionManager
from .field_types import coerce_value, validate_value
from .mcp_utils import log_structured
from .reconciler import ReconcileResult, reconcile
from .schema_provider import SchemaProvider
from .workflow_diff import diff_documents
from .workflow_model import Category, ClassifiedField, ShapeKind, is_connection_reference

SEED_MAX = node_tables.SEED_LIMIT - 1


def random_seed(rng: Optional[random.Random] = None) -> int:
    """Random seed in [1, 2**31 - 1]."""
    return (rng or random).randint(1, SEED_MAX)


class WorkflowEditor:
    """Edit surface for one workflow document."""

    def __init__(
        self,
        document: Any,
        schema_provider: Optional[SchemaProvider] = None,
        option_provider: Optional[DropdownOptionProvider] = None,
        strict_options: bool = STRICT_OPTIONS,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
    ):
        # Reconciliation always starts from this private copy
        self._original = copy.deepcopy(document)
        self.schema_provider = schema_provider
        self.option_provider = option_provider
        self.rng = rng
        self._schema = None
        self.sessions = EditSessionManager(
            option_lookup=self._known_options,
            strict_options=strict_options,
            clock=clock,
        )
        self._summary = self._classify()

    def _classify(self) -> FieldSummary:
        schema = self.schema_provider.peek() if self.schema_provider is not None else None
        # Reconciliation addresses slots with the schema the fields were classified with
        if schema is not None:
            self._schema = schema
        return classify_document(self._original, self._schema)

    def refresh_classification(self) -> FieldSummary:
        """Re-run classification, picking up a schema that finished loading."""
        self._summary = self._classify()
        return self._summary

    # -------------------------------------------------------------------------
    # Fields
    # -------------------------------------------------------------------------

    @property
    def summary(self) -> FieldSummary:
        return self._summary

    @property
    def original_document(self) -> Any:
        return copy.deepcopy(self._original)

    def fields(self, category: Optional[Category] = None) -> List[ClassifiedField]:
        fields = self._summary.editable_fields
        if category is not None:
            fields = [f for f in fields if f.category is category]
        return fields

    def get_field(self, node_id, field_name: str) -> Optional[ClassifiedField]:
        return self._summary.find(node_id, field_name)

    def _require_field(self, node_id, field_name: str) -> ClassifiedField:
        classified = self.get_field(node_id, field_name)
        if classified is None:
            raise KeyError(f"No field '{field_name}' on node {node_id}")
        return classified

    def current_value(self, classified: ClassifiedField) -> Any:
        return self.sessions.committed.get(classified.node_id, classified.field_name, classified.value)

    # -------------------------------------------------------------------------
    # Edit session
    # -------------------------------------------------------------------------

    @property
    def committed_edits(self) -> CommittedEdits:
        return self.sessions.committed

    @property
    def session(self) -> Optional[EditSession]:
        return self.sessions.session

    def start_edit(self, node_id, field_name: str) -> EditSession:
        return self.sessions.start_edit(self._require_field(node_id, field_name))

    def update_staged(self, value: Any) -> EditSession:
        return self.sessions.update_staged(value)

    def commit(self) -> CommitResult:
        return self.sessions.commit()

    def cancel(self):
        self.sessions.cancel()

    def reset_edits(self):
        self.sessions.reset_edits()

    def validate_value(self, node_id, field_name: str, value: Any) -> List[str]:
        """Validate a value for a field without touching the session."""
        classified = self._require_field(node_id, field_name)
        if not classified.surfaced:
            return ["Field is not editable"]
        options = self._known_options(classified) if self.sessions.strict_options else None
        return validate_value(
            classified.type_shape,
            value,
            options=options,
            strict_options=self.sessions.strict_options,
        )

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    def _known_options(self, classified: ClassifiedField) -> Optional[List[str]]:
        if self.option_provider is not None:
            return self.option_provider.known_options(classified)
        return list(classified.type_shape.options) or None

    def options_for(self, node_id, field_name: str, wait: bool = False, timeout: Optional[float] = None) -> OptionResult:
        classified = self._require_field(node_id, field_name)
        shape = classified.type_shape
        if shape.kind not in (ShapeKind.STATIC_DROPDOWN, ShapeKind.DYNAMIC_DROPDOWN):
            key = source_for_field(classified).key
            return OptionResult(key, OptionStatus.EMPTY, [])
        if self.option_provider is None:
            self.option_provider = DropdownOptionProvider(schema_provider=self.schema_provider)
        if wait:
            return self.option_provider.resolve_blocking(classified, timeout)
        return self.option_provider.resolve(classified)

    # -------------------------------------------------------------------------
    # Seeds and stored edits
    # -------------------------------------------------------------------------

    def randomize_seed(self, node_id, field_name: str) -> int:
        classified = self._require_field(node_id, field_name)
        if classified.category is not Category.SEED:
            raise ValueError(f"Field {classified.field_id} is not a seed")
        seed = random_seed(self.rng)
        self.sessions.committed.set(classified.node_id, classified.field_name, seed)
        return seed

    def randomize_all_seeds(self) -> Dict[str, int]:
        """Commit a fresh random seed for every seed field."""
        seeds = {}
        for classified in self.fields(Category.SEED):
            seeds[classified.field_id] = self.randomize_seed(classified.node_id, classified.field_name)
        log_structured("info", "seeds_randomized", count=len(seeds))
        return seeds

    def set_control_after_generate(self, mode: str) -> List[str]:
        """Commit mode on every control_after_generate slot; returns the field ids changed."""
        if mode not in node_tables.CONTROL_KEYWORDS:
            raise ValueError(f"Unknown control mode '{mode}'. Use: {', '.join(node_tables.CONTROL_KEYWORDS)}")
        changed = []
        for classified in self.fields():
            if node_tables.is_control_field(classified.field_name):
                self.sessions.committed.set(classified.node_id, classified.field_name, mode)
                changed.append(classified.field_id)
        return changed

    def apply_stored_edits(self, stored: Dict[str, Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
        """
        Load persisted edits {node_id: {field_name: value}}.

        Entries for unknown or non-editable fields, connection references and
        invalid values are skipped and reported.
        """
        applied = []
        skipped = []
        for node_id, fields in (stored or {}).items():
            if not isinstance(fields, dict):
                skipped.append({"node_id": str(node_id), "reason": "expected a mapping of field names"})
                continue
            for field_name, value in fields.items():
                field_id = f"{node_id}-{field_name}"
                classified = self.get_field(node_id, field_name)
                if classified is None or not classified.surfaced:
                    skipped.append({"field_id": field_id, "reason": "unknown field"})
                    continue
                if is_connection_reference(value):
                    skipped.append({"field_id": field_id, "reason": "connection reference"})
                    continue
                errors = self.validate_value(node_id, field_name, value)
                if errors:
                    skipped.append({"field_id": field_id, "reason": "; ".join(errors)})
                    continue
                coerced = coerce_value(classified.type_shape, value)
                self.sessions.committed.set(classified.node_id, field_name, coerced)
                applied.append({"field_id": field_id, "value": coerced})
        if skipped:
            log_structured("warning", "stored_edits_skipped", count=len(skipped))
        return {"applied": applied, "skipped": skipped}

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def reconcile(self) -> ReconcileResult:
        return reconcile(self._original, self.sessions.committed, self._schema)

    def diff(self) -> dict:
        """Differences between the original document and the reconciled one."""
        return diff_documents(self._original, self.reconcile().document)
