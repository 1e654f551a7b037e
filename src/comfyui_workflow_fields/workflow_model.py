"""
Canonical workflow model shared by every stage of the field engine.

A ComfyUI workflow arrives in one of two encodings:
- GUI export (Positional): {"nodes": [{"id": 3, "type": "KSampler", "widgets_values": [...]}, ...]}
- API prompt (Named): {"3": {"class_type": "KSampler", "inputs": {"seed": 5, "model": ["4", 0]}}}

Both are normalized to CanonicalNode, then split into FieldCandidate leaves and
classified into ClassifiedField records.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class Encoding(Enum):
    """How a node addresses its values."""

    POSITIONAL = "positional"  # widgets_values list, addressed by index
    NAMED = "named"  # inputs mapping, addressed by name


class ValueKind(Enum):
    """Tag of the Value union."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    NESTED = "nested"
    CONNECTION = "connection"


class Category(Enum):
    """Semantic category of a classified field."""

    SEED = "seed"
    PROMPT = "prompt"
    TEXT = "text"
    MODEL = "model"
    DROPDOWN = "dropdown"
    NUMBER = "number"
    BOOLEAN = "boolean"
    IGNORED = "ignored"  # classified but never surfaced for editing


class DetectionMethod(Enum):
    """Strategy that produced a field's category."""

    TABLE_MATCH = "tableMatch"
    PATTERN_MATCH = "patternMatch"
    SCHEMA_MATCH = "schemaMatch"
    FALLBACK = "fallback"


class ShapeKind(Enum):
    """Edit-surface shape of a field."""

    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TEXT = "text"
    MULTILINE_TEXT = "multiline_text"
    STATIC_DROPDOWN = "static_dropdown"
    DYNAMIC_DROPDOWN = "dynamic_dropdown"
    NONE = "none"


class PromptRole(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


# =============================================================================
# Values
# =============================================================================


def is_connection_reference(raw: Any) -> bool:
    """True for an API-format link: [source_node_id, output_slot]."""
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return False
    node_ref, slot = raw
    if isinstance(slot, bool) or not isinstance(slot, int) or slot < 0:
        return False
    if isinstance(node_ref, bool):
        return False
    return isinstance(node_ref, (str, int))


@dataclass(frozen=True)
class Value:
    """A tagged leaf value taken from a node."""

    kind: ValueKind
    raw: Any

    @property
    def is_integer(self) -> bool:
        return self.kind is ValueKind.NUMBER and isinstance(self.raw, int)

    @property
    def is_string(self) -> bool:
        return self.kind is ValueKind.STRING


def wrap_value(raw: Any, encoding: Encoding) -> Value:
    """
    Tag a raw JSON value.

    Connection references only exist in the Named encoding; a two-element list
    inside a GUI widgets_values sequence is ordinary nested data.
    """
    # bool before int: bool is a subclass of int
    if isinstance(raw, bool):
        return Value(ValueKind.BOOLEAN, raw)
    if isinstance(raw, (int, float)):
        return Value(ValueKind.NUMBER, raw)
    if isinstance(raw, str):
        return Value(ValueKind.STRING, raw)
    if encoding is Encoding.NAMED and is_connection_reference(raw):
        return Value(ValueKind.CONNECTION, raw)
    return Value(ValueKind.NESTED, raw)


# =============================================================================
# Nodes and candidates
# =============================================================================


@dataclass(frozen=True)
class Slot:
    """Address of a value inside a node: a positional index or a field name."""

    index: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def positional(cls, index: int) -> "Slot":
        return cls(index=index)

    @classmethod
    def named(cls, name: str) -> "Slot":
        return cls(name=name)

    @property
    def is_positional(self) -> bool:
        return self.index is not None

    @property
    def key(self) -> Union[int, str]:
        return self.index if self.index is not None else self.name

    def __str__(self) -> str:
        return f"[{self.index}]" if self.index is not None else str(self.name)


@dataclass(frozen=True)
class CanonicalNode:
    """One node of a normalized document."""

    id: str
    declared_type: str
    title: Optional[str]
    encoding: Encoding
    values: Union[Tuple[Value, ...], Dict[str, Value]]


@dataclass(frozen=True)
class FieldCandidate:
    """One addressable leaf value of a node, before classification."""

    node_id: str
    declared_type: str
    title: Optional[str]
    slot: Slot
    value: Value
    encoding: Encoding
    field_name: str
    config_known: bool = False

    @property
    def field_id(self) -> str:
        return f"{self.node_id}-{self.field_name}"


@dataclass(frozen=True)
class FieldMatch:
    """What a classification strategy decided for one candidate."""

    category: Category
    method: DetectionMethod
    subtype: Optional[str] = None
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TypeShape:
    """Edit-surface shape of a field, independent of any UI toolkit."""

    kind: ShapeKind
    options: Tuple[str, ...] = ()
    catalog: Optional[str] = None
    option_source: Optional[str] = None  # "combo", "filesystem" or "schema"
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    step: Optional[float] = None
    source: str = "local"  # "local" or "schema"

    @property
    def needs_resolution(self) -> bool:
        return self.kind is ShapeKind.DYNAMIC_DROPDOWN

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind.value, "source": self.source}
        if self.options:
            result["options"] = list(self.options)
        if self.catalog:
            result["catalog"] = self.catalog
        if self.option_source:
            result["option_source"] = self.option_source
        for key in ("minimum", "maximum", "step"):
            bound = getattr(self, key)
            if bound is not None:
                result[key] = bound
        return result


@dataclass(frozen=True)
class ClassifiedField:
    """A candidate with its category, shape and the strategy that decided it."""

    candidate: FieldCandidate
    category: Category
    type_shape: TypeShape
    detection_method: DetectionMethod
    display_name: str
    prompt_role: Optional[PromptRole] = None
    subtype: Optional[str] = None

    @property
    def node_id(self) -> str:
        return self.candidate.node_id

    @property
    def field_name(self) -> str:
        return self.candidate.field_name

    @property
    def field_id(self) -> str:
        return self.candidate.field_id

    @property
    def value(self) -> Any:
        return self.candidate.value.raw

    @property
    def surfaced(self) -> bool:
        return self.category is not Category.IGNORED

    def to_dict(self) -> Dict[str, Any]:
        candidate = self.candidate
        result: Dict[str, Any] = {
            "field_id": candidate.field_id,
            "node_id": candidate.node_id,
            "node_type": candidate.declared_type,
            "field_name": candidate.field_name,
            "display_name": self.display_name,
            "slot": candidate.slot.key,
            "encoding": candidate.encoding.value,
            "value": candidate.value.raw,
            "category": self.category.value,
            "detection_method": self.detection_method.value,
            "shape": self.type_shape.to_dict(),
        }
        if candidate.title:
            result["title"] = candidate.title
        if self.prompt_role:
            result["prompt_role"] = self.prompt_role.value
        if self.subtype:
            result["subtype"] = self.subtype
        return result


@dataclass
class NormalizationResult:
    """Output of the normalizer; error is set and nodes empty for unknown shapes."""

    encoding: Optional[Encoding]
    nodes: list = field(default_factory=list)
    error: Optional[Any] = None  # core.StructuralError

    @property
    def ok(self) -> bool:
        return self.error is None
