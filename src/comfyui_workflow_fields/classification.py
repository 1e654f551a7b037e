"""
Field classification pipeline.

document -> normalize -> extract candidates -> seed / text / parameter
classifiers -> type detector -> FieldSummary

Synchronous and pure for a given document and schema snapshot: classifying
the same document twice yields equal results. Every candidate receives
exactly one ClassifiedField; values no classifier claims are kept as
Category.IGNORED with DetectionMethod.FALLBACK.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .extractor import extract_candidates
from .field_types import display_name
from .normalizer import normalize
from .parameter_classifier import classify_parameter
from .seed_classifier import classify_seed
from .text_classifier import classify_text
from .type_detector import detect_shape
from .types import FieldSummaryDict
from .workflow_model import (
    Category,
    ClassifiedField,
    DetectionMethod,
    Encoding,
    FieldCandidate,
    FieldMatch,
    PromptRole,
)

# Seed before text before parameters: each later pass only sees what earlier ones rejected
CLASSIFIERS = [classify_seed, classify_text, classify_parameter]

_FALLBACK = FieldMatch(Category.IGNORED, DetectionMethod.FALLBACK)


def prompt_role(candidate: FieldCandidate) -> Optional[PromptRole]:
    """Positive/negative role from the field name, then the node title."""
    for source in (candidate.field_name, candidate.title or ""):
        lowered = source.lower()
        if "negative" in lowered:
            return PromptRole.NEGATIVE
        if "positive" in lowered:
            return PromptRole.POSITIVE
    return None


def classify_candidate(candidate: FieldCandidate, schema=None) -> ClassifiedField:
    match = None
    for classifier in CLASSIFIERS:
        match = classifier(candidate, schema)
        if match is not None:
            break
    if match is None:
        match = _FALLBACK

    role = prompt_role(candidate) if match.category is Category.PROMPT else None
    return ClassifiedField(
        candidate=candidate,
        category=match.category,
        type_shape=detect_shape(candidate, match, schema),
        detection_method=match.method,
        display_name=display_name(candidate.field_name),
        prompt_role=role,
        subtype=match.subtype,
    )


def classify_candidates(candidates: List[FieldCandidate], schema=None) -> List[ClassifiedField]:
    return [classify_candidate(candidate, schema) for candidate in candidates]


@dataclass
class FieldSummary:
    """Classified fields of one document plus per-category counts."""

    encoding: Optional[Encoding]
    fields: List[ClassifiedField] = field(default_factory=list)
    error: Optional[Any] = None  # core.StructuralError

    @property
    def editable_fields(self) -> List[ClassifiedField]:
        return [f for f in self.fields if f.surfaced]

    @property
    def media_fields(self) -> List[ClassifiedField]:
        """Image-backed dropdowns (LoadImage and friends)."""
        return [f for f in self.editable_fields if is_media_field(f)]

    def by_category(self, category: Category) -> List[ClassifiedField]:
        return [f for f in self.fields if f.category is category]

    def counts(self) -> Dict[str, int]:
        counts = {category.value: 0 for category in Category}
        for f in self.fields:
            counts[f.category.value] += 1
        return counts

    def find(self, node_id: str, field_name: str) -> Optional[ClassifiedField]:
        node_id = str(node_id)
        for f in self.fields:
            if f.node_id == node_id and f.field_name == field_name:
                return f
        return None

    def to_dict(self) -> FieldSummaryDict:
        editable = self.editable_fields
        media = [f for f in editable if is_media_field(f)]
        result: FieldSummaryDict = {
            "encoding": self.encoding.value if self.encoding else None,
            "counts": self.counts(),
            "total_candidates": len(self.fields),
            "total_fields": len(editable),
            "ignored": len(self.fields) - len(editable),
            "unique_node_types": sorted({f.candidate.declared_type for f in self.fields}),
            "fields": [f.to_dict() for f in editable if not is_media_field(f)],
            "media_fields": [f.to_dict() for f in media],
        }
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


def is_media_field(classified: ClassifiedField) -> bool:
    return classified.category is Category.DROPDOWN and classified.subtype == "input"


def classify_document(document: Any, schema=None) -> FieldSummary:
    """
    Classify every editable value of a workflow document.

    Args:
        document: GUI workflow or API prompt (parsed JSON).
        schema: Optional NodeSchemaIndex snapshot; never fetched here.

    Returns:
        FieldSummary; unknown document shapes give zero fields and an error.
    """
    result = normalize(document)
    if not result.ok:
        return FieldSummary(None, [], result.error)
    candidates = extract_candidates(result.nodes, schema)
    return FieldSummary(result.encoding, classify_candidates(candidates, schema))
