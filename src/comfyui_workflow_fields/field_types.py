"""
Field Type Rules

Category definitions, display names and the validators/coercions used by the
edit session. Consulted by every later stage of the engine.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from .workflow_model import Category, ShapeKind, TypeShape, is_connection_reference

# Category -> how the edit surface groups it
CATEGORY_INFO: Dict[Category, Dict[str, str]] = {
    Category.SEED: {"label": "Seeds", "description": "Random seeds controlling generation variance"},
    Category.PROMPT: {"label": "Prompts", "description": "Positive and negative text prompts"},
    Category.TEXT: {"label": "Text Fields", "description": "Free text values"},
    Category.MODEL: {"label": "Models", "description": "Checkpoint, LoRA, VAE and other model files"},
    Category.DROPDOWN: {"label": "Dropdowns", "description": "Settings chosen from a list"},
    Category.NUMBER: {"label": "Numbers", "description": "Numeric knobs such as steps, cfg and sizes"},
    Category.BOOLEAN: {"label": "Toggles", "description": "On/off switches"},
    Category.IGNORED: {"label": "Ignored", "description": "Incidental values not offered for editing"},
}

DISPLAY_NAMES: Dict[str, str] = {
    "wildcard_text": "Wildcard Text",
    "populated_text": "Populated Text",
    "text": "Text",
    "seed": "Seed",
    "noise_seed": "Noise Seed",
    "random_seed": "Random Seed",
    "steps": "Steps",
    "cfg": "CFG Scale",
    "sampler_name": "Sampler",
    "scheduler": "Scheduler",
    "denoise": "Denoise",
    "ckpt_name": "Checkpoint",
    "lora_name": "LoRA",
    "vae_name": "VAE",
    "unet_name": "UNet Model",
    "clip_name": "CLIP Model",
    "model_name": "Model",
    "control_net_name": "ControlNet",
    "width": "Width",
    "height": "Height",
    "batch_size": "Batch Size",
    "strength_model": "Model Strength",
    "strength_clip": "CLIP Strength",
    "filename_prefix": "Filename Prefix",
    "frame_rate": "Frame Rate",
    "pix_fmt": "Pixel Format",
    "control_after_generate": "Control After Generate",
}

DISPLAY_TRUNCATE = 100

# Values accepted as True when a boolean arrives as a string
TRUE_STRINGS = ("true", "1", "yes", "on", "enable", "enabled")


def display_name(field_name: str) -> str:
    """Human label for a field name; unknown names are title-cased."""
    if field_name in DISPLAY_NAMES:
        return DISPLAY_NAMES[field_name]
    return " ".join(part.capitalize() for part in field_name.replace("_", " ").split())


def format_value_for_display(value: Any) -> str:
    """Short string form of a value for listings."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = value if isinstance(value, str) else str(value)
    if len(text) > DISPLAY_TRUNCATE:
        return text[:DISPLAY_TRUNCATE] + "..."
    return text


# =============================================================================
# Parsing helpers
# =============================================================================


def parse_integer(value: Any) -> Optional[int]:
    """int for integers, integral floats and integer strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


# =============================================================================
# Validation and coercion by shape
# =============================================================================


def validate_value(
    shape: TypeShape,
    value: Any,
    options: Optional[Sequence[str]] = None,
    strict_options: bool = False,
) -> List[str]:
    """
    Validate a staged value for a field shape.

    Returns:
        List of human-readable errors, empty when valid.
    """
    if is_connection_reference(value):
        return ["Connection references cannot be edited"]

    kind = shape.kind
    if kind is ShapeKind.INTEGER:
        parsed = parse_integer(value)
        if parsed is None:
            return ["Must be a valid integer"]
        if parsed < 0:
            return ["Must be non-negative"]
        return []
    if kind is ShapeKind.NUMBER:
        if parse_number(value) is None:
            return ["Must be a valid number"]
        return []
    if kind is ShapeKind.BOOLEAN:
        return []
    if kind in (ShapeKind.TEXT, ShapeKind.MULTILINE_TEXT):
        if not isinstance(value, str):
            return ["Must be text"]
        return []
    if kind in (ShapeKind.STATIC_DROPDOWN, ShapeKind.DYNAMIC_DROPDOWN):
        if isinstance(value, (dict, list)):
            return ["Must be a single option"]
        # Membership is only enforced in strict mode and once options are known
        if strict_options and options and str(value) not in options:
            return ["Not one of the available options"]
        return []
    return ["Field is not editable"]


def coerce_value(shape: TypeShape, value: Any) -> Any:
    """
    Convert a (valid) value to the shape's native representation.

    Numbers keep int form when the input is integral text or an int.
    """
    kind = shape.kind
    if kind is ShapeKind.INTEGER:
        parsed = parse_integer(value)
        return parsed if parsed is not None else value
    if kind is ShapeKind.NUMBER:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        parsed_int = parse_integer(value)
        if parsed_int is not None and "." not in str(value):
            return parsed_int
        parsed = parse_number(value)
        return parsed if parsed is not None else value
    if kind is ShapeKind.BOOLEAN:
        return coerce_boolean(value)
    if kind in (ShapeKind.TEXT, ShapeKind.MULTILINE_TEXT):
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)
    if kind in (ShapeKind.STATIC_DROPDOWN, ShapeKind.DYNAMIC_DROPDOWN):
        # numeric combo entries stay numeric
        return "" if value is None else value
    return value


def category_label(category: Category) -> str:
    return CATEGORY_INFO[category]["label"]
