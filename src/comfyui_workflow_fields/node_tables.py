"""
Node Vocabulary Tables

Fixed knowledge about common ComfyUI node types: GUI widget order, which slots
carry seeds and text, known parameter names with their option lists, and the
file suffixes that identify model and image references.

Every classifier consults these tables first; unknown node types fall through to
the pattern heuristics in the classifier modules.
"""

from typing import Dict, List, Optional, Tuple

# =============================================================================
# GUI widget layouts: declared type -> field name per widgets_values index
# =============================================================================

WIDGET_LAYOUTS: Dict[str, List[Optional[str]]] = {
    # Samplers
    "KSampler": ["seed", "control_after_generate", "steps", "cfg", "sampler_name", "scheduler", "denoise"],
    "KSamplerAdvanced": [
        "add_noise",
        "noise_seed",
        "control_after_generate",
        "steps",
        "cfg",
        "sampler_name",
        "scheduler",
        "start_at_step",
        "end_at_step",
        "return_with_leftover_noise",
    ],
    "ModelSamplingSD3": ["shift"],
    # Loaders
    "CheckpointLoaderSimple": ["ckpt_name"],
    "VAELoader": ["vae_name"],
    "LoraLoader": ["lora_name", "strength_model", "strength_clip"],
    "LoraLoaderModelOnly": ["lora_name", "strength_model"],
    "UnetLoaderGGUF": ["unet_name"],
    "UNETLoader": ["unet_name", "weight_dtype"],
    "CLIPLoader": ["clip_name", "type", "device"],
    "UpscaleModelLoader": ["model_name"],
    "ControlNetLoader": ["control_net_name"],
    "ControlNetApply": ["strength"],
    # Latent / image
    "EmptyLatentImage": ["width", "height", "batch_size"],
    "ImageResizeKJ": ["width", "height", "upscale_method", "keep_proportion", "divisible_by", "crop"],
    "LoadImage": ["image", "upload"],
    "SaveImage": ["filename_prefix"],
    "VHS_VideoCombine": [
        "frame_rate",
        "loop_count",
        "filename_prefix",
        "format",
        "pix_fmt",
        "crf",
        "save_metadata",
    ],
    # Text
    "CLIPTextEncode": ["text"],
    "ImpactWildcardEncode": [
        "wildcard_text",
        "populated_text",
        "mode",
        "Select to add LoRA",
        "Select to add Wildcard",
        "seed",
    ],
    "JWStringMultiline": ["text"],
    # Literals and utilities
    "Int Literal": ["int"],
    "Cfg Literal": ["float"],
    "easy mathInt": ["a", "b", "operation"],
    "Seed Generator": ["seed", "control_after_generate"],
    "RandomSeed": ["seed", "control_after_generate"],
    "SeedControl": ["seed", "control_after_generate"],
}


def layout_field_name(declared_type: str, index: int) -> Optional[str]:
    """Field name for a GUI widget slot, or None when the layout is unknown."""
    layout = WIDGET_LAYOUTS.get(declared_type)
    if layout is None or index < 0 or index >= len(layout):
        return None
    return layout[index]


def layout_index(declared_type: str, field_name: str) -> Optional[int]:
    """Widget index for a field name, or None when the layout does not name it."""
    layout = WIDGET_LAYOUTS.get(declared_type)
    if layout is None or field_name not in layout:
        return None
    return layout.index(field_name)


# =============================================================================
# Seeds
# =============================================================================

# declared type -> field name of its seed slot
SEED_NODE_TYPES: Dict[str, str] = {
    "Seed Generator": "seed",
    "KSampler": "seed",
    "KSamplerAdvanced": "noise_seed",
    "RandomSeed": "seed",
    "SeedControl": "seed",
}

SEED_FIELD_NAMES = ("seed", "noise_seed", "random_seed")

# Practical seed range of the execution engine: 0 <= seed < 2**31
SEED_LIMIT = 2**31

CONTROL_KEYWORDS = ("fixed", "increment", "decrement", "randomize")

# =============================================================================
# Text
# =============================================================================

ROLE_PROMPT = "prompt"
ROLE_TEXT = "text"

# declared type -> {field name: role}
TEXT_NODE_TYPES: Dict[str, Dict[str, str]] = {
    "CLIPTextEncode": {"text": ROLE_PROMPT},
    "ImpactWildcardEncode": {"wildcard_text": ROLE_PROMPT, "populated_text": ROLE_PROMPT},
    "JWStringMultiline": {"text": ROLE_TEXT},
    "String": {"string": ROLE_TEXT, "text": ROLE_TEXT, "value": ROLE_TEXT},
    "Text": {"text": ROLE_TEXT, "value": ROLE_TEXT},
    "StringConstant": {"string": ROLE_TEXT, "value": ROLE_TEXT},
    "MultilineString": {"string": ROLE_TEXT, "text": ROLE_TEXT},
    "String (Multiline)": {"string": ROLE_TEXT, "text": ROLE_TEXT},
}

BOOLEAN_WORDS = ("true", "false", "yes", "no", "enable", "disable", "enabled", "disabled", "on", "off")

# =============================================================================
# Known parameters
# =============================================================================

SAMPLERS = (
    "euler",
    "euler_cfg_pp",
    "euler_ancestral",
    "euler_ancestral_cfg_pp",
    "heun",
    "heunpp2",
    "dpm_2",
    "dpm_2_ancestral",
    "lms",
    "dpm_fast",
    "dpm_adaptive",
    "dpmpp_2s_ancestral",
    "dpmpp_sde",
    "dpmpp_sde_gpu",
    "dpmpp_2m",
    "dpmpp_2m_sde",
    "dpmpp_2m_sde_gpu",
    "dpmpp_3m_sde",
    "dpmpp_3m_sde_gpu",
    "ddpm",
    "lcm",
    "ipndm",
    "deis",
    "ddim",
    "uni_pc",
    "uni_pc_bh2",
)

SCHEDULERS = ("normal", "karras", "exponential", "sgm_uniform", "simple", "ddim_uniform", "beta", "linear_quadratic")

# Known parameter field name -> static options (empty tuple: free text)
KNOWN_PARAMETERS: Dict[str, Tuple[str, ...]] = {
    "sampler_name": SAMPLERS,
    "scheduler": SCHEDULERS,
    "control_after_generate": CONTROL_KEYWORDS,
    "pix_fmt": ("yuv420p", "yuv420p10le", "yuv444p", "rgb24"),
    "format": ("image/gif", "image/webp", "video/h264-mp4", "video/h265-mp4", "video/webm"),
    "upscale_method": ("nearest-exact", "bilinear", "area", "bicubic", "lanczos"),
    "keep_proportion": ("stretch", "resize", "pad", "pad_edge", "crop"),
    "crop": ("disabled", "center"),
    "weight_dtype": ("default", "fp8_e4m3fn", "fp8_e4m3fn_fast", "fp8_e5m2"),
    "operation": ("add", "subtract", "multiply", "divide", "modulo", "power"),
    "mode": ("populate", "fixed", "reproduce"),
    "type": ("stable_diffusion", "stable_cascade", "sd3", "stable_audio", "mochi", "ltxv", "flux", "wan"),
    "device": ("default", "cpu"),
    "add_noise": ("enable", "disable"),
    "return_with_leftover_noise": ("disable", "enable"),
    "filename_prefix": (),
}

CONTROL_FIELD = "control_after_generate"


def is_control_field(field_name: str) -> bool:
    """True for control_after_generate and its per-seed variants (control_after_generate_<seed>)."""
    return field_name == CONTROL_FIELD or field_name.startswith(CONTROL_FIELD + "_")


def known_parameter_options(field_name: str) -> Optional[Tuple[str, ...]]:
    """Static options for a known parameter name, None when the name is not known."""
    if is_control_field(field_name):
        field_name = CONTROL_FIELD
    return KNOWN_PARAMETERS.get(field_name)


# Field-name fragments that belong to the Text classifier
PROMPT_NAME_PATTERNS = ("prompt", "text", "description", "positive", "negative")

# =============================================================================
# Files and catalogs
# =============================================================================

MODEL_SUFFIXES = (".safetensors", ".ckpt", ".pt", ".pth", ".bin", ".pkl", ".sft", ".gguf")
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif")

# Catalog folders served by /models/<folder>
CATALOGS = (
    "checkpoints",
    "loras",
    "vae",
    "controlnet",
    "clip",
    "clip_vision",
    "embeddings",
    "diffusion_models",
    "upscale_models",
    "hypernetworks",
    "input",
)

# Field-name fragment -> catalog, checked in order
CATALOG_BY_NAME: List[Tuple[str, str]] = [
    ("ckpt", "checkpoints"),
    ("checkpoint", "checkpoints"),
    ("lora", "loras"),
    ("vae", "vae"),
    ("unet", "diffusion_models"),
    ("diffusion", "diffusion_models"),
    ("clip_vision", "clip_vision"),
    ("clip", "clip"),
    ("control_net", "controlnet"),
    ("controlnet", "controlnet"),
    ("upscale", "upscale_models"),
    ("model_name", "upscale_models"),
    ("embedding", "embeddings"),
    ("hypernetwork", "hypernetworks"),
    ("image", "input"),
]

# Exact model field names (used for display grouping and media separation)
MODEL_FIELD_NAMES = ("ckpt_name", "lora_name", "vae_name", "unet_name", "clip_name", "model_name", "control_net_name")


def has_suffix(value: str, suffixes: Tuple[str, ...]) -> bool:
    return value.lower().endswith(suffixes)


def infer_catalog(field_name: str, value: str = "") -> str:
    """Catalog for a file-backed field: field name first, then the file suffix."""
    name = field_name.lower()
    for fragment, catalog in CATALOG_BY_NAME:
        if fragment in name:
            return catalog
    lowered = value.lower()
    if lowered.endswith(IMAGE_SUFFIXES):
        return "input"
    if lowered.endswith(".gguf"):
        return "diffusion_models"
    return "checkpoints"
