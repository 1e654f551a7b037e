"""
Pytest fixtures and utilities for the field engine tests
"""

import copy
import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comfyui_workflow_fields.mcp_utils import JSONFormatter, clear_correlation_id, set_correlation_id


GUI_WORKFLOW = {
    "last_node_id": 10,
    "last_link_id": 9,
    "nodes": [
        {
            "id": 3,
            "type": "KSampler",
            "pos": [863, 186],
            "inputs": [{"name": "model", "type": "MODEL", "link": 1}],
            "widgets_values": [12345, "randomize", 20, 8.0, "euler", "normal", 1.0],
        },
        {"id": 4, "type": "CheckpointLoaderSimple", "widgets_values": ["sd_xl_base_1.0.safetensors"]},
        {"id": 5, "type": "EmptyLatentImage", "widgets_values": [1024, 1024, 1]},
        {
            "id": 6,
            "type": "CLIPTextEncode",
            "title": "Positive Prompt",
            "widgets_values": ["a photograph of an astronaut riding a horse"],
        },
        {
            "id": 7,
            "type": "CLIPTextEncode",
            "title": "Negative Prompt",
            "widgets_values": ["blurry, low quality"],
        },
        {"id": 8, "type": "VAEDecode", "widgets_values": []},
        {"id": 9, "type": "SaveImage", "widgets_values": ["ComfyUI"]},
        {"id": 10, "type": "LoadImage", "widgets_values": ["example.png", "image"]},
    ],
    "links": [[1, 4, 0, 3, 0, "MODEL"]],
    "version": 0.4,
}

API_WORKFLOW = {
    "3": {
        "class_type": "KSampler",
        "inputs": {
            "seed": 12345,
            "steps": 20,
            "cfg": 7.5,
            "sampler_name": "euler",
            "scheduler": "karras",
            "denoise": 1.0,
            "model": ["4", 0],
            "positive": ["6", 0],
            "negative": ["7", 0],
            "latent_image": ["5", 0],
        },
    },
    "4": {"class_type": "CheckpointLoaderSimple", "inputs": {"ckpt_name": "sd_xl_base_1.0.safetensors"}},
    "5": {"class_type": "EmptyLatentImage", "inputs": {"width": 1024, "height": 1024, "batch_size": 1}},
    "6": {
        "class_type": "CLIPTextEncode",
        "inputs": {"text": "a photograph of an astronaut riding a horse", "clip": ["4", 1]},
        "_meta": {"title": "Positive Prompt"},
    },
    "7": {
        "class_type": "CLIPTextEncode",
        "inputs": {"text": "blurry, low quality", "clip": ["4", 1]},
        "_meta": {"title": "Negative Prompt"},
    },
    "8": {"class_type": "VAEDecode", "inputs": {"samples": ["3", 0], "vae": ["4", 2]}},
    "9": {"class_type": "SaveImage", "inputs": {"filename_prefix": "ComfyUI", "images": ["8", 0]}},
}

OBJECT_INFO = {
    "CustomSampler": {
        "input": {
            "required": {
                "model": ["MODEL"],
                "noise": ["INT", {"default": 0, "min": 0, "max": 2**31 - 1, "control_after_generate": True}],
                "steps": ["INT", {"default": 20, "min": 1, "max": 150}],
                "mode": [["fast", "quality"], {}],
                "caption": ["STRING", {"multiline": True}],
            },
            "optional": {"tiled": ["BOOLEAN", {"default": False}]},
        },
        "input_order": {"required": ["model", "noise", "steps", "mode", "caption"], "optional": ["tiled"]},
    },
    "KSampler": {
        "input": {
            "required": {
                "seed": ["INT", {"default": 0, "min": 0, "max": 2**64 - 1}],
                "steps": ["INT", {"default": 20, "min": 1, "max": 10000}],
                "cfg": ["FLOAT", {"default": 8.0, "min": 0.0, "max": 100.0, "step": 0.1}],
                "sampler_name": [["euler", "dpmpp_2m"], {}],
                "scheduler": [["normal", "karras"], {}],
            }
        }
    },
}


# Node with two seed inputs, each followed by its own control widget in the GUI
DUAL_SEED_INFO = {
    "DualNoise": {
        "input": {
            "required": {
                "seed": ["INT", {"default": 0, "min": 0, "max": 2**64 - 1}],
                "noise_seed": ["INT", {"default": 0, "min": 0, "max": 2**64 - 1}],
            }
        },
        "input_order": {"required": ["seed", "noise_seed"]},
    },
}


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def sample_gui_workflow():
    """GUI export (widgets_values addressed by position)"""
    return copy.deepcopy(GUI_WORKFLOW)


@pytest.fixture
def sample_api_workflow():
    """API prompt (inputs addressed by name)"""
    return copy.deepcopy(API_WORKFLOW)


@pytest.fixture
def object_info():
    """Minimal /object_info payload"""
    return copy.deepcopy(OBJECT_INFO)


@pytest.fixture
def dual_seed_info():
    """/object_info payload for a node with two seeds"""
    return copy.deepcopy(DUAL_SEED_INFO)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def mock_client():
    """Mock ComfyUI client for testing"""
    client = MagicMock()
    client.base_url = "http://localhost:8188"
    client.get_object_info.return_value = copy.deepcopy(OBJECT_INFO)
    client.list_models.return_value = ["sd_xl_base_1.0.safetensors", "dreamshaper_8.safetensors"]
    return client


# =============================================================================
# Structured Logging Fixtures
# =============================================================================


class CapturingLogHandler(logging.Handler):
    """Handler that captures log records for testing."""

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)

    def get_json_logs(self):
        """Return list of parsed JSON log entries."""
        formatter = JSONFormatter()
        return [json.loads(formatter.format(record)) for record in self.records]

    def messages(self):
        return [record.getMessage() for record in self.records]

    def clear(self):
        self.records = []


@pytest.fixture
def capturing_logger():
    """Fixture providing a capturing log handler."""
    logger = logging.getLogger("comfyui-fields")

    handler = CapturingLogHandler()
    handler.setLevel(logging.DEBUG)
    logger.addHandler(handler)

    original_level = logger.level
    logger.setLevel(logging.DEBUG)

    yield handler

    logger.removeHandler(handler)
    logger.setLevel(original_level)
    handler.clear()


@pytest.fixture
def correlation_context():
    """Fixture providing correlation ID context management."""

    def _set_cid(cid):
        set_correlation_id(cid)
        return cid

    yield _set_cid

    clear_correlation_id()
