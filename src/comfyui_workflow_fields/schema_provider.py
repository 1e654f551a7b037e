"""
Capability Schema Provider

Wraps ComfyUI's /object_info listing: per node type, each input's type,
enumerated options and numeric bounds. Fetched lazily in the background, cached
with a TTL, and never required; when ComfyUI is unreachable the local
classification cascade is authoritative.

Usage:
    provider = SchemaProvider()
    schema = provider.peek()          # cached index or None, never blocks
    schema = provider.get(timeout=5)  # waits for a fetch up to 5 seconds
"""

import os
from typing import Any, Dict, List, Optional, Tuple

from core import ResolutionError

from .background import BackgroundFetcher
from .cache import TTLCache
from .mcp_utils import log_structured
from .node_tables import SEED_FIELD_NAMES

SCHEMA_TTL = float(os.environ.get("COMFYUI_SCHEMA_TTL", "300"))
FETCH_TIMEOUT = float(os.environ.get("COMFYUI_FETCH_TIMEOUT", "10"))

# Input types that become GUI widgets; anything else uppercase is a link type
WIDGET_TYPES = ("INT", "FLOAT", "STRING", "BOOLEAN", "COMBO")

_CACHE_KEY = "object_info"


class NodeSchemaIndex:
    """Read-only view over an /object_info payload."""

    def __init__(self, object_info: Dict[str, Any]):
        self._info = {k: v for k, v in object_info.items() if isinstance(v, dict)}

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._info

    def __len__(self) -> int:
        return len(self._info)

    def node_types(self) -> List[str]:
        return sorted(self._info)

    def _sections(self, node_type: str) -> List[Tuple[str, Dict[str, Any]]]:
        node_info = self._info.get(node_type)
        if not node_info:
            return []
        inputs = node_info.get("input", {})
        if not isinstance(inputs, dict):
            return []
        sections = []
        for category in ("required", "optional"):
            section = inputs.get(category, {})
            if isinstance(section, dict):
                sections.append((category, section))
        return sections

    def input_spec(self, node_type: str, field_name: str) -> Optional[list]:
        """Raw spec list, e.g. ["INT", {"min": 0}] or [["euler", "ddim"], {}]."""
        for _category, section in self._sections(node_type):
            spec = section.get(field_name)
            if isinstance(spec, (list, tuple)) and spec:
                return list(spec)
        return None

    def input_type(self, node_type: str, field_name: str) -> Optional[str]:
        """INT, FLOAT, STRING, BOOLEAN, COMBO or a link type such as MODEL."""
        spec = self.input_spec(node_type, field_name)
        if spec is None:
            return None
        return _spec_type(spec)

    def _spec_meta(self, node_type: str, field_name: str) -> Dict[str, Any]:
        spec = self.input_spec(node_type, field_name)
        if spec and len(spec) > 1 and isinstance(spec[1], dict):
            return spec[1]
        return {}

    def options(self, node_type: str, field_name: str) -> Optional[List[str]]:
        """Enumerated options for a combo input, None when the input is not a combo."""
        spec = self.input_spec(node_type, field_name)
        if spec is None:
            return None
        if isinstance(spec[0], (list, tuple)):
            return [str(option) for option in spec[0]]
        if spec[0] == "COMBO":
            meta = self._spec_meta(node_type, field_name)
            return [str(option) for option in meta.get("options", [])]
        return None

    def bounds(self, node_type: str, field_name: str) -> Dict[str, float]:
        meta = self._spec_meta(node_type, field_name)
        return {key: meta[key] for key in ("min", "max", "step") if isinstance(meta.get(key), (int, float))}

    def is_multiline(self, node_type: str, field_name: str) -> bool:
        return bool(self._spec_meta(node_type, field_name).get("multiline"))

    def has_seed_control(self, node_type: str, field_name: str) -> bool:
        """True for INT inputs that the GUI pairs with a control_after_generate widget."""
        if self.input_type(node_type, field_name) != "INT":
            return False
        meta = self._spec_meta(node_type, field_name)
        return bool(meta.get("control_after_generate")) or field_name in SEED_FIELD_NAMES

    def widget_names(self, node_type: str) -> List[str]:
        """
        Field names in GUI widgets_values order.

        Link inputs and forceInput values are not widgets; seed-like INT inputs are
        followed by the control_after_generate widget and image uploads by "upload".
        A second companion of the same kind is suffixed with its owner, as in
        control_after_generate_noise_seed.
        """
        node_info = self._info.get(node_type)
        if not node_info:
            return []
        order = node_info.get("input_order")
        names: List[str] = []
        for category, section in self._sections(node_type):
            ordered = order.get(category) if isinstance(order, dict) else None
            for name in ordered or list(section):
                spec = section.get(name)
                if not isinstance(spec, (list, tuple)) or not spec:
                    continue
                if _spec_type(spec) not in WIDGET_TYPES:
                    continue
                meta = spec[1] if len(spec) > 1 and isinstance(spec[1], dict) else {}
                if meta.get("forceInput"):
                    continue
                names.append(name)
                if self.has_seed_control(node_type, name):
                    names.append(_companion_name(names, "control_after_generate", name))
                if meta.get("image_upload"):
                    names.append(_companion_name(names, "upload", name))
        return names


def _companion_name(names: List[str], base: str, owner: str) -> str:
    return base if base not in names else f"{base}_{owner}"


def _spec_type(spec: list) -> str:
    head = spec[0]
    if isinstance(head, (list, tuple)):
        return "COMBO"
    return str(head)


class SchemaProvider:
    """Lazy, cached, fail-soft access to the capability schema."""

    def __init__(
        self,
        client=None,
        cache: Optional[TTLCache] = None,
        timeout: float = FETCH_TIMEOUT,
    ):
        self._client = client
        self.cache = cache if cache is not None else TTLCache(ttl=SCHEMA_TTL)
        self.timeout = timeout
        self.last_error: Optional[ResolutionError] = None
        self._fetcher = BackgroundFetcher("schema")

    @property
    def client(self):
        if self._client is None:
            from .client import get_client

            self._client = get_client()
        return self._client

    def peek(self) -> Optional[NodeSchemaIndex]:
        """Cached schema or None; starts a background fetch on a miss."""
        cached = self.cache.get(_CACHE_KEY)
        if cached is None:
            self.refresh_async()
        return cached

    def get(self, timeout: Optional[float] = None) -> Optional[NodeSchemaIndex]:
        """Cached schema, fetching and waiting up to timeout seconds on a miss."""
        cached = self.cache.get(_CACHE_KEY)
        if cached is not None:
            log_structured("debug", "schema_cache_hit")
            return cached
        log_structured("debug", "schema_cache_miss")
        self.refresh_async()
        wait = self.timeout if timeout is None else timeout
        if not self._fetcher.wait(_CACHE_KEY, wait):
            self.last_error = ResolutionError(source="object_info", reason=f"timed out after {wait}s")
            log_structured("warning", "schema_fetch_timeout", timeout_seconds=wait)
        return self.cache.get(_CACHE_KEY)

    def is_pending(self) -> bool:
        return self._fetcher.is_pending(_CACHE_KEY)

    def refresh_async(self):
        self._fetcher.start(_CACHE_KEY, self._fetch)

    def _fetch(self) -> None:
        object_info = self.client.get_object_info(timeout=self.timeout)
        if not isinstance(object_info, dict) or "error" in object_info:
            reason = object_info.get("error") if isinstance(object_info, dict) else "unexpected response"
            self.last_error = ResolutionError(source="object_info", reason=str(reason))
            log_structured("warning", "schema_fetch_failed", error=str(reason))
            return
        index = NodeSchemaIndex(object_info)
        self.cache.put(_CACHE_KEY, index)
        self.last_error = None
        log_structured("info", "schema_loaded", node_count=len(index))

    def invalidate(self):
        """Clear the cached schema, forcing a re-fetch on next access."""
        self.cache.expire(_CACHE_KEY)

    def stats(self) -> dict:
        index = self.cache.get(_CACHE_KEY)
        age = self.cache.age(_CACHE_KEY)
        return {
            "loaded": index is not None,
            "pending": self.is_pending(),
            "node_count": len(index) if index is not None else 0,
            "cache_age_seconds": round(age, 1) if age is not None else -1,
            "cache_ttl_seconds": self.cache.ttl,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }


# Global provider instance
_provider: Optional[SchemaProvider] = None


def get_schema_provider() -> SchemaProvider:
    """Get or create global schema provider."""
    global _provider
    if _provider is None:
        _provider = SchemaProvider()
    return _provider
