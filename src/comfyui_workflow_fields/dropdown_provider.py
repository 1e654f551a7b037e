"""
Dropdown Option Provider

Resolves option lists for dropdown fields:
- combo:      static options known from the vocabulary tables
- filesystem: catalog listing from /models/<folder> (checkpoints, loras, vae, input, ...)
- schema:     enumerated options from the capability schema

Results are cached per "<node_type>-<field>-<subtype>" key with a TTL. Fetches
run in the background; a caller asking before a fetch completes gets
status "pending" and may ask again. Failures and timeouts give an empty list
and the field degrades to free text; nothing is raised to the editor.
"""

import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from core import ResolutionError

from . import node_tables
from .background import BackgroundFetcher
from .cache import TTLCache
from .mcp_utils import log_structured
from .schema_provider import FETCH_TIMEOUT, SchemaProvider
from .types import OptionResultDict
from .workflow_model import ClassifiedField, ShapeKind

OPTIONS_TTL = float(os.environ.get("COMFYUI_OPTIONS_TTL", "300"))

SUBTYPE_COMBO = "combo"
SUBTYPE_FILESYSTEM = "filesystem"
SUBTYPE_SCHEMA = "schema"


class OptionStatus(Enum):
    LOADED = "loaded"
    PENDING = "pending"  # not yet loaded, ask again
    EMPTY = "empty"


@dataclass(frozen=True)
class DropdownOptionSet:
    key: str
    options: Tuple[str, ...]
    fetched_at: float
    catalog: Optional[str] = None


@dataclass
class OptionResult:
    key: str
    status: OptionStatus
    options: List[str]
    fetched_at: Optional[float] = None
    error: Optional[ResolutionError] = None

    @property
    def free_text(self) -> bool:
        """True when the editor should fall back to free-text entry."""
        return self.status is not OptionStatus.LOADED or not self.options

    def to_dict(self) -> OptionResultDict:
        result: OptionResultDict = {
            "key": self.key,
            "status": self.status.value,
            "options": list(self.options),
            "free_text": self.free_text,
        }
        if self.fetched_at is not None:
            result["fetched_at"] = self.fetched_at
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass(frozen=True)
class OptionSource:
    """Where a field's options come from."""

    node_type: str
    field_name: str
    subtype: str
    catalog: Optional[str] = None
    static_options: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return option_key(self.node_type, self.field_name, self.subtype)


def option_key(node_type: str, field_name: str, subtype: str) -> str:
    return f"{node_type}-{field_name}-{subtype}"


def source_for_field(classified: ClassifiedField) -> OptionSource:
    shape = classified.type_shape
    node_type = classified.candidate.declared_type
    if shape.kind is ShapeKind.STATIC_DROPDOWN:
        return OptionSource(node_type, classified.field_name, SUBTYPE_COMBO, shape.catalog, shape.options)
    if shape.option_source == SUBTYPE_FILESYSTEM and shape.catalog:
        return OptionSource(node_type, classified.field_name, SUBTYPE_FILESYSTEM, shape.catalog)
    return OptionSource(node_type, classified.field_name, SUBTYPE_SCHEMA)


def source_for_name(node_type: str, field_name: str, value: str = "") -> OptionSource:
    """Option source for a bare node type + field, without a classified document."""
    static = node_tables.known_parameter_options(field_name)
    if static:
        return OptionSource(node_type, field_name, SUBTYPE_COMBO, static_options=static)
    looks_like_file = node_tables.has_suffix(value, node_tables.MODEL_SUFFIXES + node_tables.IMAGE_SUFFIXES)
    if looks_like_file or field_name in node_tables.MODEL_FIELD_NAMES or field_name == "image":
        return OptionSource(node_type, field_name, SUBTYPE_FILESYSTEM, node_tables.infer_catalog(field_name, value))
    return OptionSource(node_type, field_name, SUBTYPE_SCHEMA)


# =============================================================================
# Option helpers
# =============================================================================


def filter_options(options: Sequence[str], query: str) -> List[str]:
    """Case-insensitive substring filter."""
    if not query:
        return list(options)
    needle = query.lower()
    return [option for option in options if needle in option.lower()]


def is_valid_option(options: Sequence[str], value) -> bool:
    return str(value) in options


def default_value(options: Sequence[str], current=None):
    """Current value when it is listed, else the first option, else current."""
    if current is not None and str(current) in options:
        return current
    return options[0] if options else current


def available_catalogs() -> List[str]:
    return list(node_tables.CATALOGS)


class DropdownOptionProvider:
    """Cached, fail-soft option resolution."""

    def __init__(
        self,
        client=None,
        schema_provider: Optional[SchemaProvider] = None,
        cache: Optional[TTLCache] = None,
        timeout: float = FETCH_TIMEOUT,
    ):
        self._client = client
        self.schema_provider = schema_provider or SchemaProvider(client=client, timeout=timeout)
        self.cache = cache if cache is not None else TTLCache(ttl=OPTIONS_TTL)
        self.timeout = timeout
        self._fetcher = BackgroundFetcher("options")
        self._failures: Dict[str, ResolutionError] = {}
        self._catalog_keys: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    @property
    def client(self):
        if self._client is None:
            from .client import get_client

            self._client = get_client()
        return self._client

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve(self, classified: ClassifiedField) -> OptionResult:
        """Non-blocking resolution for a classified dropdown or model field."""
        return self.resolve_source(source_for_field(classified))

    def resolve_blocking(self, classified: ClassifiedField, timeout: Optional[float] = None) -> OptionResult:
        """Resolve and wait up to timeout seconds; a timeout yields an empty result."""
        return self.resolve_source(source_for_field(classified), wait=True, timeout=timeout)

    def resolve_source(self, source: OptionSource, wait: bool = False, timeout: Optional[float] = None) -> OptionResult:
        key = source.key
        cached = self._cached(key)
        if cached is not None:
            log_structured("debug", "options_cache_hit", key=key)
            return cached

        if source.subtype == SUBTYPE_COMBO:
            entry = self._store(key, list(source.static_options), source.catalog)
            return self._result(key, entry)

        log_structured("debug", "options_cache_miss", key=key, subtype=source.subtype)
        with self._lock:
            failure = self._failures.pop(key, None)
        if failure is not None and not wait:
            return OptionResult(key, OptionStatus.EMPTY, [], error=failure)

        self._fetcher.start(key, lambda: self._fetch(source))
        if not wait:
            return OptionResult(key, OptionStatus.PENDING, [])

        wait_for = self.timeout if timeout is None else timeout
        if not self._fetcher.wait(key, wait_for):
            error = ResolutionError(source=source.subtype, key=key, reason=f"timed out after {wait_for}s")
            log_structured("warning", "options_fetch_timeout", key=key, timeout_seconds=wait_for)
            return OptionResult(key, OptionStatus.EMPTY, [], error=error)

        cached = self._cached(key)
        if cached is not None:
            return cached
        with self._lock:
            failure = self._failures.pop(key, None)
        return OptionResult(key, OptionStatus.EMPTY, [], error=failure)

    def known_options(self, classified: ClassifiedField) -> Optional[List[str]]:
        """Options already available without fetching, or None."""
        if classified.type_shape.options:
            return list(classified.type_shape.options)
        entry = self.cache.get(source_for_field(classified).key)
        return list(entry.options) if entry else None

    def is_pending(self, key: str) -> bool:
        return self._fetcher.is_pending(key)

    def _cached(self, key: str) -> Optional[OptionResult]:
        entry = self.cache.get(key)
        if entry is None:
            return None
        return self._result(key, entry)

    @staticmethod
    def _result(key: str, entry: DropdownOptionSet) -> OptionResult:
        status = OptionStatus.LOADED if entry.options else OptionStatus.EMPTY
        return OptionResult(key, status, list(entry.options), fetched_at=entry.fetched_at)

    def _store(self, key: str, options: List[str], catalog: Optional[str]) -> DropdownOptionSet:
        entry = DropdownOptionSet(key, tuple(options), self.cache.clock(), catalog)
        self.cache.put(key, entry)
        if catalog:
            with self._lock:
                self._catalog_keys.setdefault(catalog, set()).add(key)
        return entry

    def _fail(self, source: OptionSource, reason: str):
        error = ResolutionError(source=source.subtype, key=source.key, reason=reason)
        with self._lock:
            self._failures[source.key] = error
        log_structured("warning", "options_fetch_failed", key=source.key, error=reason)

    def _fetch(self, source: OptionSource) -> None:
        if source.subtype == SUBTYPE_FILESYSTEM:
            listing = self.client.list_models(source.catalog, timeout=self.timeout)
            if not isinstance(listing, list):
                reason = listing.get("error") if isinstance(listing, dict) else "unexpected response"
                self._fail(source, str(reason))
                return
            options = [str(item) for item in listing]
        else:
            schema = self.schema_provider.get(timeout=self.timeout)
            if schema is None:
                self._fail(source, "capability schema unavailable")
                return
            options = schema.options(source.node_type, source.field_name) or []
        self._store(source.key, options, source.catalog)
        log_structured("debug", "options_loaded", key=source.key, count=len(options))

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    def clear_cache(self) -> int:
        with self._lock:
            self._catalog_keys.clear()
            self._failures.clear()
        return self.cache.expire()

    def clear_cache_for_catalog(self, catalog: str) -> int:
        with self._lock:
            keys = self._catalog_keys.pop(catalog, set())
        return self.cache.expire_where(lambda key: key in keys)


# Global provider instance
_provider: Optional[DropdownOptionProvider] = None


def get_option_provider() -> DropdownOptionProvider:
    """Get or create global option provider sharing the global schema provider."""
    global _provider
    if _provider is None:
        from .schema_provider import get_schema_provider

        _provider = DropdownOptionProvider(schema_provider=get_schema_provider())
    return _provider
