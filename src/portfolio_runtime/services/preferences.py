"""
portfolio_runtime.services.preferences

Versioned, namespaced preference persistence.

Responsibilities:
- Store user preferences (theme, font size, free-form flags) under one namespace.
- Migrate flat legacy records (`app-theme`, `app-font-size`, `app-pref-*`) to the
  current schema on first load.
- Abstract the storage medium behind a small backend protocol (memory, JSON file).
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from portfolio_runtime.observability.logging import get_logger

log = get_logger(__name__)

SCHEMA_VERSION = 2
DEFAULT_NAMESPACE = "portfolio"

LEGACY_THEME_KEY = "app-theme"
LEGACY_FONT_SIZE_KEY = "app-font-size"
LEGACY_PREF_PREFIX = "app-pref-"

_LEGACY_FLAGS = {
    "reducedMotion": ("accessibility", "reduced_motion"),
    "highContrast": ("accessibility", "high_contrast"),
}


class PreferenceBackend(Protocol):
    def load(self) -> dict[str, Any]: ...

    def save(self, data: dict[str, Any]) -> None: ...


class MemoryBackend:
    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def load(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def save(self, data: dict[str, Any]) -> None:
        self._data = copy.deepcopy(data)


class JsonFileBackend:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("preferences_unreadable", path=str(self.path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)


def empty_record() -> dict[str, Any]:
    return {"version": SCHEMA_VERSION, "theme": {}, "accessibility": {}, "custom": {}}


def is_legacy_record(raw: Mapping[str, Any]) -> bool:
    return any(_is_legacy_key(key) for key in raw)


def migrate_legacy_record(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Convert a flat legacy record into the current nested schema.

    Unparseable values are dropped rather than carried forward; flag values
    stored as JSON text are decoded.
    """

    record = empty_record()

    theme = raw.get(LEGACY_THEME_KEY)
    if theme in ("light", "dark"):
        record["theme"]["choice"] = theme

    size = raw.get(LEGACY_FONT_SIZE_KEY)
    if size is not None:
        try:
            record["accessibility"]["font_size"] = int(size)
        except (TypeError, ValueError):
            log.warning("legacy_font_size_dropped", value=str(size))

    for key, value in raw.items():
        if not key.startswith(LEGACY_PREF_PREFIX):
            continue
        name = key[len(LEGACY_PREF_PREFIX) :]
        decoded = _decode(value)
        if name in _LEGACY_FLAGS:
            section, field = _LEGACY_FLAGS[name]
            record[section][field] = bool(decoded)
        elif name:
            record["custom"][name] = decoded
    return record


def _decode(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class PreferenceStore:
    """
    Dotted-key access to one namespaced record, e.g. `get("theme.choice")`.
    Every write persists immediately through the backend.
    """

    def __init__(self, backend: PreferenceBackend | None = None, *, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._backend: PreferenceBackend = backend or MemoryBackend()
        self._namespace = namespace
        self._record: dict[str, Any] | None = None
        self.migrated = False

    @property
    def namespace(self) -> str:
        return self._namespace

    def load(self) -> dict[str, Any]:
        self._record = self._read()
        return self.snapshot()

    def _read(self) -> dict[str, Any]:
        raw = self._backend.load()
        stored = raw.get(self._namespace)
        if isinstance(stored, dict) and stored.get("version") == SCHEMA_VERSION:
            return {**empty_record(), **stored}
        if stored is None and is_legacy_record(raw):
            record = migrate_legacy_record(raw)
            self.migrated = True
            remaining = {k: v for k, v in raw.items() if not _is_legacy_key(k)}
            self._backend.save({**remaining, self._namespace: record})
            log.info("preferences_migrated", namespace=self._namespace, from_version=1, to_version=SCHEMA_VERSION)
            return record
        if stored is not None:
            version = stored.get("version") if isinstance(stored, dict) else None
            log.warning("preferences_schema_unknown", namespace=self._namespace, version=version)
        return empty_record()

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._ensure())

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._ensure()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node)

    def set(self, key: str, value: Any) -> None:
        """`set("custom.layout.sidebar", True)` creates intermediate mappings as needed."""
        *parents, field = self._split(key)
        node = self._ensure()
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ValueError(f"preference {part!r} in {key!r} is not a mapping")
            node = child
        node[field] = value
        self._persist()

    def delete(self, key: str) -> bool:
        *parents, field = self._split(key)
        node: Any = self._ensure()
        for part in parents:
            node = node.get(part) if isinstance(node, dict) else None
        if not isinstance(node, dict) or field not in node:
            return False
        del node[field]
        self._persist()
        return True

    def clear(self) -> None:
        self._record = empty_record()
        self._persist()

    def _ensure(self) -> dict[str, Any]:
        if self._record is None:
            self._record = self._read()
        return self._record

    @staticmethod
    def _split(key: str) -> list[str]:
        parts = key.split(".")
        if len(parts) < 2 or not all(parts) or parts[0] == "version":
            raise ValueError(f"preference key must be 'section.field[.field...]': {key!r}")
        return parts

    def _persist(self) -> None:
        raw = self._backend.load()
        raw[self._namespace] = self._ensure()
        self._backend.save(raw)


def _is_legacy_key(key: str) -> bool:
    return key in (LEGACY_THEME_KEY, LEGACY_FONT_SIZE_KEY) or key.startswith(LEGACY_PREF_PREFIX)


# --- Module Notes -----------------------------------------------------------
# Schema v1 was the flat key/value layout; v2 nests by concern under one
# namespace key so multiple apps can share a storage medium.
