from __future__ import annotations
import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

SESSION_KEY = "session"
HISTORY_KEY = "sessionHistory"

_DATETIME_TAG = "datetime"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class JsonFileStore:
    """One ``<key>.json`` file per key under ``base_dir``."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or (Path.home() / ".bake_planner")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text()

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value)
        tmp.replace(path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


def _tag(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__type": _DATETIME_TAG, "value": value.isoformat()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _tag(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_tag(v) for v in value]
    return value


def _untag(obj: dict[str, Any]) -> Any:
    if obj.get("__type") == _DATETIME_TAG and "value" in obj:
        value = obj["value"]
        if not isinstance(value, str):
            raise ValueError(f"Tagged datetime must be an ISO string, got {value!r}")
        return datetime.fromisoformat(value)
    return obj


def encode(data: Any) -> str:
    """JSON with datetimes wrapped as ``{"__type": "datetime", "value": iso}``."""
    return json.dumps(_tag(data), indent=2)


def decode(text: str) -> Any:
    return json.loads(text, object_hook=_untag)
