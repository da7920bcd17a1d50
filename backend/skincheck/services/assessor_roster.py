from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol

logger = logging.getLogger(__name__)

ASSESSOR_KEY = "evaluationForm.assessors"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFileStore:
    """Process-wide key-value state in a single JSON file.

    Loaded once when constructed and rewritten on every ``set``.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._values = self._load()

    def _load(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s: expected an object", self._path)
            return {}
        return data

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(self._values, ensure_ascii=False, indent=2), encoding="utf-8"
        )


def normalize_assessors(values: Iterable[Any]) -> list[str]:
    seen: set[str] = set()
    normalized: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        name = value.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        normalized.append(name)
    return normalized


class AssessorRoster:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> list[str] | None:
        """Stored names, or ``None`` when nothing usable has been saved."""
        raw = self._store.get(ASSESSOR_KEY)
        if not isinstance(raw, list):
            return None
        return normalize_assessors(raw)

    def save(self, names: Iterable[Any]) -> list[str]:
        normalized = normalize_assessors(names)
        self._store.set(ASSESSOR_KEY, normalized)
        return normalized

    def seed(self, names: Iterable[str]) -> list[str]:
        stored = self.load()
        if stored is not None:
            return stored
        candidates = normalize_assessors(names)
        if not candidates:
            return []
        return self.save(candidates)

    def add(self, name: str) -> list[str]:
        current = self.load() or []
        return self.save([*current, name])

    def remember(self, name: str) -> list[str] | None:
        """Keep a name used on a saved record; an unseeded roster is left to ``seed``."""
        stored = self.load()
        if stored is None or name.strip() in stored:
            return stored
        return self.save([*stored, name])

    def remove(self, name: str) -> list[str]:
        target = name.strip()
        current = self.load() or []
        return self.save([item for item in current if item != target])
