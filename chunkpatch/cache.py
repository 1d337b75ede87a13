"""
Persisted rule-to-chunk associations.

Once a rule has matched chunk U, later sessions try it against U first
and never against any other chunk. The associations only hold for the
exact engine version, host version and rule list that produced them;
the signature over those three gates the whole cache.
"""

from __future__ import annotations

import hashlib
import json
from typing import Iterable, Mapping

from .patchlog import PatchLog
from .storage import KeyValueStore

KEY_CACHE = "patches_cache"
KEY_SIGNATURE = "patches_cache_signature"


def compute_signature(engine_version: str, host_version: str | None, rule_names: Iterable[str]) -> str:
    """SHA-256 over canonical JSON of {engine, host, rules}."""
    payload = {
        "engine": engine_version,
        "host": host_version or "",
        "rules": list(rule_names),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PatchCache:
    def __init__(self, store: KeyValueStore, log: PatchLog | None = None):
        self.store = store
        self.log = log or PatchLog()
        self._cache: dict[str, list[str]] = {}

    def _read(self, key: str) -> str | None:
        try:
            return self.store.get(key)
        except (OSError, UnicodeDecodeError) as e:
            self.log.warning("Cache unreadable, starting empty", key=key, error=f"{type(e).__name__}: {e}")
            return None

    def check_signature(self, current: str) -> bool:
        """
        Compare `current` with the persisted signature.

        On mismatch the new signature is stored and the cache cleared.
        Returns True if the signature was unchanged.
        """
        stored = self._read(KEY_SIGNATURE)
        if stored is not None:
            stored = stored.strip()

        if stored != current:
            self.log.warning("Signature changed", previous=stored, current=current)
            self.store.set(KEY_SIGNATURE, current)
            self.clear()
            return False

        self.log.info("Signature unchanged", signature=current)
        return True

    def load(self) -> dict[str, list[str]]:
        """Read the cache from storage; anything unreadable counts as empty."""
        raw = self._read(KEY_CACHE)
        self._cache = {}
        if not raw:
            return self._cache

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            self.log.warning("Cache unreadable, starting empty", error=str(e))
            return self._cache

        if not isinstance(data, dict):
            self.log.warning("Cache malformed, starting empty", type=type(data).__name__)
            return self._cache

        for unit_id, names in data.items():
            if not isinstance(names, list):
                continue
            cleaned: list[str] = []
            for name in names:
                if isinstance(name, str) and name not in cleaned:
                    cleaned.append(name)
            if cleaned:
                self._cache[str(unit_id)] = cleaned

        self.log.info("Cache loaded", units=len(self._cache))
        return self._cache

    def clear(self) -> None:
        self.store.remove(KEY_CACHE)
        self._cache = {}

    def get(self, unit_id: object) -> list[str] | None:
        names = self._cache.get(str(unit_id))
        return list(names) if names is not None else None

    def entries(self) -> dict[str, list[str]]:
        return {unit_id: list(names) for unit_id, names in self._cache.items()}

    def rule_names(self) -> set[str]:
        return {name for names in self._cache.values() for name in names}

    def save(self, sub_cache: Mapping[object, Iterable[str]]) -> None:
        """Merge new associations (keeping first-seen order) and persist."""
        for unit_id, names in sub_cache.items():
            data = self._cache.setdefault(str(unit_id), [])
            for name in names:
                if name not in data:
                    data.append(name)

        self.store.set(KEY_CACHE, json.dumps(self._cache))
