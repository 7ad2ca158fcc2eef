"""JSON-backed local key-value store and the draft adapter on top of it.

The store keeps every key in a single JSON file, read on each access
and rewritten after every write.  The draft adapter owns one logical
key, ``content_draft``, holding either a full Content Map or null
("no draft").
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from sitevault.content.models import ContentMap
from sitevault.shared.errors import DraftStoreError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".sitevault-drafts.json"
DRAFT_KEY = "content_draft"


class KeyValueStore:
    """Persistent local key-value store backed by one JSON file.

    Failures to read or write the file raise DraftStoreError; callers
    decide how to report them.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise DraftStoreError(f"Cannot read {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise DraftStoreError(f"Corrupt draft store at {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise DraftStoreError(f"Corrupt draft store at {self._path}: not an object")
        return raw

    def _save(self, data: dict[str, Any]) -> None:
        try:
            text = json.dumps(data, indent=2, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise DraftStoreError(f"Cannot serialize draft store: {exc}") from exc
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise DraftStoreError(f"Cannot write {self._path}: {exc}") from exc

    # ── Operations ───────────────────────────────────────────────

    def get(self, key: str) -> Any:
        """Return the value for ``key``, or None if absent."""
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class DraftStore:
    """Local Draft Blob: at most one working copy of the Content Map."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def load(self) -> ContentMap | None:
        """Return the saved draft, or None when there is none."""
        draft = self._kv.get(DRAFT_KEY)
        if draft is None:
            return None
        if not isinstance(draft, dict):
            logger.warning("Ignoring malformed draft in %s", self._kv.path)
            return None
        return draft

    def save(self, content: ContentMap) -> None:
        """Overwrite the draft with a full snapshot of ``content``."""
        self._kv.set(DRAFT_KEY, content)
        logger.debug("Draft saved (%d top-level keys)", len(content))

    def clear(self) -> None:
        """Store the null sentinel: no draft."""
        self._kv.set(DRAFT_KEY, None)

    def exists(self) -> bool:
        return self.load() is not None
