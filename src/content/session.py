"""Editing session: load, dotted-path access, autosave, publish.

A ContentSession owns the in-memory Content Map for one editor.  On
load it fetches the published document from storage, reads the local
draft, and layers the draft over the published copy.  Edits go to the
in-memory map and re-arm a debounced draft write.  Publishing uploads
the whole map and clears the draft.

All state lives on the asyncio loop thread.  Blocking file and HTTP
I/O runs in worker threads via ``asyncio.to_thread`` on snapshots of
the map, never on the live object.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sitevault.content.assets import (
    DEFAULT_PREFIX,
    asset_filename,
    asset_path,
    guess_content_type,
)
from sitevault.content.drafts import DraftStore, KeyValueStore
from sitevault.content.models import ContentMap, ContentState, RemoteStatus
from sitevault.content.paths import get_path, merge_draft, set_path
from sitevault.content.scheduler import Debouncer
from sitevault.integrations.auth import AuthSession, SessionStore, resolve_session
from sitevault.integrations.storage import StorageClient
from sitevault.shared.errors import AuthError, PublishError, StorageError, UploadError

if TYPE_CHECKING:
    from sitevault.config import VaultConfig

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.0

# Status codes the storage API uses for "no such object".
_NOT_FOUND_STATUSES = (400, 404)


def _no_credentials() -> AuthSession:
    raise AuthError("No credentials configured")


class ContentSession:
    """In-memory Content Map for a single editing session."""

    def __init__(
        self,
        storage: StorageClient,
        drafts: DraftStore,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        auth: Callable[[], AuthSession] | None = None,
        asset_prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self._storage = storage
        self._drafts = drafts
        self._auth = auth or _no_credentials
        self._asset_prefix = asset_prefix
        self._state = ContentState()
        self._autosave = Debouncer(debounce_seconds, self._autosave_draft, name="draft save")
        self._closed = False

    @classmethod
    def from_config(cls, config: VaultConfig) -> ContentSession:
        """Wire a session from the loaded configuration."""
        kv = KeyValueStore(Path(config.drafts.path).expanduser())
        sessions = SessionStore(kv)
        return cls(
            StorageClient(config.to_storage_config()),
            DraftStore(kv),
            debounce_seconds=config.drafts.debounce_seconds,
            auth=lambda: resolve_session(config.auth.access_token, sessions),
            asset_prefix=config.assets.prefix,
        )

    async def __aenter__(self) -> ContentSession:
        await self.load()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Read accessors ───────────────────────────────────────────

    @property
    def content(self) -> ContentMap:
        """Deep copy of the current Content Map."""
        return copy.deepcopy(self._state.content)

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def has_unsaved_changes(self) -> bool:
        return self._state.has_unsaved_changes

    @property
    def last_saved(self) -> datetime | None:
        return self._state.last_saved

    @property
    def remote_status(self) -> RemoteStatus:
        return self._state.remote_status

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    def snapshot(self) -> ContentState:
        """Return a detached copy of the whole session state."""
        return self._state.model_copy(deep=True)

    def get(self, path: str, default: Any = None) -> Any:
        """Read a dotted path; see :func:`get_path`."""
        return get_path(self._state.content, path, default)

    # ── Load ─────────────────────────────────────────────────────

    async def _fetch_remote(self) -> tuple[ContentMap, RemoteStatus]:
        """Fetch the published document, degrading to empty content."""
        config = self._storage.config
        if not config.is_configured:
            logger.info("No storage URL configured; starting with empty content")
            return {}, RemoteStatus.NOT_CONFIGURED

        try:
            document = await asyncio.to_thread(
                self._storage.fetch_public_json, config.content_path
            )
        except StorageError as exc:
            if exc.status in _NOT_FOUND_STATUSES:
                logger.info("Nothing published at %s yet (HTTP %s)", config.content_path, exc.status)
                return {}, RemoteStatus.NOT_PUBLISHED
            logger.warning("Published content unavailable, using empty content: %s", exc)
            return {}, RemoteStatus.UNAVAILABLE

        if not isinstance(document, dict):
            logger.warning("Published content at %s is not a JSON object", config.content_path)
            return {}, RemoteStatus.UNAVAILABLE
        logger.info("Live content loaded: %d keys", len(document))
        return document, RemoteStatus.LOADED

    async def load(self) -> None:
        """Fetch published content, then layer the local draft over it.

        Remote failures never raise (see ``remote_status``).  Draft store
        failures propagate as DraftStoreError.
        """
        self._autosave.cancel()
        self._state.loading = True
        try:
            remote, status = await self._fetch_remote()
            local = await asyncio.to_thread(self._drafts.load)
            if self._closed:
                logger.debug("Session closed during load; discarding result")
                return

            if local is not None:
                logger.info("Local draft found; layering over live content")
                self._state.content = merge_draft(remote, local)
                self._state.has_unsaved_changes = True
            else:
                self._state.content = remote
                self._state.has_unsaved_changes = False
            self._state.remote_status = status
            self._state.revision += 1
        finally:
            if not self._closed:
                self._state.loading = False

    # ── Mutation ─────────────────────────────────────────────────

    def set(self, path: str, value: Any) -> None:
        """Write a dotted path and re-arm the draft autosave.

        Must be called from inside the running event loop.
        """
        if self._closed:
            raise RuntimeError("Session is closed")
        set_path(self._state.content, path, value)
        self._state.has_unsaved_changes = True
        self._state.revision += 1
        self._autosave.schedule()

    # ── Drafts ───────────────────────────────────────────────────

    async def _write_draft(self) -> None:
        snapshot = copy.deepcopy(self._state.content)
        await asyncio.to_thread(self._drafts.save, snapshot)
        self._state.last_saved = datetime.now(tz=UTC)

    async def _autosave_draft(self) -> None:
        if self._state.has_unsaved_changes:
            await self._write_draft()

    async def save_draft(self) -> None:
        """Write the current map to the local draft right now."""
        self._autosave.cancel()
        await self._autosave.wait()
        await self._write_draft()

    async def discard(self, confirm: Callable[[], bool]) -> bool:
        """Drop the local draft and reload published content only.

        Args:
            confirm: Asked before anything is touched; returning False
                aborts the discard.

        Returns:
            True if the draft was discarded.
        """
        if not confirm():
            return False
        self._autosave.cancel()
        await self._autosave.wait()
        await asyncio.to_thread(self._drafts.clear)
        logger.info("Local draft discarded; reloading live content")

        revision = self._state.revision
        self._state = ContentState(revision=revision + 1)
        await self.load()
        return True

    # ── Publish ──────────────────────────────────────────────────

    async def publish(self) -> str:
        """Replace the published document with the current map.

        The upload overwrites unconditionally; the last publish wins.

        Returns:
            Public URL of the published document.

        Raises:
            PublishError: On missing credentials or any storage failure.
                The draft and the unsaved-changes flag are left untouched.
        """
        config = self._storage.config
        if not config.is_configured:
            raise PublishError("Failed to publish changes: storage URL is not configured")
        try:
            auth = self._auth()
        except AuthError as exc:
            raise PublishError(f"Failed to publish changes: {exc}") from exc

        revision = self._state.revision
        try:
            document = json.dumps(self._state.content, indent=2, allow_nan=False).encode("utf-8")
        except ValueError as exc:
            raise PublishError(
                f"Failed to publish changes: content is not valid JSON ({exc})"
            ) from exc
        try:
            await asyncio.to_thread(
                self._storage.upload,
                config.content_path,
                document,
                "application/json",
                auth.access_token,
                True,
            )
        except StorageError as exc:
            logger.error("Failed to publish: %s", exc)
            raise PublishError(f"Failed to publish changes: {exc}") from exc

        if self._state.revision != revision:
            logger.warning("Content changed while publishing; keeping local draft")
        else:
            self._autosave.cancel()
            await self._autosave.wait()
            await asyncio.to_thread(self._drafts.clear)
            if self._state.revision == revision:
                self._state.has_unsaved_changes = False
        self._state.last_saved = datetime.now(tz=UTC)
        logger.info("Published %d bytes to %s", len(document), config.content_path)
        return self._storage.public_url(config.content_path)

    # ── Assets ───────────────────────────────────────────────────

    async def upload_image(self, data: bytes, filename: str, prefix: str | None = None) -> str:
        """Upload an asset under a generated name and return its public URL.

        Raises:
            UploadError: On missing credentials or any storage failure.
        """
        if not self._storage.config.is_configured:
            raise UploadError("Upload failed: storage URL is not configured")
        try:
            auth = self._auth()
        except AuthError as exc:
            raise UploadError(f"Upload failed: {exc}") from exc

        path = asset_path(prefix or self._asset_prefix, asset_filename(filename))
        try:
            await asyncio.to_thread(
                self._storage.upload,
                path,
                data,
                guess_content_type(filename),
                auth.access_token,
            )
        except StorageError as exc:
            logger.error("Upload error for %s: %s", path, exc)
            raise UploadError(f"Upload failed: {exc}") from exc
        return self._storage.public_url(path)

    # ── Teardown ─────────────────────────────────────────────────

    async def close(self, flush: bool = True) -> None:
        """End the session, writing a pending autosave unless ``flush`` is False."""
        if self._closed:
            return
        self._closed = True
        await self._autosave.close(flush=flush)
