"""Error taxonomy shared by the storage, draft and publish layers."""

from __future__ import annotations


class VaultError(Exception):
    """Base error for sitevault operations."""


class StorageError(VaultError):
    """A request against the hosted object storage failed.

    ``status`` is the HTTP status code, or None when the request never
    got a response (DNS, connection refused, timeout).
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthError(VaultError):
    """No usable authenticated session for a write operation."""


class DraftStoreError(VaultError):
    """The local draft store could not be opened, read or written."""


class PublishError(VaultError):
    """Publishing the content document failed. Local state is unchanged."""


class UploadError(VaultError):
    """An asset upload failed."""
