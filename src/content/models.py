"""Content domain models — pure Pydantic v2 data types.

The Content Map is a nested JSON object addressed by dotted paths
(``hero.heading``).  ContentState is the single in-memory state owned
by an editing session.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

ContentMap = dict[str, Any]


class RemoteStatus(StrEnum):
    """Outcome of the last fetch of the published document."""

    PENDING = "pending"
    LOADED = "loaded"
    NOT_CONFIGURED = "not_configured"
    NOT_PUBLISHED = "not_published"
    UNAVAILABLE = "unavailable"


class ContentState(BaseModel):
    """In-memory state of one editing session."""

    content: ContentMap = Field(default_factory=dict)
    loading: bool = True
    has_unsaved_changes: bool = False
    last_saved: datetime | None = None
    remote_status: RemoteStatus = RemoteStatus.PENDING
    # Bumped on every mutation; lets publish detect edits made mid-upload.
    revision: int = 0
