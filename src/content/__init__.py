"""Content domain — the draft/publish pipeline for site copy.

Published content lives as one JSON document in hosted storage; an
editing session layers a local draft over it, autosaves edits, and
publishes the merged map back.
"""

from sitevault.content.drafts import DraftStore, KeyValueStore
from sitevault.content.fields import ContentField, FieldSchema, FieldSection, FieldType
from sitevault.content.models import ContentMap, ContentState, RemoteStatus
from sitevault.content.paths import flatten, get_path, merge_draft, set_path
from sitevault.content.scheduler import Debouncer
from sitevault.content.session import ContentSession

__all__ = [
    "ContentField",
    "ContentMap",
    "ContentSession",
    "ContentState",
    "Debouncer",
    "DraftStore",
    "FieldSchema",
    "FieldSection",
    "FieldType",
    "KeyValueStore",
    "RemoteStatus",
    "flatten",
    "get_path",
    "merge_draft",
    "set_path",
]
