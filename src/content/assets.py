"""Collision-resistant names for uploaded assets."""

from __future__ import annotations

import mimetypes
import re
import time
import uuid

DEFAULT_PREFIX = "marketing"

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize(segment: str) -> str:
    return _UNSAFE.sub("-", segment).strip("-.")


def asset_filename(original_name: str) -> str:
    """Return ``<token>_<epoch ms>.<ext>`` for an uploaded file.

    Only the extension of ``original_name`` survives; everything is
    restricted to ``[A-Za-z0-9._-]``.
    """
    token = uuid.uuid4().hex[:12]
    stamp = int(time.time() * 1000)
    _, dot, ext = original_name.rpartition(".")
    ext = _sanitize(ext).lower() if dot else ""
    return f"{token}_{stamp}.{ext}" if ext else f"{token}_{stamp}"


def asset_path(prefix: str, filename: str) -> str:
    """Join a sanitized ``a/b`` prefix with a generated filename."""
    segments = [_sanitize(s) for s in prefix.split("/")]
    segments = [s for s in segments if s]
    return "/".join([*segments, filename])


def guess_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"
