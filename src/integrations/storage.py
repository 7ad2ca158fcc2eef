"""Hosted object storage integration — config and API client.

Talks to a Supabase-style storage REST API: public objects are read
without credentials, writes carry the user's access token.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
import time
import urllib.error
import urllib.parse
import urllib.request

from pydantic import BaseModel

from sitevault.shared.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "assets"
DEFAULT_CONTENT_PATH = "config/content.json"


class StorageConfig(BaseModel):
    """Configuration for the hosted storage bucket."""

    url: str = ""
    anon_key: str = ""
    bucket: str = DEFAULT_BUCKET
    content_path: str = DEFAULT_CONTENT_PATH

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Create config from environment variables."""
        return cls(
            url=os.environ.get("SUPABASE_URL", "") or os.environ.get("VITE_SUPABASE_URL", ""),
            anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            bucket=os.environ.get("SITEVAULT_BUCKET", DEFAULT_BUCKET),
        )


def _error_message(exc: urllib.error.HTTPError) -> str:
    """Pull the most useful message out of an error response body."""
    try:
        body = json.loads(exc.read().decode("utf-8"))
    except (ValueError, OSError):
        return f"HTTP {exc.code}: {exc.reason}"
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {exc.code}: {exc.reason}"


class StorageClient:
    """Client for the storage REST API.

    Handles public reads and authenticated uploads via urllib.
    """

    def __init__(self, config: StorageConfig) -> None:
        self.config = config
        self.base_url = config.url.rstrip("/")

    def public_url(self, path: str) -> str:
        """Return the public URL of an object in the configured bucket."""
        quoted = urllib.parse.quote(path.lstrip("/"))
        return f"{self.base_url}/storage/v1/object/public/{self.config.bucket}/{quoted}"

    def _open(self, req: urllib.request.Request) -> bytes:
        try:
            with urllib.request.urlopen(req) as resp:
                return resp.read()
        except urllib.error.HTTPError as exc:
            raise StorageError(_error_message(exc), status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StorageError(f"Network error: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            # Dropped connections and read timeouts escape urlopen unwrapped.
            raise StorageError(f"Network error: {exc}") from exc

    def fetch_public_json(self, path: str, cache_bust: bool = True) -> object:
        """GET a public JSON object without credentials.

        Args:
            path: Object path inside the bucket.
            cache_bust: Append a ``t=<epoch ms>`` query parameter so CDN
                caches never serve a stale copy.

        Returns:
            The decoded JSON document.

        Raises:
            StorageError: On HTTP error, network failure or invalid JSON.
        """
        url = self.public_url(path)
        if cache_bust:
            url = f"{url}?t={int(time.time() * 1000)}"
        logger.debug("Fetching %s", url)

        raw = self._open(urllib.request.Request(url, method="GET"))
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise StorageError(f"Invalid JSON at {path}: {exc}", status=200) from exc

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        access_token: str,
        upsert: bool = False,
    ) -> dict:
        """Upload bytes to ``path`` in the configured bucket.

        Args:
            path: Destination object path inside the bucket.
            data: Raw object body.
            content_type: MIME type stored with the object.
            access_token: Bearer token of the signed-in user.
            upsert: Overwrite an existing object instead of failing.

        Returns:
            Parsed JSON response from the storage API.
        """
        quoted = urllib.parse.quote(path.lstrip("/"))
        url = f"{self.base_url}/storage/v1/object/{self.config.bucket}/{quoted}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
        }
        if self.config.anon_key:
            headers["apikey"] = self.config.anon_key

        req = urllib.request.Request(url, data=data, method="POST", headers=headers)
        raw = self._open(req)
        logger.info("Uploaded %d bytes to %s/%s", len(data), self.config.bucket, path)
        try:
            return json.loads(raw.decode("utf-8")) if raw else {}
        except ValueError:
            return {}
