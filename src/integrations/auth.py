"""Authentication against the hosted backend and local session persistence."""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import jwt
from pydantic import BaseModel

from sitevault.integrations.storage import StorageConfig
from sitevault.shared.errors import AuthError

if TYPE_CHECKING:
    from sitevault.content.drafts import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"


class AuthSession(BaseModel):
    """A signed-in user's access token plus the claims we care about."""

    access_token: str
    user_id: str = ""
    email: str = ""
    expires_at: datetime | None = None

    @classmethod
    def from_token(cls, access_token: str) -> AuthSession:
        """Build a session from a JWT access token.

        The signature is not checked here; the storage API verifies it on
        every write. Raises AuthError if the token is not a JWT.
        """
        try:
            claims = jwt.decode(access_token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise AuthError(f"Malformed access token: {exc}") from exc

        exp = claims.get("exp")
        return cls(
            access_token=access_token,
            user_id=str(claims.get("sub", "")),
            email=str(claims.get("email", "")),
            expires_at=datetime.fromtimestamp(exp, tz=UTC) if exp else None,
        )

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now(tz=UTC) >= self.expires_at


class AuthClient:
    """Password sign-in against the auth REST API."""

    def __init__(self, config: StorageConfig) -> None:
        self.config = config
        self.base_url = config.url.rstrip("/")

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange email + password for an access token.

        Raises:
            AuthError: On rejected credentials or network failure.
        """
        if not self.config.is_configured:
            raise AuthError("Storage URL is not configured")

        url = f"{self.base_url}/auth/v1/token?grant_type=password"
        headers = {"Content-Type": "application/json"}
        if self.config.anon_key:
            headers["apikey"] = self.config.anon_key
        body = json.dumps({"email": email, "password": password}).encode("utf-8")
        req = urllib.request.Request(url, data=body, method="POST", headers=headers)

        try:
            with urllib.request.urlopen(req) as resp:
                payload = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise AuthError(f"Sign-in rejected (HTTP {exc.code})") from exc
        except urllib.error.URLError as exc:
            raise AuthError(f"Network error: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise AuthError(f"Network error: {exc}") from exc

        token = payload.get("access_token")
        if not token:
            raise AuthError("Sign-in response did not include an access token")
        session = AuthSession.from_token(token)
        logger.info("Signed in as %s", session.email or session.user_id)
        return session


class SessionStore:
    """Persists the signed-in session in the local key-value store."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def load(self) -> AuthSession | None:
        raw = self._kv.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return AuthSession.model_validate(raw)
        except ValueError:
            logger.warning("Ignoring unreadable stored session")
            return None

    def save(self, session: AuthSession) -> None:
        self._kv.set(SESSION_KEY, session.model_dump(mode="json"))

    def clear(self) -> None:
        self._kv.delete(SESSION_KEY)


def resolve_session(token_override: str, store: SessionStore | None) -> AuthSession:
    """Pick the session used for writes.

    An explicitly configured token wins over the stored session.

    Raises:
        AuthError: If there is no session or it has expired.
    """
    if token_override:
        session = AuthSession.from_token(token_override)
    else:
        session = store.load() if store is not None else None
    if session is None:
        raise AuthError("Not signed in. Run `sitevault login` first.")
    if session.is_expired:
        raise AuthError("Session expired. Run `sitevault login` again.")
    return session
