"""Bearer-token validation against Supabase Auth."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


@lru_cache(maxsize=1)
def _auth_client(url: str, key: str) -> Client:
    return create_client(url, key)


class SupabaseAuthAdapter:
    """Resolves the caller of a history request from its access token.

    With SUPABASE_DISABLED=1, or without SUPABASE_URL and SUPABASE_ANON_KEY,
    every non-empty token maps to a stable local user.
    """

    def __init__(self) -> None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_ANON_KEY")
        disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self._client = _auth_client(url, key) if url and key and not disabled else None

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self._client is None:
            return UserInfo(id=f"local-{abs(hash(token)) % (10**10)}", email=None)
        try:
            user = self._client.auth.get_user(token).user
        except Exception as exc:  # pragma: no cover - network path
            logger.warning("Access token rejected by Supabase: %s", exc)
            raise ValueError(f"Invalid access token: {exc}") from exc
        if user is None:
            raise ValueError("Invalid access token")
        return UserInfo(id=user.id, email=user.email)
