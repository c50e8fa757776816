"""Process-wide authentication session.

The session is an immutable snapshot replaced by named transitions only:

    init -> load_from_storage() -> set_credentials() / update_user() -> logout()

Components read ``SessionStore.current`` when they need it and never write
fields directly.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from smartlinks.storage.base import SessionStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
REFRESH_TOKEN_KEY = "refreshToken"

SessionListener = Callable[["Session"], None]


@dataclass(frozen=True, slots=True)
class Session:
    user: Mapping[str, Any] | None = None
    token: str | None = None
    refresh_token: str | None = None
    is_authenticated: bool = False

    @classmethod
    def anonymous(cls) -> Session:
        return cls()


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return None


class SessionStore:
    """Owner of the current :class:`Session`."""

    def __init__(
        self,
        storage: SessionStorage | None = None,
        *,
        key_prefix: str = "",
    ) -> None:
        self._storage = storage
        self._key_prefix = key_prefix
        self._session = Session.anonymous()
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Session:
        return self._session

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def set_credentials(self, payload: Mapping[str, Any] | None) -> Session:
        """Adopt the credentials from a login or signup response.

        Token and user names vary between API versions, so ``user``/``data``,
        ``accessToken``/``token``/``access_token`` and
        ``refreshToken``/``refresh_token`` are all accepted. A missing refresh
        token keeps the previous one.
        """
        payload = payload or {}
        user = _pick(payload, "user", "data")
        token = _pick(payload, "accessToken", "token", "access_token")
        refresh_token = _pick(payload, "refreshToken", "refresh_token")

        self._set(
            Session(
                user=user,
                token=token,
                refresh_token=refresh_token or self._session.refresh_token,
                is_authenticated=bool(token),
            )
        )
        await self._persist()
        logger.info("Session credentials set (authenticated=%s)", bool(token))
        return self._session

    async def logout(self) -> Session:
        self._set(Session.anonymous())
        if self._storage is not None:
            for key in (TOKEN_KEY, USER_KEY, REFRESH_TOKEN_KEY):
                await self._storage.delete(self._key(key))
        logger.info("Session cleared")
        return self._session

    async def load_from_storage(self) -> Session:
        """Rehydrate from persistence.

        Only restores a session when both a token and a user are stored. A
        user value that is not valid JSON is restored as ``None``.
        """
        if self._storage is None:
            return self._session

        token = await self._storage.get(self._key(TOKEN_KEY))
        raw_user = await self._storage.get(self._key(USER_KEY))
        if not token or not raw_user:
            return self._session

        try:
            user = json.loads(raw_user)
        except ValueError:
            logger.warning("Stored session user is not valid JSON, ignoring it")
            user = None

        refresh_token = await self._storage.get(self._key(REFRESH_TOKEN_KEY))
        self._set(
            Session(
                user=user,
                token=token,
                refresh_token=refresh_token or self._session.refresh_token,
                is_authenticated=True,
            )
        )
        return self._session

    async def update_user(self, patch: Mapping[str, Any]) -> Session:
        """Merge fields into the current user. No-op when logged out."""
        if self._session.user is None:
            return self._session
        self._set(replace(self._session, user={**self._session.user, **patch}))
        await self._persist()
        return self._session

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _set(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    async def _persist(self) -> None:
        if self._storage is None:
            return
        session = self._session
        if session.token:
            await self._storage.set(self._key(TOKEN_KEY), session.token)
        else:
            await self._storage.delete(self._key(TOKEN_KEY))
        if session.user is not None:
            await self._storage.set(
                self._key(USER_KEY), json.dumps(session.user, default=str)
            )
        else:
            await self._storage.delete(self._key(USER_KEY))
        if session.refresh_token:
            await self._storage.set(
                self._key(REFRESH_TOKEN_KEY), session.refresh_token
            )
