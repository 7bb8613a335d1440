"""
services/auth.py
────────────────────────────────────────────────────────────────────────
Anonymous sessions signed as HS256 JWTs, plus `SessionProvider`, the live
"who is signed in" stream the meal view is driven by.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Set
from uuid import uuid4

import jwt

from config import settings
from core.models.user import SessionToken

_LOG = logging.getLogger(__name__)

_ALGO = "HS256"


class InvalidSessionError(Exception):
    """Token is malformed, forged or expired."""


def create_token(user_id: str, ttl_minutes: int | None = None) -> str:
    ttl = settings.session_ttl_minutes if ttl_minutes is None else ttl_minutes
    exp = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    payload = {"sub": user_id, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGO)


def verify_token(token: str) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[_ALGO])
    except jwt.PyJWTError as exc:
        raise InvalidSessionError(str(exc)) from exc
    sub = payload.get("sub")
    if not sub:
        raise InvalidSessionError("token has no subject")
    return sub


class SessionProvider:
    """
    Holds the current identity (a user id or None) and fans out every
    change to the iterators returned by `current_identity()`.
    """

    def __init__(self) -> None:
        self._user_id: str | None = None
        self._watchers: Set[asyncio.Queue[str | None]] = set()

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def _set(self, user_id: str | None) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for queue in self._watchers:
            queue.put_nowait(user_id)

    def sign_in_anonymously(self) -> SessionToken:
        user_id = uuid4().hex
        token = create_token(user_id)
        _LOG.info("anonymous sign-in as %s", user_id)
        self._set(user_id)
        return SessionToken(user_id=user_id, token=token)

    def sign_in_with_token(self, token: str) -> str:
        user_id = verify_token(token)
        _LOG.info("token sign-in as %s", user_id)
        self._set(user_id)
        return user_id

    def sign_out(self) -> None:
        _LOG.info("signed out %s", self._user_id)
        self._set(None)

    async def current_identity(self) -> AsyncIterator[str | None]:
        queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._watchers.add(queue)
        try:
            yield self._user_id
            while True:
                yield await queue.get()
        finally:
            self._watchers.discard(queue)
