"""
services/meal_store.py
────────────────────────────────────────────────────────────────────────
* `MealStore` – the data-access capability the view-model is given
* `ChangeFeed` – per-user fan-out that turns writes into live snapshots
* `InMemoryMealStore` – process-local store for local runs and tests

Stores push *full* result sets: every change to a user's collection makes
each open subscription re-run its query and yield the complete matching
set again, never a delta.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Dict, Iterator, List, Mapping, Set
from uuid import uuid4

from core.models.meal import DayWindow, MealDocument

_LOG = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def meal_path(user_id: str, meal_id: str | None = None) -> str:
    """`users/{user_id}/meals[/{meal_id}]`"""
    path = f"users/{user_id}/meals"
    return f"{path}/{meal_id}" if meal_id else path


# ───────── change notifications ──────────────────────────────────────
class ChangeFeed:
    def __init__(self) -> None:
        self._listeners: Dict[str, Set[asyncio.Queue[None]]] = {}

    @contextmanager
    def listen(self, user_id: str) -> Iterator[asyncio.Queue[None]]:
        # size 1: several writes before the reader wakes collapse into one
        # re-query, which still sees the latest full set
        queue: asyncio.Queue[None] = asyncio.Queue(maxsize=1)
        self._listeners.setdefault(user_id, set()).add(queue)
        try:
            yield queue
        finally:
            listeners = self._listeners.get(user_id)
            if listeners is not None:
                listeners.discard(queue)
                if not listeners:
                    del self._listeners[user_id]

    def notify(self, user_id: str) -> None:
        for queue in self._listeners.get(user_id, ()):
            if queue.empty():
                queue.put_nowait(None)

    def listener_count(self, user_id: str) -> int:
        return len(self._listeners.get(user_id, ()))


# ───────── capability ────────────────────────────────────────────────
class MealStore(ABC):
    def __init__(self, clock: Clock = utcnow) -> None:
        self.clock = clock
        self.changes = ChangeFeed()

    @abstractmethod
    async def query_meals(self, user_id: str, window: DayWindow) -> List[MealDocument]:
        """Current documents of `user_id` whose timestamp lies in `window`."""

    @abstractmethod
    async def _insert(self, user_id: str, meal_id: str, data: Mapping[str, Any]) -> None: ...

    @abstractmethod
    async def _remove(self, user_id: str, meal_id: str) -> bool:
        """Return True when a document was actually removed."""

    async def subscribe_meals(
        self, user_id: str, window: DayWindow
    ) -> AsyncIterator[List[MealDocument]]:
        with self.changes.listen(user_id) as changed:
            _LOG.debug("subscribed to %s in %s", meal_path(user_id), window)
            try:
                while True:
                    yield await self.query_meals(user_id, window)
                    await changed.get()
            finally:
                _LOG.debug("unsubscribed from %s", meal_path(user_id))

    async def add_meal(self, user_id: str, fields: Mapping[str, Any]) -> str:
        meal_id = uuid4().hex
        await self._insert(user_id, meal_id, {**fields, "timestamp": self.clock()})
        _LOG.info("added %s", meal_path(user_id, meal_id))
        self.changes.notify(user_id)
        return meal_id

    async def delete_meal(self, user_id: str, meal_id: str) -> None:
        if await self._remove(user_id, meal_id):
            _LOG.info("deleted %s", meal_path(user_id, meal_id))
            self.changes.notify(user_id)
        else:
            _LOG.debug("delete of missing %s ignored", meal_path(user_id, meal_id))

    async def close(self) -> None:
        pass


# ───────── in-process implementation ─────────────────────────────────
def _in_window(value: Any, window: DayWindow) -> bool:
    # range queries skip documents without a real timestamp
    if not isinstance(value, datetime):
        return False
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return window.contains(value)


class InMemoryMealStore(MealStore):
    def __init__(self, clock: Clock = utcnow) -> None:
        super().__init__(clock)
        self._docs: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def query_meals(self, user_id: str, window: DayWindow) -> List[MealDocument]:
        return [
            MealDocument(id=meal_id, data=dict(data))
            for meal_id, data in self._docs.get(user_id, {}).items()
            if _in_window(data.get("timestamp"), window)
        ]

    async def _insert(self, user_id: str, meal_id: str, data: Mapping[str, Any]) -> None:
        self._docs.setdefault(user_id, {})[meal_id] = dict(data)

    async def _remove(self, user_id: str, meal_id: str) -> bool:
        return self._docs.get(user_id, {}).pop(meal_id, None) is not None

    def put_raw(self, user_id: str, meal_id: str, data: Mapping[str, Any]) -> None:
        """Write a document verbatim, bypassing field parsing and stamping."""
        self._docs.setdefault(user_id, {})[meal_id] = dict(data)
        self.changes.notify(user_id)

    def documents(self, user_id: str) -> Dict[str, Dict[str, Any]]:
        return {k: dict(v) for k, v in self._docs.get(user_id, {}).items()}
