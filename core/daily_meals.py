"""
core/daily_meals.py
────────────────────────────────────────────────────────────────────────
Today's meals for one user, kept live.

    Loading ──first snapshot──▶ Ready(meals, totals) ──▶ … ──▶ closed
        └──────stream or mapping error──▶ Failed(error)

Every snapshot carries the complete matching set, so the meal list and
the totals are rebuilt from scratch each time; nothing is carried over
from the previous snapshot. Writes go straight to the store and show up
only when the store pushes the next snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Awaitable, Callable, Iterable, Tuple, Union

from core.day_window import local_day_window
from core.meal_mapping import map_meal, meal_fields
from core.models.meal import DailyTotals, DayWindow, Meal, MealDocument
from services.meal_store import MealStore

_LOG = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────────
#  View states
# ──────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Ready:
    meals: Tuple[Meal, ...] = ()
    totals: DailyTotals = field(default_factory=DailyTotals)


@dataclass(frozen=True)
class Failed:
    error: Exception


@dataclass(frozen=True)
class SignedOut:
    pass


ViewState = Union[Loading, Ready, Failed, SignedOut]
Renderer = Callable[[ViewState], Awaitable[None]]


def build_ready(meals: Iterable[Meal]) -> Ready:
    meals = tuple(meals)
    return Ready(meals=meals, totals=DailyTotals.of(meals))


# ──────────────────────────────────────────────────────────────────────
#  View-model
# ──────────────────────────────────────────────────────────────────────
class DailyMealViewModel:
    def __init__(
        self,
        store: MealStore,
        user_id: str,
        on_render: Renderer | None = None,
        *,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.state: ViewState = Loading()
        self.window: DayWindow | None = None
        self.closed = False
        self._on_render = on_render
        self._tz = tz
        self._now = now

    # -------------------------------- subscription -----------------
    async def run(self) -> None:
        """Follow the store until cancelled; re-raises stream/mapping errors."""
        # fixed for the lifetime of the subscription, even past midnight
        self.window = local_day_window(self._now() if self._now else None, self._tz)
        stream = self.store.subscribe_meals(self.user_id, self.window)
        try:
            async for documents in stream:
                await self.on_snapshot(documents)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _LOG.exception("meal subscription for %s failed", self.user_id)
            await self._render(Failed(exc))
            raise
        finally:
            await stream.aclose()
            self.close()

    async def on_snapshot(self, documents: Iterable[MealDocument]) -> None:
        if self.closed:
            _LOG.debug("snapshot after close ignored for %s", self.user_id)
            return
        ready = build_ready(map_meal(doc) for doc in documents)
        _LOG.debug("snapshot for %s: %d meals", self.user_id, len(ready.meals))
        await self._render(ready)

    def close(self) -> None:
        self.closed = True

    async def _render(self, state: ViewState) -> None:
        if self.closed:
            return
        self.state = state
        if self._on_render is not None:
            await self._on_render(state)

    # -------------------------------- writes -----------------------
    async def add_meal(
        self,
        name: str,
        calories: str | None = None,
        protein: str | None = None,
        carbs: str | None = None,
        fat: str | None = None,
    ) -> None:
        await self.store.add_meal(
            self.user_id, meal_fields(name, calories, protein, carbs, fat)
        )

    async def delete_meal(self, meal_id: str) -> None:
        await self.store.delete_meal(self.user_id, meal_id)
