"""
Ties the identity stream to the meal subscription: every identity change
tears down the running `DailyMealViewModel` before a new one is started,
so snapshots for a previous user can never reach the renderer.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import AsyncIterator, Callable

from core.daily_meals import DailyMealViewModel, Loading, Renderer, SignedOut
from services.meal_store import MealStore

_LOG = logging.getLogger(__name__)

_UNSET = object()


class NotSignedInError(RuntimeError):
    pass


class MealSessionCoordinator:
    def __init__(
        self,
        store: MealStore,
        identities: AsyncIterator[str | None],
        on_render: Renderer,
        *,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._identities = identities
        self._on_render = on_render
        self._tz = tz
        self._now = now
        self._current: object = _UNSET
        self._task: asyncio.Task[None] | None = None
        self.view: DailyMealViewModel | None = None

    @property
    def user_id(self) -> str | None:
        return self.view.user_id if self.view is not None else None

    async def run(self) -> None:
        try:
            async for user_id in self._identities:
                if user_id == self._current:
                    continue
                await self._switch(user_id)
        finally:
            await self._stop()
            aclose = getattr(self._identities, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _switch(self, user_id: str | None) -> None:
        await self._stop()
        self._current = user_id
        if user_id is None:
            _LOG.debug("no identity – meal view signed out")
            await self._on_render(SignedOut())
            return

        _LOG.debug("identity %s – opening meal view", user_id)
        self.view = DailyMealViewModel(
            self._store, user_id, self._on_render, tz=self._tz, now=self._now
        )
        await self._on_render(Loading())
        self._task = asyncio.create_task(self.view.run())
        self._task.add_done_callback(self._reap)

    async def _stop(self) -> None:
        view, task = self.view, self._task
        self.view = None
        if view is not None:
            view.close()
        if task is not None:
            task.cancel()
            # asyncio.wait leaves a cancel aimed at this task to propagate
            await asyncio.wait([task])
        self._task = None

    @staticmethod
    def _reap(task: asyncio.Task[None]) -> None:
        # the view already rendered Failed and logged the traceback
        if not task.cancelled() and task.exception() is not None:
            _LOG.warning("meal view ended: %s", task.exception())

    # -------------------------------- writes -----------------------
    def _active(self) -> DailyMealViewModel:
        if self.view is None:
            raise NotSignedInError("no signed-in user")
        return self.view

    async def add_meal(
        self,
        name: str,
        calories: str | None = None,
        protein: str | None = None,
        carbs: str | None = None,
        fat: str | None = None,
    ) -> None:
        await self._active().add_meal(name, calories, protein, carbs, fat)

    async def delete_meal(self, meal_id: str) -> None:
        await self._active().delete_meal(meal_id)
