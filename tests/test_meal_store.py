"""
Both store implementations must behave the same: full-set snapshots,
half-open day filter, insertion order, silent delete of unknown ids.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from core.day_window import local_day_window
from core.meal_mapping import map_meal
from services.db import SqlMealStore, init_models
from services.meal_store import InMemoryMealStore, meal_path

UTC = timezone.utc
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
WINDOW = local_day_window(NOW, UTC)
USER = "u1"


class _Clock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, clock, tmp_path):
    if request.param == "memory":
        yield InMemoryMealStore(clock=clock)
        return
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'meals.db'}")
    await init_models(eng)
    sql = SqlMealStore(eng, clock=clock)
    yield sql
    await sql.close()


async def _next(stream):
    return await asyncio.wait_for(stream.__anext__(), timeout=2)


def test_meal_path():
    assert meal_path("u1") == "users/u1/meals"
    assert meal_path("u1", "m9") == "users/u1/meals/m9"


@pytest.mark.asyncio
async def test_first_snapshot_then_full_sets(store):
    stream = store.subscribe_meals(USER, WINDOW)
    assert await _next(stream) == []

    first = await store.add_meal(USER, {"name": "Eggs", "calories": 200, "protein": 12, "carbs": 1, "fat": 14})
    docs = await _next(stream)
    assert [d.id for d in docs] == [first]

    second = await store.add_meal(USER, {"name": "Rice", "calories": 300, "protein": 6, "carbs": 65, "fat": 1})
    docs = await _next(stream)
    # the whole set again, not just the new document
    assert [d.id for d in docs] == [first, second]

    meals = [map_meal(d) for d in docs]
    assert meals[0].name == "Eggs"
    assert meals[0].timestamp == NOW
    assert meals[1].carbs == 65

    await stream.aclose()


@pytest.mark.asyncio
async def test_day_filter_is_half_open(store, clock):
    stamps = {
        "midnight": WINDOW.start,
        "last-ms": WINDOW.end - timedelta(milliseconds=1),
        "tomorrow": WINDOW.end,
        "yesterday": WINDOW.start - timedelta(microseconds=1),
    }
    ids = {}
    for label, ts in stamps.items():
        clock.now = ts
        ids[label] = await store.add_meal(USER, {"name": label})

    docs = await store.query_meals(USER, WINDOW)
    assert {d.id for d in docs} == {ids["midnight"], ids["last-ms"]}


@pytest.mark.asyncio
async def test_users_are_isolated(store):
    await store.add_meal("other", {"name": "not mine"})
    assert await store.query_meals(USER, WINDOW) == []


@pytest.mark.asyncio
async def test_delete_and_delete_again(store):
    meal_id = await store.add_meal(USER, {"name": "Soup"})
    stream = store.subscribe_meals(USER, WINDOW)
    assert len(await _next(stream)) == 1

    await store.delete_meal(USER, meal_id)
    await store.delete_meal(USER, meal_id)
    assert await _next(stream) == []

    # the no-op delete does not wake subscribers
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(stream.__anext__(), timeout=0.05)


@pytest.mark.asyncio
async def test_delete_is_scoped_to_user(store):
    meal_id = await store.add_meal(USER, {"name": "Soup"})
    await store.delete_meal("intruder", meal_id)
    assert len(await store.query_meals(USER, WINDOW)) == 1


@pytest.mark.asyncio
async def test_absent_fields_read_back_as_defaults(store):
    await store.add_meal(USER, {"name": None})
    (doc,) = await store.query_meals(USER, WINDOW)
    meal = map_meal(doc)
    assert (meal.name, meal.calories, meal.protein, meal.carbs, meal.fat) == ("", 0, 0, 0, 0)


@pytest.mark.asyncio
async def test_closing_stream_unregisters(store):
    stream = store.subscribe_meals(USER, WINDOW)
    await _next(stream)
    assert store.changes.listener_count(USER) == 1
    await stream.aclose()
    assert store.changes.listener_count(USER) == 0
