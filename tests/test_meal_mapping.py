# tests/test_meal_mapping.py
from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.meal_mapping import MealMappingError, map_meal, meal_fields, parse_macro
from core.models.meal import MealDocument

TS = datetime(2026, 10, 19, 12, 30, tzinfo=timezone.utc)

FULL = {
    "name": "Oatmeal",
    "calories": 350,
    "protein": 15,
    "carbs": 55,
    "fat": 8,
}


# ── defaults for every combination of missing fields ────────────────
@pytest.mark.parametrize(
    "present", list(itertools.product([True, False], repeat=len(FULL)))
)
def test_missing_fields_fall_back_to_defaults(present):
    data = {k: v for (k, v), keep in zip(FULL.items(), present) if keep}
    data["timestamp"] = TS

    meal = map_meal(MealDocument(id="m1", data=data))

    assert meal.id == "m1"
    assert meal.timestamp == TS
    for (key, value), keep in zip(FULL.items(), present):
        expected = value if keep else ("" if key == "name" else 0)
        assert getattr(meal, key) == expected


@pytest.mark.parametrize("bad", [None, "2026-10-19T12:00:00Z", 1760870000, object()])
def test_bad_timestamp_is_a_mapping_error(bad):
    with pytest.raises(MealMappingError) as info:
        map_meal(MealDocument(id="broken", data={**FULL, "timestamp": bad}))
    assert info.value.doc_id == "broken"


def test_absent_timestamp_is_a_mapping_error():
    with pytest.raises(MealMappingError, match="missing"):
        map_meal(MealDocument(id="x", data=FULL))


def test_naive_timestamp_is_read_as_utc():
    meal = map_meal(MealDocument(id="m", data={"timestamp": datetime(2026, 10, 19, 8, 0)}))
    assert meal.timestamp == datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


def test_offset_timestamp_is_normalised_to_utc():
    plus2 = timezone(timedelta(hours=2))
    meal = map_meal(MealDocument(id="m", data={"timestamp": datetime(2026, 10, 19, 10, 0, tzinfo=plus2)}))
    assert meal.timestamp.utcoffset() == timedelta(0)
    assert meal.timestamp.hour == 8


@pytest.mark.parametrize(
    "raw, expected",
    [(12, 12), (-4, -4), (7.0, 7), (7.5, 0), ("42", 42), ("abc", 0), (True, 0), ([1], 0)],
)
def test_stored_macro_values_are_coerced(raw, expected):
    meal = map_meal(MealDocument(id="m", data={"calories": raw, "timestamp": TS}))
    assert meal.calories == expected


def test_non_string_name_reads_as_empty():
    meal = map_meal(MealDocument(id="m", data={"name": 5, "timestamp": TS}))
    assert meal.name == ""


def test_meal_is_immutable():
    meal = map_meal(MealDocument(id="m", data={**FULL, "timestamp": TS}))
    with pytest.raises(ValidationError):
        meal.calories = 1


# ── parsing typed input ─────────────────────────────────────────────
@pytest.mark.parametrize(
    "text, expected",
    [
        ("500", 500), (" 30 ", 30), ("-5", -5), ("+7", 7), ("", 0), ("abc", 0),
        ("1.5", 0), ("1_000", 0), ("\u0663", 0), ("--1", 0), (None, 0),
    ],
)
def test_parse_macro(text, expected):
    assert parse_macro(text) == expected


def test_meal_fields_never_rejects_input():
    assert meal_fields("Toast", "abc", "", "20", "x") == {
        "name": "Toast",
        "calories": 0,
        "protein": 0,
        "carbs": 20,
        "fat": 0,
    }
