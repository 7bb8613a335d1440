"""
core/meal_mapping.py
────────────────────────────────────────────────────────────────────────
Translation between stored meal documents and `Meal` values.

Reading is permissive for everything except the timestamp:

    name      → "" when absent
    macros    → 0 when absent or not an integer
    timestamp → required; no default exists, so a bad one is an error

Writing is permissive too: user-typed macro strings that do not parse
become 0 instead of rejecting the meal.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from core.models.meal import MACROS, Meal, MealDocument

_LOG = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


class MealMappingError(ValueError):
    """A stored document cannot be turned into a Meal."""

    def __init__(self, doc_id: str, reason: str) -> None:
        super().__init__(f"meal document {doc_id!r}: {reason}")
        self.doc_id = doc_id
        self.reason = reason


# ───────────────────────── read ─────────────────────────────
def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else 0
    if isinstance(value, str):
        return parse_macro(value)
    return 0


def _as_utc(doc_id: str, value: Any) -> datetime:
    if value is None:
        raise MealMappingError(doc_id, "timestamp is missing")
    if not isinstance(value, datetime):
        raise MealMappingError(
            doc_id, f"timestamp is {type(value).__name__}, not a time value"
        )
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def map_meal(doc: MealDocument) -> Meal:
    data = doc.data
    name = data.get("name")
    return Meal(
        id=doc.id,
        name=name if isinstance(name, str) else "",
        timestamp=_as_utc(doc.id, data.get("timestamp")),
        **{key: _as_int(data.get(key)) for key in MACROS},
    )


# ───────────────────────── write ────────────────────────────
def parse_macro(text: str | None) -> int:
    """Signed ASCII decimal integer, or 0 – never raises."""
    if text is None:
        return 0
    text = text.strip()
    # int() alone would also take "1_000" and non-ASCII digits
    if not _INTEGER.fullmatch(text):
        return 0
    return int(text)


def meal_fields(
    name: str,
    calories: str | None = None,
    protein: str | None = None,
    carbs: str | None = None,
    fat: str | None = None,
) -> dict[str, Any]:
    """Payload for a new meal document; the store adds the timestamp."""
    fields = {
        "name": name or "",
        "calories": parse_macro(calories),
        "protein": parse_macro(protein),
        "carbs": parse_macro(carbs),
        "fat": parse_macro(fat),
    }
    _LOG.debug("parsed meal fields %s", fields)
    return fields
