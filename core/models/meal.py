from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict

MACROS = ("calories", "protein", "carbs", "fat")


class Meal(BaseModel):
    id: str
    name: str = ""
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0
    timestamp: datetime

    model_config = ConfigDict(frozen=True)


class DailyTotals(BaseModel):
    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(cls, meals: Iterable[Meal]) -> "DailyTotals":
        """Elementwise sum of the four macros; no meals → all zero."""
        sums = dict.fromkeys(MACROS, 0)
        for meal in meals:
            for key in MACROS:
                sums[key] += getattr(meal, key)
        return cls(**sums)

    def summary(self) -> list[tuple[str, str]]:
        return [
            ("Calories", f"{self.calories} kcal"),
            ("Protein", f"{self.protein} g"),
            ("Carbs", f"{self.carbs} g"),
            ("Fat", f"{self.fat} g"),
        ]


@dataclass(frozen=True)
class DayWindow:
    start: datetime   # inclusive
    end: datetime     # exclusive

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


@dataclass(frozen=True)
class MealDocument:
    """A raw record as the store hands it out: id plus untyped fields."""
    id: str
    data: Mapping[str, Any] = field(default_factory=dict)
