from __future__ import annotations
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from core.daily_meals import Failed, Loading, Ready, SignedOut, ViewState

EMPTY_MESSAGE = "No meals logged for today."
SIGNED_OUT_MESSAGE = "Please sign in"


class MealIn(BaseModel):
    """Raw form input – numbers arrive as text and are parsed leniently."""
    name:     str = ""
    calories: str = ""
    protein:  str = ""
    carbs:    str = ""
    fat:      str = ""


class MealOut(BaseModel):
    id:        str
    name:      str
    calories:  int
    protein:   int
    carbs:     int
    fat:       int
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class TotalsOut(BaseModel):
    calories: int = 0
    protein:  int = 0
    carbs:    int = 0
    fat:      int = 0

    model_config = ConfigDict(from_attributes=True)


class SummaryCard(BaseModel):
    title: str
    value: str


class ViewOut(BaseModel):
    state:   Literal["loading", "ready", "failed", "signed_out"]
    meals:   list[MealOut] = []
    totals:  TotalsOut = TotalsOut()
    summary: list[SummaryCard] = []
    message: str | None = None

    @classmethod
    def from_state(cls, state: ViewState) -> "ViewOut":
        if isinstance(state, Ready):
            return cls(
                state="ready",
                meals=[MealOut.model_validate(m) for m in state.meals],
                totals=TotalsOut.model_validate(state.totals),
                summary=[
                    SummaryCard(title=t, value=v) for t, v in state.totals.summary()
                ],
                message=None if state.meals else EMPTY_MESSAGE,
            )
        if isinstance(state, Failed):
            return cls(state="failed", message=str(state.error))
        if isinstance(state, SignedOut):
            return cls(state="signed_out", message=SIGNED_OUT_MESSAGE)
        if isinstance(state, Loading):
            return cls(state="loading")
        raise TypeError(f"unknown view state {state!r}")
