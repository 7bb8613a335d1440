"""Re-export individual schema modules for easy imports."""

from .user import SessionOut
from .meal import MealIn, MealOut, SummaryCard, TotalsOut, ViewOut

__all__ = [
    "SessionOut",
    "MealIn",
    "MealOut",
    "SummaryCard",
    "TotalsOut",
    "ViewOut",
]
