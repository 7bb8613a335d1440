"""
Seed a few demo meals into today's log of one user.

Usage
-----

    # default hard-coded trio of meals
    python -m scripts.seed_meals <USER_ID>

    # custom list (same keys, numbers as text or ints) in a JSON file
    python -m scripts.seed_meals <USER_ID> --file path/to/meals.json

Needs DATABASE_URL (or the Cloud SQL variables); an in-memory store would
vanish with the process.
"""
from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, List

from config import settings
from core.meal_mapping import meal_fields
from services.db import close_store, get_store

# ────────────────────────────────────────────────────────────────────
_DEFAULT_MEALS: List[dict[str, Any]] = [
    {"name": "Masala Oats with Veggies", "calories": 380, "protein": 14, "carbs": 58, "fat": 9},
    {"name": "Grilled Tandoori Chicken & Quinoa", "calories": 510, "protein": 42, "carbs": 48, "fat": 17},
    {"name": "Palak Paneer with Phulka", "calories": 560, "protein": 32, "carbs": 55, "fat": 22},
]


async def _seed(user_id: str, meals: list[dict[str, Any]]) -> None:
    store = await get_store()
    try:
        for m in meals:
            await store.add_meal(
                user_id,
                meal_fields(
                    str(m.get("name", "")),
                    *(str(m.get(k, "")) for k in ("calories", "protein", "carbs", "fat")),
                ),
            )
    finally:
        await close_store()
    print(f"✓ inserted {len(meals)} meals for user {user_id}")


def _load_json(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text())
    if not isinstance(data, list):
        raise ValueError("JSON file must contain a list of meal dictionaries")
    return data


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("user_id", help="target user id (the session subject)")
    parser.add_argument(
        "--file",
        type=Path,
        help="optional JSON file with meals to seed (overrides defaults)",
    )
    args = parser.parse_args()

    if not (settings.database_url or settings.cloud_sql_connection_name):
        parser.error("set DATABASE_URL or CLOUD_SQL_CONNECTION_NAME first")

    meals = _load_json(args.file) if args.file else _DEFAULT_MEALS
    asyncio.run(_seed(args.user_id, meals))


if __name__ == "__main__":
    main()
