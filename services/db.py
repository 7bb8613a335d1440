"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* The `meals` table (one row per document of `users/{uid}/meals`)
* `SqlMealStore` and the process-wide `get_store()` used by routers
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping

from sqlalchemy import DateTime, Integer, String, delete, select
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings
from core.models.meal import DayWindow, MealDocument
from services.meal_store import Clock, InMemoryMealStore, MealStore, utcnow

_LOG = logging.getLogger(__name__)

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None


async def _create_engine() -> AsyncEngine:
    # 1) plain URL
    if settings.database_url:
        return create_async_engine(settings.database_url, pool_pre_ping=True)

    # 2) Cloud SQL connector (only if URL not supplied)
    if not settings.cloud_sql_connection_name:
        raise RuntimeError(
            "Set either DATABASE_URL or CLOUD_SQL_CONNECTION_NAME env var"
        )

    # lazy import here
    try:
        from google.cloud.sql.connector import Connector, IPTypes, create_async_connector  # type: ignore
    except ImportError as exc:
        raise RuntimeError(
            "cloud-sql-python-connector missing. Run:\n"
            "pip install 'cloud-sql-python-connector[asyncpg]>=1.4.0'"
        ) from exc

    connector: Connector = await create_async_connector()

    async def _getconn():  # type: ignore[name-defined]
        return await connector.connect_async(
            settings.cloud_sql_connection_name,
            "asyncpg",
            user=settings.db_user,
            password=settings.db_pass,
            db=settings.db_name,
            ip_type=IPTypes.PRIVATE,
        )

    return create_async_engine(
        "postgresql+asyncpg://",
        async_creator=_getconn,
        pool_pre_ping=True,
    )


async def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = await _create_engine()
    return _ENGINE


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class MealRecord(Base):
    __tablename__ = "meals"

    seq:       Mapped[int]             = mapped_column(Integer, primary_key=True, autoincrement=True)
    id:        Mapped[str]             = mapped_column(String(64), unique=True)
    user_id:   Mapped[str]             = mapped_column(String(128), index=True)
    name:      Mapped[str | None]      = mapped_column(String)
    calories:  Mapped[int | None]      = mapped_column(Integer)
    protein:   Mapped[int | None]      = mapped_column(Integer)
    carbs:     Mapped[int | None]      = mapped_column(Integer)
    fat:       Mapped[int | None]      = mapped_column(Integer)
    # always written in UTC; sqlite hands it back naive
    timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    def as_document(self) -> MealDocument:
        return MealDocument(
            id=self.id,
            data={
                "name": self.name,
                "calories": self.calories,
                "protein": self.protein,
                "carbs": self.carbs,
                "fat": self.fat,
                "timestamp": self.timestamp,
            },
        )


async def init_models(eng: AsyncEngine) -> None:
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ───────── store ─────────────────────────────────────────────────────
def _utc(ts: datetime) -> datetime:
    return ts.astimezone(timezone.utc)


class SqlMealStore(MealStore):
    """
    Meals in a relational table. Live snapshots come from this process's
    own writes, so every writer for a user must share one store instance.
    """

    def __init__(self, eng: AsyncEngine, clock: Clock = utcnow) -> None:
        super().__init__(clock)
        self._engine = eng
        self._sessions = async_sessionmaker(eng, expire_on_commit=False)

    async def query_meals(self, user_id: str, window: DayWindow) -> List[MealDocument]:
        async with self._sessions() as db:
            result = await db.execute(
                select(MealRecord)
                .where(
                    MealRecord.user_id == user_id,
                    MealRecord.timestamp >= _utc(window.start),
                    MealRecord.timestamp < _utc(window.end),
                )
                .order_by(MealRecord.seq)
            )
            return [row.as_document() for row in result.scalars().all()]

    async def _insert(self, user_id: str, meal_id: str, data: Mapping[str, Any]) -> None:
        ts = data.get("timestamp")
        async with self._sessions() as db:
            db.add(
                MealRecord(
                    id=meal_id,
                    user_id=user_id,
                    name=data.get("name"),
                    calories=data.get("calories"),
                    protein=data.get("protein"),
                    carbs=data.get("carbs"),
                    fat=data.get("fat"),
                    timestamp=_utc(ts) if isinstance(ts, datetime) else None,
                )
            )
            await db.commit()

    async def _remove(self, user_id: str, meal_id: str) -> bool:
        async with self._sessions() as db:
            result = await db.execute(
                delete(MealRecord).where(
                    MealRecord.user_id == user_id, MealRecord.id == meal_id
                )
            )
            await db.commit()
            return bool(result.rowcount)

    async def close(self) -> None:
        await self._engine.dispose()


# ───────── process-wide store ────────────────────────────────────────
_STORE: MealStore | None = None


async def get_store() -> MealStore:
    global _STORE
    if _STORE is None:
        if settings.database_url or settings.cloud_sql_connection_name:
            eng = await engine()
            await init_models(eng)
            _STORE = SqlMealStore(eng)
        else:
            _LOG.warning("no database configured – meals are kept in memory only")
            _STORE = InMemoryMealStore()
    return _STORE


async def close_store() -> None:
    global _STORE, _ENGINE
    if _STORE is not None:
        await _STORE.close()
    _STORE = None
    _ENGINE = None
