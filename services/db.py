"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* The `meals` table the ingestion pipeline owns
* Session helpers for routers (dependency) and workers (context manager)
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONS: async_sessionmaker[AsyncSession] | None = None


def _create_engine() -> AsyncEngine:
    if not settings.database_url:
        raise RuntimeError("Set the DATABASE_URL env var")
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = _create_engine()
    return _ENGINE


def sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = async_sessionmaker(engine(), expire_on_commit=False)
    return _SESSIONS


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)


class StoredMeal(Base):
    __tablename__ = "meals"
    __table_args__ = (Index("ix_meals_location_date", "mensa_location", "date"),)

    id:             Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id:    Mapped[str] = mapped_column(String, unique=True)
    name:           Mapped[str] = mapped_column(Text, nullable=False)
    category:       Mapped[str | None] = mapped_column(String)
    date:           Mapped[str] = mapped_column(String(10), nullable=False)   # YYYY-MM-DD
    mensa_location: Mapped[str] = mapped_column(String, nullable=False)
    price_student:  Mapped[str | None] = mapped_column(String)
    price_employee: Mapped[str | None] = mapped_column(String)
    price_other:    Mapped[str | None] = mapped_column(String)
    notes:          Mapped[str | None] = mapped_column(Text)
    created_at:     Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


async def init_models(eng: AsyncEngine | None = None) -> None:
    """Create missing tables (no-op for existing ones)."""
    async with (eng or engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose() -> None:
    global _ENGINE, _SESSIONS
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE, _SESSIONS = None, None


# ───────── session helpers ───────────────────────────────────────────

async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency."""
    async with sessionmaker()() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """`async with session_scope() as db:` for workers and scripts."""
    async with sessionmaker()() as session:
        yield session
