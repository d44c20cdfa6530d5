"""
services/meal_storage.py
────────────────────────────────────────────────────────────────────────
Reconcile a freshly normalized batch of meals with the `meals` table.

`upsert_meals` runs, in this order:

1. Gemüsebar cleanup   – one placeholder row per philturm day, nothing else
2. Pastabar cleanup    – drop rotated-out pasta offerings of the same day
3. split the batch     – empty meals vs. valid meals
4. empty cleanup       – delete stored rows that are (or became) empty
5. upsert              – INSERT … ON CONFLICT(external_id) DO UPDATE

Cleanups must run before the upsert of the same batch; they match stored
rows against "this batch".  An external_id that is both empty and valid
within one batch is treated as valid.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Sequence, Set, Tuple

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import StorageError
from core.models.meal import Meal
from core.venues import (
    PASTA_KEYWORD,
    VEGETABLE_BAR_KEYWORD,
    VEGETABLE_BAR_LOCATION,
    vegetable_bar_id,
)
from services.db import StoredMeal

_LOG = logging.getLogger(__name__)

# every column the upsert overwrites (all but the key / surrogate id)
_UPDATABLE = (
    "name",
    "category",
    "date",
    "mensa_location",
    "price_student",
    "price_employee",
    "price_other",
    "notes",
)

_INSERTS = {"sqlite": sqlite_insert, "postgresql": pg_insert}

VenueDay = Tuple[str, str]  # (location, date)


# ───────────────────────── helpers ──────────────────────────
def _row_values(meal: Meal) -> Dict[str, Any]:
    return {
        "external_id": meal.external_id,
        "name": meal.name,
        "category": meal.category,
        "date": meal.date,
        "mensa_location": meal.location,
        "price_student": meal.price_student,
        "price_employee": meal.price_employee,
        "price_other": meal.price_other,
        "notes": meal.notes,
    }


def _blank(column: Any) -> Any:
    return func.coalesce(func.trim(column), "") == ""


def _stored_row_is_empty() -> Any:
    """SQL twin of `Meal.is_empty()`."""
    return (
        _blank(StoredMeal.name)
        & _blank(StoredMeal.notes)
        & _blank(StoredMeal.price_student)
        & _blank(StoredMeal.price_employee)
        & _blank(StoredMeal.price_other)
    )


def _at(location: str, date: str) -> Any:
    return (StoredMeal.mensa_location == location) & (StoredMeal.date == date)


async def _delete(db: AsyncSession, *criteria: Any) -> int:
    res = await db.execute(
        delete(StoredMeal)
        .where(*criteria)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount or 0


async def _ids_in_category(
    db: AsyncSession, location: str, date: str, keyword: str
) -> Set[str]:
    # SQLite's lower() only folds ASCII, so the keyword match happens here
    res = await db.execute(
        select(StoredMeal.external_id, StoredMeal.category).where(_at(location, date))
    )
    return {ext for ext, category in res.all() if keyword in (category or "").lower()}


# ───────────────────────── cleanup steps ──────────────────────────
async def _cleanup_vegetable_bar(db: AsyncSession, meals: Sequence[Meal]) -> None:
    dates = sorted(
        {m.date for m in meals if m.location == VEGETABLE_BAR_LOCATION and m.date}
    )
    for date in dates:
        stale = await _ids_in_category(
            db, VEGETABLE_BAR_LOCATION, date, VEGETABLE_BAR_KEYWORD
        )
        stale.discard(vegetable_bar_id(date))
        if not stale:
            continue
        removed = await _delete(db, StoredMeal.external_id.in_(stale))
        if removed:
            _LOG.info("Removed %d stale Gemüsebar rows for %s", removed, date)


async def _cleanup_pasta_bar(db: AsyncSession, meals: Sequence[Meal]) -> None:
    keep: Dict[VenueDay, Set[str]] = defaultdict(set)
    for m in meals:
        if m.category and PASTA_KEYWORD in m.category.lower():
            keep[(m.location, m.date)].add(m.external_id)

    for (location, date), ids in keep.items():
        stale = await _ids_in_category(db, location, date, PASTA_KEYWORD) - ids
        if not stale:
            continue
        removed = await _delete(db, StoredMeal.external_id.in_(stale))
        if removed:
            _LOG.info("Removed %d rotated pasta rows at %s/%s", removed, location, date)


async def _cleanup_empty(
    db: AsyncSession, empty: Sequence[Meal], valid_ids: Set[str]
) -> None:
    targets: Dict[VenueDay, Set[str]] = defaultdict(set)
    for m in empty:
        ids = targets[(m.location, m.date)]
        if m.external_id and m.external_id not in valid_ids:
            ids.add(m.external_id)

    for (location, date), ids in targets.items():
        clauses = [_stored_row_is_empty()]
        if ids:
            clauses.append(StoredMeal.external_id.in_(ids))
        removed = await _delete(db, _at(location, date), or_(*clauses))
        if removed:
            _LOG.info("Pruned %d empty rows at %s/%s", removed, location, date)


def _insert_for(db: AsyncSession) -> Any:
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise StorageError(f"upsert not supported for dialect {dialect!r}")
    return insert


async def _upsert(db: AsyncSession, insert: Any, meals: Iterable[Meal]) -> None:
    for meal in meals:
        stmt = insert(StoredMeal).values(**_row_values(meal))
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoredMeal.external_id],
            set_={col: stmt.excluded[col] for col in _UPDATABLE},
        )
        await db.execute(stmt)


# ───────────────────────── public API ──────────────────────────
def partition_meals(meals: Sequence[Meal]) -> Tuple[List[Meal], List[Meal]]:
    """Split into (empty, valid) preserving order."""
    empty = [m for m in meals if m.is_empty()]
    valid = [m for m in meals if not m.is_empty()]
    return empty, valid


async def upsert_meals(db: AsyncSession, meals: Sequence[Meal]) -> None:
    """
    Merge `meals` (any mix of venues and dates) into the store.

    Idempotent: replaying the same batch leaves the table unchanged.
    Raises `StorageError` on any database failure; nothing is committed
    in that case.
    """
    if not meals:
        return

    empty, valid = partition_meals(meals)
    valid_ids = {m.external_id for m in valid}
    insert = _insert_for(db)

    try:
        await _cleanup_vegetable_bar(db, meals)
        await _cleanup_pasta_bar(db, meals)
        if empty:
            await _cleanup_empty(db, empty, valid_ids)
        await _upsert(db, insert, valid)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StorageError(f"failed to store {len(meals)} meals") from exc

    _LOG.info("Upserted %d meals (%d empty skipped)", len(valid), len(empty))


# ───────────────────────── reads (serving surface) ──────────────────────────
async def _all(db: AsyncSession, query: Select[Any]) -> List[StoredMeal]:
    try:
        return list((await db.execute(query)).scalars().all())
    except SQLAlchemyError as exc:
        raise StorageError("failed to read meals") from exc


async def list_meals(
    db: AsyncSession, dates: Sequence[str], location: str | None = None
) -> List[StoredMeal]:
    query = select(StoredMeal).where(StoredMeal.date.in_(list(dates)))
    if location:
        query = query.where(StoredMeal.mensa_location == location)
    query = query.order_by(
        StoredMeal.mensa_location, StoredMeal.category, StoredMeal.name
    )
    return await _all(db, query)


async def random_meal(
    db: AsyncSession, date: str, location: str | None = None
) -> StoredMeal | None:
    query = select(StoredMeal).where(StoredMeal.date == date)
    if location:
        query = query.where(StoredMeal.mensa_location == location)
    rows = await _all(db, query.order_by(func.random()).limit(1))
    return rows[0] if rows else None
