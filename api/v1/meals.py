# api/v1/meals.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.schemas import Locations, MealOut, OpeningTimes, RandomMeal, TodayMeals
from core.errors import FetchError, StorageError
from core.normalizer import summarize_opening_times
from core.notes import join_notes, simplify_notes, split_stored_notes
from core.venues import (
    ALL_LOCATIONS,
    MENSA_LOCATIONS,
    is_venue_weekend,
    resolve_location,
    venue_today,
)
from services.db import StoredMeal, get_session
from services.feed import fetch_meta_data
from services.meal_storage import list_meals, random_meal, upsert_meals
from workers.meal_refresh import get_all_todays_meals, get_todays_meals

_LOG = logging.getLogger(__name__)

router = APIRouter()


# ───────────────────────── helpers ──────────────────────────
def _serialize(row: StoredMeal) -> MealOut:
    """Row ➜ schema, re-deriving notes so legacy rows read like fresh ones."""
    out = MealOut.model_validate(row, from_attributes=True)
    out.notes = join_notes(simplify_notes(split_stored_notes(row.notes)))
    return out


# ───────────────────────── today ──────────────────────────
@router.get(
    "/today",
    response_model=TodayMeals,
    status_code=status.HTTP_200_OK,
    summary="Refresh and list today's meals",
)
async def todays_meals(
    location: str | None = Query(None, description="venue id or 'all'"),
    db: AsyncSession = Depends(get_session),
) -> TodayMeals:
    resolved = resolve_location(location)
    today = venue_today()

    if is_venue_weekend():
        return TodayMeals(
            meals=[], location=resolved, date=today, message="Enjoy your weekend :)"
        )

    # on-demand refresh before serving
    if resolved == ALL_LOCATIONS:
        fresh = await get_all_todays_meals()
    else:
        fresh = await get_todays_meals(resolved)

    dates = sorted({m.date for m in fresh if m.date}) or [today]
    try:
        await upsert_meals(db, fresh)
        rows = await list_meals(
            db, dates, None if resolved == ALL_LOCATIONS else resolved
        )
    except StorageError:
        _LOG.exception("Failed to serve meals for %s", resolved)
        raise HTTPException(status_code=500, detail="Failed to fetch meals")

    return TodayMeals(
        meals=[_serialize(r) for r in rows], location=resolved, date=dates[0]
    )


# ───────────────────────── locations ──────────────────────────
@router.get("/locations", response_model=Locations)
async def locations() -> Locations:
    return Locations(locations=MENSA_LOCATIONS)


@router.get("/opening-times/{location}", response_model=OpeningTimes)
async def opening_times(location: str) -> OpeningTimes:
    if location not in MENSA_LOCATIONS:
        raise HTTPException(status_code=404, detail="Location not found")
    try:
        meta = await fetch_meta_data(location)
    except FetchError as exc:
        _LOG.warning("Opening times unavailable for %s: %s", location, exc)
        return OpeningTimes(location=location, opening_times="")
    return OpeningTimes(location=location, opening_times=summarize_opening_times(meta))


# ───────────────────────── random ──────────────────────────
@router.get("/random", response_model=RandomMeal)
async def pick_random(
    location: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> RandomMeal:
    if is_venue_weekend():
        return RandomMeal(meal=None, message="No meals available on weekends")

    venue = location if location in MENSA_LOCATIONS else None
    try:
        row = await random_meal(db, venue_today(), venue)
    except StorageError:
        _LOG.exception("Failed to pick a random meal")
        raise HTTPException(status_code=500, detail="Failed to fetch random meal")

    if row is None:
        return RandomMeal(meal=None, message="No meals available")
    return RandomMeal(meal=_serialize(row))
