"""
Fetch ➜ normalize ➜ reconcile for today's menus.

The scheduler, `scripts.refresh_meals` and the `/meals/today` endpoint all
call the same coroutines.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List

import httpx

from core.errors import FetchError
from core.models.meal import Meal
from core.normalizer import extract_meals_for_date
from core.venues import MENSA_LOCATIONS, is_venue_weekend, venue_today
from services.db import session_scope
from services.feed import fetch_mensa_data
from services.meal_storage import upsert_meals

_LOG = logging.getLogger(__name__)


async def get_todays_meals(
    location: str,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> List[Meal]:
    """Today's meals for one venue; [] on weekends or when the feed fails."""
    if is_venue_weekend(now):
        return []

    today = venue_today(now)
    try:
        data = await fetch_mensa_data(location, client=client)
    except FetchError as exc:
        _LOG.warning("Skipping %s for %s: %s", location, today, exc)
        return []

    return extract_meals_for_date(data, today, location)


async def get_all_todays_meals(
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> List[Meal]:
    """Today's meals across all venues, fetched one venue at a time."""
    if is_venue_weekend(now):
        return []

    meals: List[Meal] = []
    for location in MENSA_LOCATIONS:
        meals.extend(await get_todays_meals(location, client=client, now=now))
    return meals


async def refresh_meals_for_today(
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> int:
    """
    Scheduled entry point.  Never raises: every failure is logged so the
    scheduler stays alive for the next run.  Returns the batch size.
    """
    today = venue_today(now)
    if is_venue_weekend(now):
        _LOG.info("%s is a weekend day. Skipping meal refresh.", today)
        return 0

    try:
        _LOG.info("Refreshing meals for %s…", today)
        meals = await get_all_todays_meals(client=client, now=now)
        if not meals:
            _LOG.warning("No meals fetched for %s.", today)
            return 0

        async with session_scope() as db:
            await upsert_meals(db, meals)
        _LOG.info("Stored %d meals for %s.", len(meals), today)
        return len(meals)
    except Exception:
        _LOG.exception("Failed to refresh meals for %s", today)
        return 0

