"""
Run one ingestion pass outside the scheduler.

Usage
-----

    # today's menus for every venue (same as the daily job)
    python -m scripts.refresh_meals

    # one venue, an explicit serving date, print instead of storing
    python -m scripts.refresh_meals --location philturm --date 2025-01-13 --dry-run
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date as Date, datetime
from typing import List

import httpx

from core.models.meal import Meal
from core.normalizer import extract_meals_for_date
from core.errors import FetchError
from core.venues import MENSA_LOCATIONS, is_venue_weekend, venue_today
from services.db import init_models, session_scope
from services.feed import fetch_mensa_data
from services.meal_storage import upsert_meals
from workers.meal_refresh import (
    get_all_todays_meals,
    get_todays_meals,
    refresh_meals_for_today,
)

_LOG = logging.getLogger(__name__)


async def _collect(
    locations: List[str], day: str, client: httpx.AsyncClient | None = None
) -> List[Meal]:
    meals: List[Meal] = []
    for loc in locations:
        try:
            data = await fetch_mensa_data(loc, client=client)
        except FetchError as exc:
            _LOG.warning("Skipping %s: %s", loc, exc)
            continue
        meals.extend(extract_meals_for_date(data, day, loc))
    return meals


async def _todays(
    locations: List[str],
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> List[Meal]:
    if len(locations) == len(MENSA_LOCATIONS):
        return await get_all_todays_meals(client=client, now=now)
    meals: List[Meal] = []
    for loc in locations:
        meals.extend(await get_todays_meals(loc, client=client, now=now))
    return meals


async def _run(
    locations: List[str],
    day: str | None,
    dry_run: bool,
    *,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> int:
    """Returns the number of meals stored (or printed, with `dry_run`)."""
    if day is None and is_venue_weekend(now):
        print(f"{venue_today(now)} is a weekend day, nothing to refresh")
        return 0

    if day is None and not dry_run and len(locations) == len(MENSA_LOCATIONS):
        await init_models()
        stored = await refresh_meals_for_today(client=client, now=now)
        print(f"✓ refreshed {stored} meals")
        return stored

    if day is None:
        meals = await _todays(locations, client, now)
    else:
        meals = await _collect(locations, day, client)

    if dry_run:
        for m in meals:
            print(f"{m.location:<17} {m.category:<20} {m.name}  [{m.notes}]")
        print(f"{len(meals)} meals (not stored)")
        return len(meals)

    await init_models()
    async with session_scope() as db:
        await upsert_meals(db, meals)
    print(f"✓ stored {len(meals)} meals")
    return len(meals)


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--location",
        choices=sorted(MENSA_LOCATIONS),
        help="only this venue (default: all)",
    )
    parser.add_argument(
        "--date",
        type=Date.fromisoformat,
        help="serving date YYYY-MM-DD (default: today, weekends skipped)",
    )
    parser.add_argument("--dry-run", action="store_true", help="print, don't store")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    locations = [args.location] if args.location else list(MENSA_LOCATIONS)
    day = args.date.isoformat() if args.date else None
    asyncio.run(_run(locations, day, args.dry_run))


if __name__ == "__main__":
    main()
