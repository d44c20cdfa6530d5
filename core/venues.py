"""
Fixed venue enumeration plus the civil-time helpers every part of the
pipeline agrees on (serving date, weekend check).
"""
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from config import settings

# short id ➜ display name
MENSA_LOCATIONS: dict[str, str] = {
    "studierendenhaus": "Schweinemensa",
    "blattwerk": "Blattwerk (Vegetarisch)",
    "philturm": "Philturm",
}
DEFAULT_LOCATION = "studierendenhaus"
ALL_LOCATIONS = "all"

# ─── volatile categories ────────────────────────────────────────────
VEGETABLE_BAR_LOCATION = "philturm"
VEGETABLE_BAR_KEYWORD = "gemüsebar"
VEGETABLE_BAR_NAME = "Gemüsebar"
VEGETABLE_BAR_PRICE = "0.85"
VEGETABLE_BAR_NOTES = "Vegetarisch"
PASTA_KEYWORD = "pasta"


def vegetable_bar_id(date: str, location: str = VEGETABLE_BAR_LOCATION) -> str:
    return f"{location}_{date}_Gemuesebar"


def resolve_location(raw: str | None) -> str:
    """Map a user supplied location onto a known id, ``all`` or the default."""
    if raw == ALL_LOCATIONS:
        return ALL_LOCATIONS
    if raw and raw in MENSA_LOCATIONS:
        return raw
    return DEFAULT_LOCATION


def _venue_now(now: datetime | None = None) -> datetime:
    tz = ZoneInfo(settings.timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:  # naive ➜ already venue-local
        return now
    return now.astimezone(tz)


def venue_today(now: datetime | None = None) -> str:
    """ISO date (YYYY-MM-DD) of `now` in the venues' timezone."""
    return _venue_now(now).date().isoformat()


def is_venue_weekend(now: datetime | None = None) -> bool:
    return _venue_now(now).weekday() >= 5
