# core/normalizer.py
"""
Turn a parsed OpenMensa feed (nested dicts as produced by
`services.feed.parse_feed`) into canonical `Meal` records.

The feed represents "one child" as a bare value and "many children" as a
list.  `_read_days` flattens that once, at the boundary, into the small
`Feed*` dataclasses below; everything after it only ever iterates lists.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from core.errors import StructuralDataError
from core.models.meal import Meal
from core.notes import join_notes, simplify_notes
from core.venues import (
    VEGETABLE_BAR_KEYWORD,
    VEGETABLE_BAR_LOCATION,
    VEGETABLE_BAR_NAME,
    VEGETABLE_BAR_NOTES,
    VEGETABLE_BAR_PRICE,
    vegetable_bar_id,
)

_LOG = logging.getLogger(__name__)

PRICE_ROLES = ("student", "employee", "other")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")

_ALLERGEN_GROUP = re.compile(r"\s*\(([0-9A-Za-zÄÖÜäöüß.,\s-]+)\)")
_ALLERGEN_CODE = re.compile(r"[0-9A-Za-zÄÖÜäöüß]+")
_MAX_CODE_LEN = 4
_WHITESPACE = re.compile(r"\s+")


# ──────────────── parse boundary ──────────────────
def as_list(value: Any) -> List[Any]:
    """None ➜ [], bare value ➜ [value], list ➜ list."""
    if value is None:
        return []
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return [value]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return str(value.get("_", ""))
    return str(value)


@dataclass(frozen=True)
class FeedPrice:
    role: str
    amount: str


@dataclass
class FeedItem:
    name: str
    prices: List[FeedPrice] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def price(self, role: str) -> Optional[str]:
        for p in self.prices:
            if p.role == role:
                return p.amount or None
        return None


@dataclass
class FeedCategory:
    name: str
    items: List[FeedItem] = field(default_factory=list)


@dataclass
class FeedDay:
    date: str
    categories: List[FeedCategory] = field(default_factory=list)


def _read_item(raw: Any) -> FeedItem:
    if not isinstance(raw, dict):
        return FeedItem(name=_text(raw))
    prices = [
        FeedPrice(role=str(p.get("role", "")), amount=_text(p))
        for p in as_list(raw.get("price"))
        if isinstance(p, dict)
    ]
    notes = [_text(n) for n in as_list(raw.get("note"))]
    return FeedItem(name=_text(raw.get("name")), prices=prices, notes=notes)


def _read_category(raw: Any) -> FeedCategory:
    if not isinstance(raw, dict):
        raise StructuralDataError(f"category node is not an element: {raw!r}")
    return FeedCategory(
        name=_text(raw.get("name")),
        items=[_read_item(m) for m in as_list(raw.get("meal"))],
    )


def _read_days(parsed_feed: Any) -> List[FeedDay]:
    if not isinstance(parsed_feed, dict):
        raise StructuralDataError("feed is empty")
    root = parsed_feed.get("openmensa")
    canteen = root.get("canteen") if isinstance(root, dict) else None
    if not isinstance(canteen, dict):
        raise StructuralDataError("missing openmensa.canteen")

    days: List[FeedDay] = []
    for raw_day in as_list(canteen.get("day")):
        if not isinstance(raw_day, dict):
            raise StructuralDataError(f"day node is not an element: {raw_day!r}")
        days.append(
            FeedDay(
                date=_text(raw_day.get("date")),
                categories=[_read_category(c) for c in as_list(raw_day.get("category"))],
            )
        )
    return days


# ──────────────── name cleaning ──────────────────
def _strip_codes(match: re.Match[str]) -> str:
    content = match.group(1)
    parts = [p for p in re.split(r"\s*,\s*", content) if p]
    if parts and all(
        _ALLERGEN_CODE.fullmatch(p) and len(p) <= _MAX_CODE_LEN for p in parts
    ):
        return ""
    return f" ({content})"


def clean_meal_name(name: Any = "") -> Any:
    """
    Drop parenthetical allergen-code groups such as ``(A,C,G)`` or
    ``(1, 2, Gl)`` from a meal name.  Groups holding real words
    (``(mit Dressing, Nüsse)``) are kept verbatim.
    """
    if not name or not isinstance(name, str):
        return name

    cleaned = _ALLERGEN_GROUP.sub(_strip_codes, name)
    cleaned = re.sub(r"\s{2,}", " ", cleaned).strip()
    cleaned = re.sub(r"\s+,", ",", cleaned)
    return cleaned


def build_external_id(location: str, date: str, raw_name: str) -> str:
    return f"{location}_{date}_{_WHITESPACE.sub('_', raw_name)}"


# ──────────────── meal extraction ──────────────────
def _is_vegetable_bar(category: FeedCategory, location: str) -> bool:
    return (
        location == VEGETABLE_BAR_LOCATION
        and VEGETABLE_BAR_KEYWORD in category.name.lower()
    )


def _vegetable_bar_meal(category: FeedCategory, date: str, location: str) -> Meal:
    return Meal(
        external_id=vegetable_bar_id(date, location),
        name=VEGETABLE_BAR_NAME,
        category=category.name,
        date=date,
        location=location,
        price_student=VEGETABLE_BAR_PRICE,
        price_employee=VEGETABLE_BAR_PRICE,
        price_other=VEGETABLE_BAR_PRICE,
        notes=VEGETABLE_BAR_NOTES,
    )


def _item_meal(item: FeedItem, category: FeedCategory, date: str, location: str) -> Meal:
    return Meal(
        external_id=build_external_id(location, date, item.name),
        name=clean_meal_name(item.name),
        category=category.name,
        date=date,
        location=location,
        price_student=item.price("student"),
        price_employee=item.price("employee"),
        price_other=item.price("other"),
        notes=join_notes(simplify_notes(item.notes)),
    )


def extract_meals_for_date(parsed_feed: Any, date: str, location: str) -> List[Meal]:
    """
    Return the canonical meals served at `location` on `date` (YYYY-MM-DD).

    Never raises: a malformed feed is logged and yields an empty list so
    the other venues of the same run are unaffected.
    """
    try:
        days = _read_days(parsed_feed)
    except StructuralDataError as exc:
        _LOG.error("Invalid feed structure for %s: %s", location, exc)
        return []

    target = next((d for d in days if d.date == date), None)
    if target is None:
        return []

    meals: List[Meal] = []
    try:
        for category in target.categories:
            if _is_vegetable_bar(category, location):
                meals.append(_vegetable_bar_meal(category, date, location))
                continue
            for item in category.items:
                meals.append(_item_meal(item, category, date, location))
    except Exception:
        _LOG.exception("Error extracting meals for %s on %s", location, date)
        return []
    return meals


# ──────────────── opening times (meta feed) ──────────────────
def summarize_opening_times(parsed_meta: Any) -> str:
    """One-line Monday–Friday opening-hours summary, or "" if unknown."""
    try:
        times = parsed_meta["openmensa"]["canteen"]["times"]
    except (KeyError, TypeError):
        return ""
    if not isinstance(times, dict) or times.get("type") != "opening":
        return ""

    open_times: List[str] = []
    for day in WEEKDAYS:
        entry = times.get(day)
        if isinstance(entry, dict) and entry.get("open"):
            open_times.append(str(entry["open"]))

    if not open_times:
        return ""
    if all(t == open_times[0] for t in open_times):
        return f"OPENING TIMES Mo - Fr {open_times[0]} Uhr"
    return "OPENING TIMES vary by day"
