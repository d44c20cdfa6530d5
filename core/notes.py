# core/notes.py
"""
Reduce the free-text allergen / additive notes of the OpenMensa feed to a
small, fixed vocabulary of dietary tags.

The vocabulary is an ordered table of ``(label, patterns)`` pairs; the output
always follows table order, never input order:

    Vegan · Vegetarisch · Rindfleisch · Schweinefleisch · Geflügel ·
    Laktosefrei · Wild · Lammfleisch · Fisch · Gelatine · Alkohol

"Vegan" implies both "Vegetarisch" and "Laktosefrei", so those two are
dropped whenever "Vegan" matched.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Pattern, Sequence, Tuple


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


NOTE_LABELS: Tuple[Tuple[str, Tuple[Pattern[str], ...]], ...] = (
    ("Vegan", _compile(r"vegan")),
    ("Vegetarisch", _compile(r"vegetar")),
    ("Rindfleisch", _compile(r"\brind\b", r"\brindfleisch\b")),
    ("Schweinefleisch", _compile(r"\bschwein\b", r"\bschweinefleisch\b")),
    (
        "Geflügel",
        _compile(
            r"\bhuhn\b", r"\bhähnchen\b", r"\bhaehnchen\b",
            r"\bhähnchenfleisch\b", r"\bhaehnchenfleisch\b",
            r"\bgeflügel\b", r"\bgefluegel\b", r"\bpute\b",
            r"\bputenfleisch\b", r"\bhühnchen\b", r"\bhuehnchen\b",
        ),
    ),
    (
        "Laktosefrei",
        _compile(r"laktosefrei", r"enthält keine laktose", r"enthaelt keine laktose"),
    ),
    ("Wild", _compile(r"\bwild\b", r"\bhirsch\b", r"\breh\b", r"\bwildschwein\b")),
    ("Lammfleisch", _compile(r"\blamm\b", r"\blammfleisch\b")),
    (
        "Fisch",
        _compile(
            r"\bfisch\b", r"\blachs\b", r"\bforelle\b", r"\bseelachs\b",
            r"\blachsfilet\b", r"\bscholle\b", r"\btilapia\b", r"\bhering\b",
            r"\bmakrele\b", r"\bdorsch\b",
        ),
    ),
    ("Gelatine", _compile(r"gelatine", r"gelatin")),
    (
        "Alkohol",
        _compile(
            r"\balkohol\b", r"\bwein\b", r"\bliqueur\b", r"\blikör\b",
            r"\bschnaps\b", r"\brum\b", r"\bwhisky\b", r"\bwhiskey\b",
            r"\bweinbrand\b",
        ),
    ),
)

VEGAN = "Vegan"
IMPLIED_BY_VEGAN = frozenset({"Vegetarisch", "Laktosefrei"})

_STORED_SEPARATORS = re.compile(r"[|·]")


def simplify_notes(notes: Iterable[str] | None = None) -> List[str]:
    """Map raw note strings onto the ordered tag vocabulary."""
    matched: set[str] = set()
    for note in notes or ():
        if not isinstance(note, str):
            continue
        for label, patterns in NOTE_LABELS:
            if any(p.search(note) for p in patterns):
                matched.add(label)

    if VEGAN in matched:
        matched -= IMPLIED_BY_VEGAN

    return [label for label, _ in NOTE_LABELS if label in matched]


def join_notes(labels: Sequence[str]) -> str:
    return ", ".join(labels)


def split_stored_notes(value: str | None) -> List[str]:
    """Split a persisted notes column (``,`` ``|`` or ``·`` separated)."""
    if not value:
        return []
    normalised = _STORED_SEPARATORS.sub(",", str(value))
    return [part.strip() for part in normalised.split(",") if part.strip()]
