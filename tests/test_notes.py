# tests/test_notes.py
from __future__ import annotations

import pytest

from core.notes import NOTE_LABELS, simplify_notes, split_stored_notes


# ── vocabulary order, not input order ────────────────────────────────
def test_output_follows_vocabulary_order():
    notes = ["mit Alkohol", "Fisch", "Schwein", "Vegetarisch"]
    assert simplify_notes(notes) == [
        "Vegetarisch",
        "Schweinefleisch",
        "Fisch",
        "Alkohol",
    ]


def test_each_label_at_most_once():
    assert simplify_notes(["Lachs", "Forelle", "Fisch"]) == ["Fisch"]


def test_case_insensitive():
    assert simplify_notes(["VEGAN"]) == ["Vegan"]
    assert simplify_notes(["hähnchen"]) == ["Geflügel"]


# ── word boundaries ──────────────────────────────────────────────────
@pytest.mark.parametrize(
    "note, expected",
    [
        ("Rind", ["Rindfleisch"]),
        ("Hering", ["Fisch"]),          # "rind" inside "Hering" must not match
        ("Rindergulasch", []),
        ("Reh", ["Wild"]),
        ("Rumpsteak", []),
        ("mit Rum", ["Alkohol"]),
    ],
)
def test_word_bounded_patterns(note, expected):
    assert simplify_notes([note]) == expected


# ── Vegan suppresses its implications ─────────────────────────────────
def test_vegan_suppresses_vegetarian_and_lactose_free():
    out = simplify_notes(["vegan", "vegetarisch", "laktosefrei", "Gelatine"])
    assert out == ["Vegan", "Gelatine"]
    assert "Vegetarisch" not in out and "Laktosefrei" not in out


def test_lactose_free_without_vegan_is_kept():
    assert simplify_notes(["enthält keine Laktose", "vegetarisch"]) == [
        "Vegetarisch",
        "Laktosefrei",
    ]


def test_empty_and_junk_input():
    assert simplify_notes([]) == []
    assert simplify_notes(None) == []
    assert simplify_notes(["Glutenhaltiges Getreide", ""]) == []


def test_vocabulary_is_the_fixed_glossary():
    assert [label for label, _ in NOTE_LABELS] == [
        "Vegan", "Vegetarisch", "Rindfleisch", "Schweinefleisch", "Geflügel",
        "Laktosefrei", "Wild", "Lammfleisch", "Fisch", "Gelatine", "Alkohol",
    ]


def test_split_stored_notes_handles_legacy_separators():
    assert split_stored_notes("Vegan | Fisch · Alkohol, ") == ["Vegan", "Fisch", "Alkohol"]
    assert split_stored_notes(None) == []
