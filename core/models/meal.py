from __future__ import annotations

from pydantic import BaseModel, ConfigDict

PRICE_FIELDS = ("price_student", "price_employee", "price_other")


def _blank(value: object) -> bool:
    return value is None or str(value).strip() == ""


class Meal(BaseModel):
    """Canonical meal record produced by the normalizer."""

    external_id: str
    name: str
    category: str
    date: str                       # YYYY-MM-DD, venue serving date
    location: str
    price_student: str | None = None
    price_employee: str | None = None
    price_other: str | None = None
    notes: str = ""

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        """Blank name, blank notes and no price at all."""
        return (
            _blank(self.name)
            and _blank(self.notes)
            and all(_blank(getattr(self, f)) for f in PRICE_FIELDS)
        )
