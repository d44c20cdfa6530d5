from __future__ import annotations
from pydantic import BaseModel, ConfigDict


class MealOut(BaseModel):
    id: int
    external_id: str
    name: str
    category: str | None = None
    date: str
    mensa_location: str
    price_student: str | None = None
    price_employee: str | None = None
    price_other: str | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TodayMeals(BaseModel):
    meals: list[MealOut]
    location: str               # venue id or "all"
    date: str
    message: str | None = None


class Locations(BaseModel):
    locations: dict[str, str]


class OpeningTimes(BaseModel):
    location: str
    opening_times: str


class RandomMeal(BaseModel):
    meal: MealOut | None
    message: str | None = None
