"""Re-export individual schema modules for easy imports."""

from .meal import Locations, MealOut, OpeningTimes, RandomMeal, TodayMeals

__all__ = [
    "Locations",
    "MealOut",
    "OpeningTimes",
    "RandomMeal",
    "TodayMeals",
]
