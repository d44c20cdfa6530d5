# api/v1/router.py
from fastapi import APIRouter

from . import meals

api_router = APIRouter()

api_router.include_router(meals.router, prefix="/meals", tags=["Meals"])
