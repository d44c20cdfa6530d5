import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from services.db import dispose, init_models
from workers.scheduler import MealScheduler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

scheduler = MealScheduler()


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_models()
    if settings.scheduler_enabled:
        scheduler.initialize()
        scheduler.start(run_now=settings.refresh_on_startup)
    yield
    if settings.scheduler_enabled:
        scheduler.shutdown()
    await dispose()


app = FastAPI(title="Mensa Meals API", version="1.0.0", lifespan=lifespan)

# CORS (public read API)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
