# tests/test_refresh_script.py
from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from conftest import MONDAY, SAMPLE_FEED, SATURDAY, feed_client
from scripts import refresh_meals
from services.db import StoredMeal

PHILTURM = {"hamburg_philturm.xml": SAMPLE_FEED}


@pytest.fixture
def use_test_db(monkeypatch, sessions):
    @asynccontextmanager
    async def scope():
        async with sessions() as session:
            yield session

    monkeypatch.setattr(refresh_meals, "session_scope", scope)
    monkeypatch.setattr(refresh_meals, "init_models", AsyncMock())


async def stored_ids(sessions) -> set[str]:
    async with sessions() as session:
        res = await session.execute(select(StoredMeal.external_id))
        return set(res.scalars().all())


async def test_single_venue_run_skips_weekends(use_test_db, sessions):
    calls: list[str] = []
    async with feed_client(PHILTURM, calls) as client:
        count = await refresh_meals._run(["philturm"], None, False, client=client, now=SATURDAY)

    assert count == 0
    assert calls == []
    assert await stored_ids(sessions) == set()


async def test_single_venue_run_stores_todays_meals(use_test_db, sessions):
    async with feed_client(PHILTURM) as client:
        count = await refresh_meals._run(["philturm"], None, False, client=client, now=MONDAY)

    assert count == 3
    assert "philturm_2025-01-13_Gemuesebar" in await stored_ids(sessions)


async def test_explicit_date_is_fetched_even_on_a_weekend():
    calls: list[str] = []
    async with feed_client(PHILTURM, calls) as client:
        count = await refresh_meals._run(
            ["philturm"], "2025-01-14", True, client=client, now=SATURDAY
        )

    assert count == 1
    assert len(calls) == 1
