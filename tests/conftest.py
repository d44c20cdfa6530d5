"""
Shared fixtures: an in-memory SQLite store and an OpenMensa sample feed.
"""
from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.db import Base

BERLIN = ZoneInfo("Europe/Berlin")
MONDAY = datetime(2025, 1, 13, 10, 0, tzinfo=BERLIN)
SATURDAY = datetime(2025, 1, 11, 12, 0, tzinfo=BERLIN)

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<openmensa version="2.1" xmlns="http://openmensa.org/open-mensa-v2">
  <canteen>
    <day date="2025-01-13">
      <category name="Hauptgericht">
        <meal>
          <name>Rindergulasch (A,C,G)</name>
          <note>Rind</note>
          <note>enthält Gluten</note>
          <price role="student">3.50</price>
          <price role="employee">5.20</price>
          <price role="other">6.90</price>
        </meal>
        <meal>
          <name>Gemüsecurry (mit Reis, Koriander)</name>
          <note>vegan</note>
          <note>vegetarisch</note>
          <price role="student">2.80</price>
        </meal>
      </category>
      <category name="Gemüsebar">
        <meal><name>Brokkoli</name><price role="student">0.50</price></meal>
        <meal><name>Möhren</name><price role="student">0.50</price></meal>
      </category>
    </day>
    <day date="2025-01-14">
      <category name="Pastabar">
        <meal>
          <name>Penne Arrabiata</name>
          <note>vegan</note>
          <price role="student">2.10</price>
        </meal>
      </category>
    </day>
  </canteen>
</openmensa>
""".encode("utf-8")


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,  # one shared connection for the in-memory DB
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(sessions):
    async with sessions() as session:
        yield session


def feed_client(routes: dict[str, bytes | int], calls: list[str] | None = None) -> httpx.AsyncClient:
    """
    AsyncClient backed by a MockTransport.  `routes` maps a URL path suffix
    to either a response body (200) or a bare status code.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        for suffix, answer in routes.items():
            if request.url.path.endswith(suffix):
                if isinstance(answer, int):
                    return httpx.Response(answer)
                return httpx.Response(200, content=answer)
        return httpx.Response(404)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
