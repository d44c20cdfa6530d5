# tests/test_feed.py
from __future__ import annotations

import httpx
import pytest

from conftest import SAMPLE_FEED, feed_client
from core.errors import FetchError
from services.feed import feed_url, fetch_mensa_data, fetch_meta_data, meta_url, parse_feed

META = b"""<?xml version="1.0" encoding="UTF-8"?>
<om:openmensa xmlns:om="http://openmensa.org/open-mensa-v2" version="2.1">
  <om:canteen>
    <om:Times type="opening">
      <om:monday open="11:00-14:30"/>
      <om:friday open="11:00-14:30"/>
      <om:saturday closed="true"/>
    </om:Times>
  </om:canteen>
</om:openmensa>
"""


# ── XML ➜ dict shape ────────────────────────────────────────────────
def test_parse_feed_shape():
    doc = parse_feed(SAMPLE_FEED)
    canteen = doc["openmensa"]["canteen"]

    assert doc["openmensa"]["version"] == "2.1"
    assert isinstance(canteen["day"], list) and len(canteen["day"]) == 2

    first = canteen["day"][0]
    assert first["date"] == "2025-01-13"
    gulasch = first["category"][0]["meal"][0]
    assert gulasch["name"] == "Rindergulasch (A,C,G)"
    assert gulasch["note"] == ["Rind", "enthält Gluten"]
    assert gulasch["price"][0] == {"role": "student", "_": "3.50"}

    # one child stays a bare value
    second = canteen["day"][1]
    assert second["category"]["meal"]["note"] == "vegan"


def test_parse_feed_strips_prefixes_and_lowercases():
    doc = parse_feed(META)
    times = doc["openmensa"]["canteen"]["times"]
    assert times["type"] == "opening"
    assert times["monday"] == {"open": "11:00-14:30"}
    assert times["saturday"] == {"closed": "true"}


# ── HTTP ─────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_fetch_mensa_data_hits_venue_url():
    calls: list[str] = []
    async with feed_client({"hamburg_philturm.xml": SAMPLE_FEED}, calls) as client:
        doc = await fetch_mensa_data("philturm", client=client)

    assert calls == [feed_url("philturm")]
    assert "canteen" in doc["openmensa"]


@pytest.mark.asyncio
async def test_fetch_meta_data_uses_meta_url():
    calls: list[str] = []
    async with feed_client({"hamburg_blattwerk.xml": META}, calls) as client:
        doc = await fetch_meta_data("blattwerk", client=client)

    assert calls == [meta_url("blattwerk")]
    assert doc["openmensa"]["canteen"]["times"]["type"] == "opening"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 500, 503])
async def test_non_success_status_raises_fetch_error(status):
    async with feed_client({"hamburg_philturm.xml": status}) as client:
        with pytest.raises(FetchError) as info:
            await fetch_mensa_data("philturm", client=client)
    assert info.value.location == "philturm"


@pytest.mark.asyncio
async def test_malformed_xml_raises_fetch_error():
    async with feed_client({"hamburg_philturm.xml": b"<openmensa><canteen>"}) as client:
        with pytest.raises(FetchError):
            await fetch_mensa_data("philturm", client=client)


@pytest.mark.asyncio
async def test_transport_error_raises_fetch_error():
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as client:
        with pytest.raises(FetchError) as info:
            await fetch_mensa_data("blattwerk", client=client)
    assert isinstance(info.value.__cause__, httpx.ConnectError)
