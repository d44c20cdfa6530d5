"""
services/feed.py
────────────────────────────────────────────────────────────────────────
* Async HTTP access to the upstream OpenMensa feed + meta documents
* XML ➜ nested dict conversion used by `core.normalizer`

Failures of any kind surface as `FetchError`; callers decide whether to
skip the venue (the pipeline always does).
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import httpx

from config import settings
from core.errors import FetchError

_LOG = logging.getLogger(__name__)

_WS = re.compile(r"\s+")


# ───────── XML ➜ dict ───────────────────────────────────────────────
def _local(tag: str) -> str:
    """Strip ``{namespace}`` / ``prefix:`` and lowercase."""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    if ":" in tag:
        tag = tag.rsplit(":", 1)[1]
    return tag.lower()


def _normalise_text(text: str) -> str:
    return _WS.sub(" ", text).strip()


def _element_value(el: ET.Element) -> Any:
    children = list(el)
    text = _normalise_text(
        (el.text or "") + "".join(child.tail or "" for child in children)
    )
    if not children and not el.attrib:
        return text

    node: Dict[str, Any] = {_local(k): v for k, v in el.attrib.items()}
    for child in children:
        key = _local(child.tag)
        value = _element_value(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]
    if text:
        node["_"] = text
    return node


def parse_feed(payload: str | bytes) -> Dict[str, Any]:
    """
    Parse an OpenMensa XML document into nested dicts.

    A single child stays a bare value, repeated children become a list,
    attributes are merged into their element and text next to attributes
    or children lives under ``"_"``.
    """
    root = ET.fromstring(payload)
    return {_local(root.tag): _element_value(root)}


# ───────── HTTP ─────────────────────────────────────────────────────
@asynccontextmanager
async def _client_scope(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=settings.feed_timeout_seconds) as own:
        yield own


def feed_url(location: str) -> str:
    return f"{settings.feed_base_url}/hamburg_{location}.xml"


def meta_url(location: str) -> str:
    return f"{settings.meta_base_url}/hamburg_{location}.xml"


async def _fetch_document(
    location: str, url: str, client: httpx.AsyncClient | None
) -> Dict[str, Any]:
    try:
        async with _client_scope(client) as http:
            resp = await http.get(url)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        raise FetchError(location, f"GET {url} failed: {exc}") from exc

    try:
        return parse_feed(resp.content)
    except ET.ParseError as exc:
        raise FetchError(location, f"malformed XML from {url}: {exc}") from exc


async def fetch_mensa_data(
    location: str, *, client: httpx.AsyncClient | None = None
) -> Dict[str, Any]:
    """Fetch and parse the menu feed of one venue."""
    _LOG.debug("Fetching menu feed for %s", location)
    return await _fetch_document(location, feed_url(location), client)


async def fetch_meta_data(
    location: str, *, client: httpx.AsyncClient | None = None
) -> Dict[str, Any]:
    """Fetch and parse the meta document (opening hours) of one venue."""
    return await _fetch_document(location, meta_url(location), client)
