"""
Page fetching for site drivers.

Thin transport layer: builds the absolute URL, sends the site cookie with a
browser-impersonating curl_cffi session and hands back a parsed document.
Extraction never sees the transport, only the parsed BeautifulSoup tree.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from curl_cffi.requests import AsyncSession as CurlSession

from core.config import settings

logger = logging.getLogger(__name__)


def default_headers(cookie: str = "") -> dict[str, str]:
    headers = {
        "User-Agent": settings.user_agent,
        "Accept-Language": settings.accept_language,
    }
    if cookie:
        headers["Cookie"] = cookie
    return headers


async def fetch_document(
    base_url: str,
    path: str,
    params: dict[str, str] | None = None,
    cookie: str = "",
) -> BeautifulSoup:
    """
    Fetch `path` relative to `base_url` and return the parsed document.
    Raises RequestsError on network failure or a non-2xx status.
    """
    url = urljoin(base_url, path)
    logger.debug("Fetching %s params=%s", url, params)
    async with CurlSession(
        headers=default_headers(cookie),
        timeout=settings.request_timeout,
        impersonate=settings.impersonate,
    ) as client:
        response = await client.get(url, params=params)
        response.raise_for_status()
        return BeautifulSoup(response.text, "html.parser")
