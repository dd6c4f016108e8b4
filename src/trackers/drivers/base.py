"""Abstract base class for all site drivers (Strategy Pattern)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from bs4 import BeautifulSoup

from core.http import fetch_document
from trackers.models import SiteDefinition, TorrentItem, UserInfo

# (base_url, path, params, cookie) -> parsed document
Fetcher = Callable[[str, str, dict[str, str] | None, str], Awaitable[BeautifulSoup]]


class BaseDriver(ABC):
    """
    Contract for all tracker site drivers.

    The site definition and credentials are injected via __init__.
    Subclasses fetch pages through `fetch` and return typed records,
    never raw dicts.

    Principles:
    - Field-level extraction failures become empty values, never raise.
    - Stage and document failures raise ExtractionError subclasses.
    - All network methods are async; parsing methods are pure and sync.
    """

    def __init__(
        self,
        definition: SiteDefinition,
        base_url: str,
        cookie: str = "",
        fetcher: Fetcher | None = None,
    ) -> None:
        self.definition = definition
        self.base_url = base_url
        self.cookie = cookie
        self._fetcher = fetcher or fetch_document

    @property
    def site_id(self) -> str:
        return self.definition.id

    async def fetch(self, path: str, params: dict[str, str] | None = None) -> BeautifulSoup:
        return await self._fetcher(self.base_url, path, params, self.cookie)

    @abstractmethod
    async def get_torrent_detail(self, guid: str, link: str) -> TorrentItem:
        """Fetch and parse one torrent detail page."""
        ...

    @abstractmethod
    async def get_user_info(self) -> UserInfo:
        """Fetch and assemble the logged-in account's statistics."""
        ...

    @abstractmethod
    async def search(self, keyword: str) -> list[TorrentItem]:
        """Fetch and parse one page of search results."""
        ...
