"""Data models for the extraction engine (selectors, schemas, torrent records)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any


class DiscountLevel(StrEnum):
    """Promotional state of a torrent."""

    NONE = "none"
    FREE = "free"
    TWO_X_FREE = "2xfree"          # double upload + free download
    PERCENT_50 = "percent_50"      # half download
    TWO_X = "2x"
    TWO_X_PERCENT_50 = "2x50"
    PERCENT_30 = "percent_30"
    PERCENT_70 = "percent_70"


class SiteKind(StrEnum):
    """Tracker software families we have a generic driver for."""

    NEXUSPHP = "nexusphp"


class LevelGroup(StrEnum):
    USER = "user"
    VIP = "vip"


# ── Declarative selector configuration ─────────────────────────────────


@dataclass(frozen=True, slots=True)
class FilterInvocation:
    """One named filter call inside a pipeline."""

    name: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class FieldSelector:
    """
    How to resolve one field from a document.

    selectors are tried in order; attr is "text", "html" or an attribute
    name; text seeds the pipeline when no candidate matches.
    """

    selectors: tuple[str, ...]
    attr: str = "text"
    text: str | None = None
    filters: tuple[FilterInvocation, ...] = ()


@dataclass(frozen=True, slots=True)
class RequestConfig:
    url: str
    response_type: str = "document"


@dataclass(frozen=True, slots=True)
class Stage:
    """
    One page fetch of a multi-stage extraction.

    assertion maps a field name to the request parameter it feeds,
    e.g. {"id": "params.id"}.
    """

    request: RequestConfig
    fields: tuple[str, ...]
    assertion: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ExtractionSchema:
    """Ordered stages sharing one selector table."""

    stages: tuple[Stage, ...]
    selectors: dict[str, FieldSelector]
    pick_last: frozenset[str] = frozenset()
    request_delay: int = 0  # milliseconds between stages


@dataclass(slots=True)
class FieldExtraction:
    """Result of evaluating a set of field selectors against one document."""

    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


# ── Discount ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DiscountResult:
    level: DiscountLevel = DiscountLevel.NONE
    end_time: datetime | None = None


# ── Site definition ────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LevelRequirement:
    """
    One user class and what it takes to reach it.

    Thresholds are minimums; zero means the class does not check that value.
    """

    id: int
    name: str
    interval: timedelta | None = None  # account age
    downloaded: int = 0
    uploaded: int = 0
    ratio: float = 0.0
    privilege: str = ""
    group: LevelGroup = LevelGroup.USER


@dataclass(frozen=True, slots=True)
class SiteSelectors:
    """CSS selectors for torrent list / search result pages."""

    table_rows: str
    title: str
    title_link: str
    size: str
    seeders: str = ""
    leechers: str = ""
    snatched: str = ""
    subtitle: str = ""
    discount_icon: str = ""
    discount_mapping: dict[str, DiscountLevel] = field(default_factory=dict)
    discount_end_time: str = ""
    category: str = ""
    upload_time: str = ""


@dataclass(frozen=True, slots=True)
class DetailParserConfig:
    """Selectors for the torrent detail page."""

    time_layout: str = "%Y-%m-%d %H:%M:%S"
    discount_mapping: dict[str, DiscountLevel] = field(default_factory=dict)
    hr_keywords: tuple[str, ...] = ("hitandrun", "hit_and_run")
    title_selector: str = "h1#top"
    id_selector: str = "a[href*='download.php?id=']"
    discount_selector: str = "[class]"
    end_time_selector: str = "span[title]"
    size_selector: str = "td.rowhead:-soup-contains('Size')"
    size_regex: str = r"([\d.,]+\s*[KMGTP]?i?B)"


@dataclass(frozen=True, slots=True)
class SiteDefinition:
    """Static description of a tracker site."""

    id: str
    name: str
    urls: tuple[str, ...]
    kind: SiteKind = SiteKind.NEXUSPHP
    aka: tuple[str, ...] = ()
    description: str = ""
    favicon_url: str = ""
    timezone_offset: str = ""  # empty -> settings.default_timezone_offset
    user_info: ExtractionSchema | None = None
    selectors: SiteSelectors | None = None
    detail_parser: DetailParserConfig = field(default_factory=DetailParserConfig)
    level_requirements: tuple[LevelRequirement, ...] = ()
    # (SiteConfig, SiteRegistry) -> driver; None means a plain generic driver
    create_driver: Callable[..., Any] | None = None


# ── Extracted records ──────────────────────────────────────────────────


@dataclass(slots=True)
class TorrentItem:
    id: str
    title: str = ""
    size_bytes: int = 0
    discount_level: DiscountLevel = DiscountLevel.NONE
    discount_end_time: datetime | None = None
    has_hr: bool = False
    seeders: int = 0
    leechers: int = 0
    snatched: int = 0
    subtitle: str = ""
    category: str = ""
    upload_time: datetime | None = None
    source_site: str = ""


@dataclass(slots=True)
class UserInfo:
    """Account statistics assembled from the user-info stages."""

    site: str
    id: str = ""
    name: str = ""
    uploaded: int = 0
    downloaded: int = 0
    ratio: float = 0.0
    seeding: int = 0
    leeching: int = 0
    bonus: float = 0.0
    bonus_per_hour: float = 0.0
    message_count: int = 0
    level_name: str = ""
    level_id: int | None = None
    join_time: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict)
