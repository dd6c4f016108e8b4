"""
NexusPHP driver — generic detail / list / user-info parser.
=============================================================
Covers stock NexusPHP markup through the declarative selectors in the
site definition. Sites whose markup differs in one narrow place plug in a
different strategy instead of subclassing:

  - discount_strategy: discount level + end time on the detail page
  - list_discount_strategy: the same, per search result row
  - id_strategy: torrent id from an RSS (guid, link) pair
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any
from urllib.parse import parse_qs, urlparse

from bs4 import Tag

from core.config import settings
from trackers.discount import (
    NEXUSPHP_DISCOUNT_CLASSES,
    ClassDiscountStrategy,
    DiscountStrategy,
    ImageDiscountStrategy,
    detect_discount,
)
from trackers.drivers.base import BaseDriver, Fetcher
from trackers.engine import evaluate_stage, extract, stage_params
from trackers.errors import ParseError
from trackers.filters import FilterContext
from trackers.models import (
    DetailParserConfig,
    FieldSelector,
    FilterInvocation,
    LevelRequirement,
    SiteDefinition,
    SiteSelectors,
    TorrentItem,
    UserInfo,
)

logger = logging.getLogger(__name__)

IdStrategy = Callable[[str, str], str]


def extract_torrent_id_from_link(link: str) -> str:
    """
    Torrent id from a details/download link, e.g.
    https://site/details.php?id=12345&hit=1 -> "12345". Empty when absent.
    """
    if not link:
        return ""
    values = parse_qs(urlparse(link).query).get("id")
    return values[0] if values else ""


def default_torrent_id(guid: str, link: str) -> str:
    """Numeric guid when the feed provides one, else the link's id parameter."""
    if guid.isdigit():
        return guid
    return extract_torrent_id_from_link(link)


def link_torrent_id(guid: str, link: str) -> str:
    """Ignore the guid entirely; some feeds put a hash there."""
    return extract_torrent_id_from_link(link)


def detail_field_selectors(parser: DetailParserConfig) -> dict[str, FieldSelector]:
    return {
        "title": FieldSelector(selectors=(parser.title_selector,)),
        "id": FieldSelector(
            selectors=(parser.id_selector,),
            attr="href",
            filters=(FilterInvocation("regex", (r"(\d+)",)),),
        ),
        "size": FieldSelector(
            selectors=(parser.size_selector,),
            filters=(
                FilterInvocation("parentText"),
                FilterInvocation("regex", (parser.size_regex,)),
                FilterInvocation("parseSize"),
            ),
        ),
    }


def list_field_selectors(selectors: SiteSelectors) -> dict[str, FieldSelector]:
    number = (FilterInvocation("regex", (r"([\d,]+)",)), FilterInvocation("parseNumber"))
    fields = {
        "title": FieldSelector(selectors=(selectors.title,)),
        "id": FieldSelector(
            selectors=(selectors.title_link,),
            attr="href",
            filters=(FilterInvocation("querystring", ("id",)),),
        ),
        "size": FieldSelector(selectors=(selectors.size,), filters=(FilterInvocation("parseSize"),)),
    }
    for name in ("seeders", "leechers", "snatched"):
        query = getattr(selectors, name)
        if query:
            fields[name] = FieldSelector(selectors=(query,), filters=number)
    if selectors.subtitle:
        fields["subtitle"] = FieldSelector(selectors=(selectors.subtitle,))
    if selectors.category:
        fields["category"] = FieldSelector(selectors=(selectors.category,), attr="alt")
    if selectors.upload_time:
        fields["upload_time"] = FieldSelector(
            selectors=(selectors.upload_time,),
            attr="title",
            filters=(FilterInvocation("parseTime"),),
        )
    return fields


def find_level(levels: Sequence[LevelRequirement], name: str) -> LevelRequirement | None:
    """Level whose name matches the page's class name (case-insensitive)."""
    wanted = name.strip().lower()
    if not wanted:
        return None
    return next((level for level in levels if level.name.lower() == wanted), None)


def build_user_info(
    site: str,
    values: Mapping[str, Any],
    levels: Sequence[LevelRequirement] = (),
) -> UserInfo:
    uploaded = int(values.get("uploaded", 0))
    downloaded = int(values.get("downloaded", 0))
    level_name = str(values.get("level_name", ""))
    level = find_level(levels, level_name)
    ratio = values.get("ratio")
    if ratio is None:
        ratio = uploaded / downloaded if downloaded else 0.0
    return UserInfo(
        site=site,
        id=str(values.get("id", "")),
        name=str(values.get("name", "")),
        uploaded=uploaded,
        downloaded=downloaded,
        ratio=float(ratio),
        seeding=int(values.get("seeding", 0)),
        leeching=int(values.get("leeching", 0)),
        bonus=float(values.get("bonus", 0.0)),
        bonus_per_hour=float(values.get("bonus_per_hour", 0.0)),
        message_count=int(values.get("message_count", 0)),
        level_name=level_name,
        level_id=level.id if level else None,
        join_time=values.get("join_time"),
        raw=dict(values),
    )


class NexusPHPDriver(BaseDriver):
    """Generic NexusPHP driver with pluggable discount and id strategies."""

    detail_path = "details.php"
    search_path = "torrents.php"

    def __init__(
        self,
        definition: SiteDefinition,
        base_url: str,
        cookie: str = "",
        fetcher: Fetcher | None = None,
        *,
        discount_strategy: DiscountStrategy | None = None,
        list_discount_strategy: DiscountStrategy | None = None,
        id_strategy: IdStrategy | None = None,
    ) -> None:
        super().__init__(definition, base_url, cookie, fetcher)
        self.context = FilterContext.for_offset(definition.timezone_offset or settings.default_timezone_offset)
        parser = definition.detail_parser
        self.detail_selectors = detail_field_selectors(parser)
        self.list_selectors = list_field_selectors(definition.selectors) if definition.selectors else {}

        self.discount_strategy = discount_strategy or ClassDiscountStrategy(
            mapping=dict(parser.discount_mapping or NEXUSPHP_DISCOUNT_CLASSES),
            selector=parser.discount_selector,
            end_time_selector=parser.end_time_selector,
            time_layout=parser.time_layout,
            context=self.context,
        )
        self.list_discount_strategy = list_discount_strategy or self._default_list_discount()
        self.id_strategy = id_strategy or default_torrent_id

    def _default_list_discount(self) -> DiscountStrategy:
        selectors = self.definition.selectors
        layout = self.definition.detail_parser.time_layout
        if selectors and selectors.discount_icon and selectors.discount_mapping:
            return ImageDiscountStrategy(
                mapping=dict(selectors.discount_mapping),
                selector=selectors.discount_icon,
                end_time_selector=selectors.discount_end_time,
                time_layout=layout,
                context=self.context,
            )
        return ClassDiscountStrategy(
            mapping=dict((selectors and selectors.discount_mapping) or NEXUSPHP_DISCOUNT_CLASSES),
            end_time_selector=(selectors and selectors.discount_end_time) or "span[title]",
            time_layout=layout,
            context=self.context,
        )

    # ── Detail page ────────────────────────────────────────────────────

    def parse_hr(self, document: Tag) -> bool:
        keywords = self.definition.detail_parser.hr_keywords
        if not keywords:
            return False
        html = str(document).lower()
        return any(keyword.lower() in html for keyword in keywords)

    def parse_detail(self, document: Tag | None, torrent_id: str = "") -> TorrentItem:
        """Assemble a TorrentItem from a detail page. Pure; no network."""
        extraction = extract(document, self.detail_selectors, self.context)
        title = extraction.get("title", "")
        if not title:
            raise ParseError(f"{self.site_id}: detail page has no title")

        discount = detect_discount(document, self.discount_strategy)
        return TorrentItem(
            id=str(extraction.get("id") or torrent_id),
            title=title,
            size_bytes=extraction.get("size", 0),
            discount_level=discount.level,
            discount_end_time=discount.end_time,
            has_hr=self.parse_hr(document),
            source_site=self.site_id,
        )

    async def get_torrent_detail(self, guid: str, link: str) -> TorrentItem:
        torrent_id = self.id_strategy(guid, link)
        if not torrent_id:
            raise ParseError(f"{self.site_id}: cannot extract torrent id from link {link!r}")
        document = await self.fetch(self.detail_path, {"id": torrent_id, "hit": "1"})
        return self.parse_detail(document, torrent_id)

    # ── List / search page ─────────────────────────────────────────────

    def parse_torrent_list(self, document: Tag | None) -> list[TorrentItem]:
        selectors = self.definition.selectors
        if selectors is None:
            raise ParseError(f"{self.site_id}: no list selectors defined")
        if document is None:
            raise ParseError(f"{self.site_id}: no document to extract from")

        items: list[TorrentItem] = []
        for row in document.select(selectors.table_rows):
            extraction = extract(row, self.list_selectors, self.context)
            torrent_id = extraction.get("id")
            if not torrent_id:
                logger.debug("%s: skipping list row without torrent id", self.site_id)
                continue
            discount = detect_discount(row, self.list_discount_strategy)
            items.append(TorrentItem(
                id=str(torrent_id),
                title=extraction.get("title", ""),
                size_bytes=extraction.get("size", 0),
                discount_level=discount.level,
                discount_end_time=discount.end_time,
                seeders=int(extraction.get("seeders", 0)),
                leechers=int(extraction.get("leechers", 0)),
                snatched=int(extraction.get("snatched", 0)),
                subtitle=extraction.get("subtitle", ""),
                category=extraction.get("category", ""),
                upload_time=extraction.get("upload_time"),
                source_site=self.site_id,
            ))
        return items

    async def search(self, keyword: str) -> list[TorrentItem]:
        document = await self.fetch(self.search_path, {"search": keyword})
        items = self.parse_torrent_list(document)
        logger.info("%s: search %r returned %d torrents", self.site_id, keyword, len(items))
        return items

    # ── User info ──────────────────────────────────────────────────────

    async def get_user_info(self) -> UserInfo:
        schema = self.definition.user_info
        if schema is None:
            raise ValueError(f"{self.site_id}: site has no user info schema")

        resolved: dict[str, Any] = {}
        for index, stage in enumerate(schema.stages):
            if index and schema.request_delay:
                await asyncio.sleep(schema.request_delay / 1000)
            params = stage_params(schema, index, resolved)
            document = await self.fetch(stage.request.url, params or None)
            resolved = evaluate_stage(schema, index, document, resolved, self.context)

        return build_user_info(self.site_id, resolved, self.definition.level_requirements)
