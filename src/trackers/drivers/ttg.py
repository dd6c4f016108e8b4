"""
TTG (To The Glory) — NexusPHP with image-based discount markers.

The generic NexusPHP driver handles everything except two things:
  - discounts are marked by icon file names (ico_free.gif, ...) rather than
    class names, and the expiry is printed as red text
    ("到期时间为2026-01-30 16:32", no seconds);
  - the RSS guid is not the torrent id, so only the link is trusted.

Both are supplied as strategies; nothing else is re-declared.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from core.config import SiteConfig, settings
from trackers.discount import ImageDiscountStrategy
from trackers.drivers.base import Fetcher
from trackers.drivers.nexusphp import NexusPHPDriver, link_torrent_id
from trackers.filters import FilterContext
from trackers.models import (
    DetailParserConfig,
    DiscountLevel,
    ExtractionSchema,
    FieldSelector,
    FilterInvocation,
    LevelGroup,
    LevelRequirement,
    RequestConfig,
    SiteDefinition,
    SiteSelectors,
    Stage,
)

if TYPE_CHECKING:
    from trackers.registry import SiteRegistry

logger = logging.getLogger(__name__)

TTG_DISCOUNT_MAPPING: dict[str, DiscountLevel] = {
    "ico_free": DiscountLevel.FREE,
    "ico_free2up": DiscountLevel.TWO_X_FREE,
    "ico_50pctdown": DiscountLevel.PERCENT_50,
}

TTG_DISCOUNT_ICONS = "img[src*='ico_free'], img[src*='ico_free2up'], img[src*='ico_50pctdown']"
TTG_END_TIME_PATTERN = r"到期时间为(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2})"


def _regex(pattern: str) -> FilterInvocation:
    return FilterInvocation("regex", (pattern,))


_PARSE_NUMBER = FilterInvocation("parseNumber")
_PARSE_SIZE = FilterInvocation("parseSize")

# All top-navigation counters live in the same td.bottom block
_TOP_BAR = ("td.bottom",)

TTG_USER_INFO = ExtractionSchema(
    pick_last=frozenset({"id"}),
    request_delay=500,
    stages=(
        Stage(
            request=RequestConfig(url="/index.php"),
            fields=(
                "id", "name", "uploaded", "downloaded", "ratio",
                "seeding", "leeching", "bonus", "message_count",
            ),
        ),
        Stage(
            request=RequestConfig(url="/userdetails.php"),
            fields=("join_time", "level_name"),
            assertion={"id": "params.id"},
        ),
        Stage(
            request=RequestConfig(url="/mybonus.php"),
            fields=("bonus_per_hour",),
        ),
    ),
    selectors={
        # 欢迎回来，<b><a href="https://totheglory.im/userdetails.php?id=151907">username</a></b>
        "id": FieldSelector(
            selectors=("a[href*='userdetails.php']",),
            attr="href",
            filters=(FilterInvocation("querystring", ("id",)),),
        ),
        "name": FieldSelector(selectors=("a[href*='userdetails.php']",)),
        # <font color="green">上传量 : </font> <font color="black"><a title="4,400,128.37 MB">4.196 TB</a></font>
        "uploaded": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"上传量\s*:\s*</font>\s*<font[^>]*><a[^>]*>([\d.,]+\s*[KMGTP]?i?B)"), _PARSE_SIZE),
        ),
        "downloaded": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"下载量\s*:\s*</font>\s*<font[^>]*><a[^>]*>([\d.,]+\s*[KMGTP]?i?B)"), _PARSE_SIZE),
        ),
        # <font color="1900D1">分享率 :</font> <font color="#000000">2.823</font>
        "ratio": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"分享率\s*:\s*</font>\s*<font[^>]*>([\d.,]+|∞|Inf)"), _PARSE_NUMBER),
        ),
        # <img alt="做种中" .../><span class="smallfont">10</span>
        "seeding": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"做种中.*?smallfont[^>]*>(\d+)"), _PARSE_NUMBER),
        ),
        "leeching": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"下载中.*?smallfont[^>]*>(\d+)"), _PARSE_NUMBER),
        ),
        # 积分 : <a href="https://totheglory.im/mybonus.php">908728.22</a>
        "bonus": FieldSelector(
            selectors=_TOP_BAR,
            attr="html",
            filters=(_regex(r"积分\s*:\s*<[^>]*>([\d,]+\.?\d*)"), _PARSE_NUMBER),
        ),
        # <tr><td class="rowhead">总计</td><td>27.64 分</td></tr>
        "bonus_per_hour": FieldSelector(
            selectors=("body",),
            attr="html",
            filters=(_regex(r"总计</td>.*?([\d.,]+)\s*分"), _PARSE_NUMBER),
        ),
        "level_name": FieldSelector(
            selectors=(
                "td.rowhead:-soup-contains('等级') + td",
                "td.rowhead:-soup-contains('等級') + td",
                "td.rowhead:-soup-contains('Class') + td",
            ),
        ),
        # <tr><td class="rowhead">注册日期</td><td align="left">2019-09-03 23:02:35</td></tr>
        "join_time": FieldSelector(
            selectors=(
                "td.rowhead:-soup-contains('注册日期') + td",
                "td.rowhead:-soup-contains('Join') + td",
            ),
            filters=(_regex(r"(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})"), FilterInvocation("parseTime")),
        ),
        # <a href="messages.php?action=viewmailbox&box=1">...</a> 96 (0 <b>新</b>)
        # The fallback mirrors that counter text so an empty mailbox still parses.
        "message_count": FieldSelector(
            selectors=("a[href*='messages.php'][href*='viewmailbox']",),
            text="0 (0 新)",
            filters=(
                FilterInvocation("parentText"),
                _regex(r"(\d+)\s*\(\s*(\d+)\s*新\)"),
                FilterInvocation("index", (1,)),
                _PARSE_NUMBER,
            ),
        ),
    },
)


_GB = 1024**3
_TB = 1024**4

TTG_LEVELS: tuple[LevelRequirement, ...] = (
    LevelRequirement(
        id=0,
        name="Byte",
        privilege="新人考核：从注册之日起，30天内上传下载各40G以上，分享率不低于1，做种积分5000。",
    ),
    LevelRequirement(
        id=1,
        name="KiloByte",
        interval=timedelta(weeks=5),
        downloaded=60 * _GB,
        ratio=1.1,
        privilege="此等级为正式会员，可申请种子候选。升级条件：注册满5周，下载量60G以上，分享率大于1.1。小于1.0会自动降级。",
    ),
    LevelRequirement(
        id=2,
        name="MegaByte",
        interval=timedelta(weeks=8),
        downloaded=150 * _GB,
        ratio=2.0,
        privilege="升级条件：注册满8周，下载量150G以上，分享率大于2.0会升级，小于1.9会自动降级。",
    ),
    LevelRequirement(
        id=3,
        name="GigaByte",
        interval=timedelta(weeks=8),
        downloaded=250 * _GB,
        ratio=2.0,
        privilege="此等级可挂起，可进入积分商城。升级条件：注册满8周，下载量250G以上，分享率大于2.0会升级，小于1.9会自动降级。",
    ),
    LevelRequirement(
        id=4,
        name="TeraByte",
        interval=timedelta(weeks=8),
        downloaded=500 * _GB,
        ratio=2.5,
        privilege="此等级可用积分购买邀请，并可浏览全站。升级条件：注册满8周，下载量500G以上，分享率大于2.5会升级，小于2.4会自动降级。",
    ),
    LevelRequirement(
        id=5,
        name="PetaByte",
        interval=timedelta(weeks=16),
        downloaded=750 * _GB,
        ratio=2.5,
        privilege="此等级可直接发布种子。升级条件：注册满16周，下载量750G以上，分享率大于2.5会升级，低于2.4会自动降级。",
    ),
    LevelRequirement(
        id=6,
        name="ExaByte",
        interval=timedelta(weeks=24),
        downloaded=1 * _TB,
        ratio=3.0,
        privilege="此等级自行挂起账号后不会被清除。升级条件：注册满24周，下载量1TB以上，分享率大于3.0会升级，低于2.9自动降级。",
    ),
    LevelRequirement(
        id=7,
        name="ZettaByte",
        interval=timedelta(weeks=24),
        downloaded=int(1.5 * _TB),
        ratio=3.5,
        privilege="此等级免除流量考核。升级条件：注册满24周，下载量1.5TB以上，分享率大于3.5会升级，低于3.4自动降级。",
    ),
    LevelRequirement(
        id=8,
        name="YottaByte",
        interval=timedelta(weeks=24),
        downloaded=int(2.5 * _TB),
        ratio=4.0,
        privilege="此等级可查看排行榜。升级条件：注册满24周，下载量2.5TB以上，分享率大于4.0会升级，低于3.9会自动降级。",
    ),
    LevelRequirement(
        id=9,
        name="BrontoByte",
        interval=timedelta(weeks=32),
        downloaded=int(3.5 * _TB),
        ratio=5.0,
        privilege="此等级及以上用户会永远保留账号。升级条件：注册满32周，下载量3.5TB以上，分享率大于5.0会升级，低于4.9会自动降级。",
    ),
    LevelRequirement(
        id=10,
        name="NonaByte",
        interval=timedelta(weeks=48),
        downloaded=5 * _TB,
        uploaded=50 * _TB,
        ratio=6.0,
        privilege="升级条件：注册满48周，上传量50TB以上，下载量5TB以上，分享率大于6.0会升级，低于5.9会自动降级。",
    ),
    LevelRequirement(
        id=11,
        name="DoggaByte",
        interval=timedelta(weeks=48),
        downloaded=10 * _TB,
        uploaded=100 * _TB,
        ratio=6.0,
        privilege="升级条件：注册满48周，上传量100TB以上，下载量10TB以上，分享率大于6.0会升级，低于5.9会自动降级。",
    ),
    LevelRequirement(
        id=100,
        name="VIP",
        group=LevelGroup.VIP,
        privilege="为TTG做出特殊重大贡献的用户或合作者等。只计算上传量，不计算下载量。",
    ),
)


def ttg_discount_strategy(definition: SiteDefinition) -> ImageDiscountStrategy:
    parser = definition.detail_parser
    return ImageDiscountStrategy(
        mapping=dict(parser.discount_mapping),
        selector=parser.discount_selector,
        end_time_selector=parser.end_time_selector,
        end_time_pattern=TTG_END_TIME_PATTERN,
        time_layout=parser.time_layout,
        context=FilterContext.for_offset(definition.timezone_offset or settings.default_timezone_offset),
    )


def create_ttg_driver(
    config: SiteConfig,
    registry: SiteRegistry | None = None,
    fetcher: Fetcher | None = None,
) -> NexusPHPDriver:
    """Generic NexusPHP driver with TTG's discount and id strategies plugged in."""
    if not config.cookie:
        raise ValueError("TTG requires a cookie")

    definition = (registry.get_or_default(config.id) if registry else None) or TTG_DEFINITION
    base_url = config.base_url or definition.urls[0]
    logger.info("Creating TTG driver for %s", base_url)
    return NexusPHPDriver(
        definition,
        base_url,
        config.cookie,
        fetcher,
        discount_strategy=ttg_discount_strategy(definition),
        id_strategy=link_torrent_id,
    )


TTG_DEFINITION = SiteDefinition(
    id="ttg",
    name="TTG",
    aka=("TTG", "To The Glory"),
    description="TTG (To The Glory) general-purpose private tracker",
    urls=("https://totheglory.im/",),
    favicon_url="https://totheglory.im/favicon.ico",
    timezone_offset="+0800",
    user_info=TTG_USER_INFO,
    level_requirements=TTG_LEVELS,
    selectors=SiteSelectors(
        table_rows=(
            "table.torrents > tbody > tr:has(table.torrentname), "
            "table.torrents > tr:has(table.torrentname)"
        ),
        title="table.torrentname a[href*='details.php']",
        title_link="table.torrentname a[href*='details.php']",
        subtitle="table.torrentname td.embedded > span:not(.tags)",
        size="td.rowfollow:nth-child(5)",
        seeders="td.rowfollow:nth-child(6)",
        leechers="td.rowfollow:nth-child(7)",
        snatched="td.rowfollow:nth-child(8)",
        discount_icon=TTG_DISCOUNT_ICONS,
        discount_mapping=TTG_DISCOUNT_MAPPING,
        discount_end_time="span.free_end_time[title], font.free span[title], font.twoupfree span[title]",
        category="td.rowfollow:nth-child(1) img[alt]",
        upload_time="td.rowfollow:nth-child(4) span[title]",
    ),
    detail_parser=DetailParserConfig(
        time_layout="%Y-%m-%d %H:%M",
        discount_mapping=TTG_DISCOUNT_MAPPING,
        hr_keywords=(),  # TTG has no conventional HR marker
        title_selector="h1",
        id_selector="a.bookmark",
        discount_selector=TTG_DISCOUNT_ICONS,
        end_time_selector="font[color='red']",
        size_selector="td.heading:-soup-contains('尺寸')",
        size_regex=r"([\d.,]+\s*[KMGTP]i?B)",
    ),
    create_driver=create_ttg_driver,
)
