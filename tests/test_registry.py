"""
Tests for the site registry, driver factory and the generic NexusPHP driver
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeFetcher, make_soup
from core.config import SiteConfig
from trackers.discount import ClassDiscountStrategy, ImageDiscountStrategy
from trackers.driver_factory import DriverFactory
from trackers.drivers.nexusphp import NexusPHPDriver, default_torrent_id
from trackers.models import (
    DiscountLevel,
    ExtractionSchema,
    FieldSelector,
    FilterInvocation,
    RequestConfig,
    SiteDefinition,
    SiteSelectors,
    Stage,
)
from trackers.registry import SiteRegistry, default_registry

CST = timezone(timedelta(hours=8))

DEMO = SiteDefinition(id="demo", name="Demo", urls=("https://demo.example/",), timezone_offset="+0800")

DEMO_DETAILS = """
<html><body>
<h1 id="top">Demo.Title <b>[<font class="free">免费</font>]</b></h1>
<span title="2026-03-01 12:00:00">剩余 2天</span>
<table>
<tr><td class="rowhead">Size</td><td class="rowfollow">1.50 GB</td></tr>
<tr><td class="rowhead">Download</td><td><a class="index" href="download.php?id=777&amp;passkey=x">file</a></td></tr>
</table>
<img class="hitandrun" src="pic/hitandrun.gif">
</body></html>
"""


class TestSiteRegistry:

    def test_default_registry_contains_ttg(self):
        registry = default_registry()
        assert registry.ids() == ["ttg"]
        assert "ttg" in registry
        assert registry.get("ttg").name == "TTG"

    def test_registration_order_is_kept(self):
        other = SiteDefinition(id="other", name="Other", urls=("https://other.example/",))
        registry = SiteRegistry([DEMO, other])
        assert registry.ids() == ["demo", "other"]
        assert [d.id for d in registry] == ["demo", "other"]
        assert len(registry) == 2

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError):
            SiteRegistry([DEMO, DEMO])

    def test_unknown_site(self):
        registry = SiteRegistry([DEMO])
        assert registry.get_or_default("nope") is None
        with pytest.raises(KeyError):
            registry.get("nope")

    def test_invalid_user_info_schema_rejected(self):
        broken = SiteDefinition(
            id="broken",
            name="Broken",
            urls=("https://broken.example/",),
            user_info=ExtractionSchema(
                stages=(Stage(request=RequestConfig(url="/index.php"), fields=("id",)),),
                selectors={"id": FieldSelector(selectors=("a",), filters=(FilterInvocation("nope"),))},
            ),
        )
        with pytest.raises(ValueError):
            SiteRegistry([broken])


class TestDriverFactory:

    def test_generic_site_gets_plain_nexusphp_driver(self):
        driver = DriverFactory.create(SiteConfig(id="demo"), SiteRegistry([DEMO]))

        assert type(driver) is NexusPHPDriver
        assert isinstance(driver.discount_strategy, ClassDiscountStrategy)
        assert driver.id_strategy is default_torrent_id
        assert driver.base_url == "https://demo.example/"

    def test_site_hook_is_used(self):
        driver = DriverFactory.create(SiteConfig(id="ttg", cookie="c"), default_registry())
        assert isinstance(driver.discount_strategy, ImageDiscountStrategy)

    def test_unknown_site(self):
        with pytest.raises(KeyError):
            DriverFactory.create(SiteConfig(id="nope"), default_registry())


class TestGenericDetail:
    """Stock NexusPHP detail page through the default strategies"""

    def test_parse_detail(self):
        driver = DriverFactory.create(SiteConfig(id="demo"), SiteRegistry([DEMO]))
        item = driver.parse_detail(make_soup(DEMO_DETAILS))

        assert item.id == "777"
        assert item.title.startswith("Demo.Title")
        assert item.size_bytes == int(1.5 * 1024**3)
        assert item.discount_level == DiscountLevel.FREE
        assert item.discount_end_time == datetime(2026, 3, 1, 12, 0, tzinfo=CST)
        assert item.has_hr is True

    def test_numeric_guid_preferred(self):
        assert default_torrent_id("555", "https://demo.example/details.php?id=1") == "555"
        assert default_torrent_id("abc", "https://demo.example/details.php?id=1") == "1"

    @pytest.mark.asyncio
    async def test_site_without_user_info(self):
        driver = DriverFactory.create(SiteConfig(id="demo"), SiteRegistry([DEMO]), FakeFetcher({}))
        with pytest.raises(ValueError):
            await driver.get_user_info()


class TestGenericList:

    def test_declared_class_mapping_is_used_without_icon_selector(self):
        definition = SiteDefinition(
            id="mapped",
            name="Mapped",
            urls=("https://mapped.example/",),
            selectors=SiteSelectors(
                table_rows="table.torrents tr.row",
                title="a.title",
                title_link="a.title",
                size="td.size",
                discount_mapping={"my_free": DiscountLevel.FREE},
            ),
        )
        driver = DriverFactory.create(SiteConfig(id="mapped"), SiteRegistry([definition]))
        page = make_soup("""
            <table class="torrents"><tr class="row">
              <td><a class="title" href="details.php?id=5">Row</a> <b class="my_free">free</b></td>
              <td class="size">1 GB</td>
            </tr></table>
        """)

        [item] = driver.parse_torrent_list(page)

        assert isinstance(driver.list_discount_strategy, ClassDiscountStrategy)
        assert item.discount_level == DiscountLevel.FREE
