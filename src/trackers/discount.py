"""
Discount detection strategies (Strategy Pattern).

Every strategy answers the same question: which discount level does this
document (or list row) carry, and until when? Sites plug in the strategy
matching their markup; callers only ever see a DiscountResult.

  - ClassDiscountStrategy: marker class names (NexusPHP default)
  - ImageDiscountStrategy: marker image file names + free-form expiry text
"""

from __future__ import annotations

import logging
import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from urllib.parse import urlparse

from bs4 import Tag

from trackers.filters import FilterContext
from trackers.models import DiscountLevel, DiscountResult

logger = logging.getLogger(__name__)

_DATETIME = r"(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}(?::\d{2})?)"

# Stock NexusPHP marker classes
NEXUSPHP_DISCOUNT_CLASSES: dict[str, DiscountLevel] = {
    "pro_free": DiscountLevel.FREE,
    "pro_free2up": DiscountLevel.TWO_X_FREE,
    "pro_50pctdown": DiscountLevel.PERCENT_50,
    "pro_50pctdown2up": DiscountLevel.TWO_X_PERCENT_50,
    "pro_30pctdown": DiscountLevel.PERCENT_30,
    "pro_2up": DiscountLevel.TWO_X,
    "free": DiscountLevel.FREE,
    "twoupfree": DiscountLevel.TWO_X_FREE,
    "halfdown": DiscountLevel.PERCENT_50,
    "twouphalfdown": DiscountLevel.TWO_X_PERCENT_50,
    "thirtypercent": DiscountLevel.PERCENT_30,
    "twoup": DiscountLevel.TWO_X,
}


def parse_end_time(text: str, pattern: re.Pattern[str], layout: str, tz: tzinfo) -> datetime | None:
    """First datetime substring captured by `pattern`, or None."""
    match = pattern.search(text)
    if not match:
        return None
    value = " ".join(match.group(1).split())
    # Layouts without seconds still accept pages that print them
    for candidate in (layout, layout + ":%S"):
        try:
            return datetime.strptime(value, candidate).replace(tzinfo=tz)
        except ValueError:
            continue
    logger.debug("Discount end time %r does not match %r", value, layout)
    return None


def find_end_time(document: Tag, selector: str, pattern: str, layout: str, tz: tzinfo) -> datetime | None:
    """First parseable end time among nodes matched by `selector` (title attr, else text)."""
    if not selector:
        return None
    compiled = re.compile(pattern)
    for node in document.select(selector):
        text = node.get("title") or node.get_text()
        end_time = parse_end_time(str(text), compiled, layout, tz)
        if end_time is not None:
            return end_time
    return None


class DiscountStrategy(ABC):
    """Contract for all discount detectors."""

    @abstractmethod
    def detect(self, document: Tag) -> DiscountResult:
        """Return the discount level and optional end time for a document."""
        ...


@dataclass(frozen=True)
class ClassDiscountStrategy(DiscountStrategy):
    """
    Default detection: first element (document order) matched by `selector`
    whose class list contains a key of `mapping`. The end time is read from
    an independent selector, preferring the title attribute over the text.
    """

    mapping: dict[str, DiscountLevel] = field(default_factory=lambda: dict(NEXUSPHP_DISCOUNT_CLASSES))
    selector: str = "[class]"
    end_time_selector: str = "span[title]"
    time_layout: str = "%Y-%m-%d %H:%M:%S"
    context: FilterContext = field(default_factory=FilterContext)
    end_time_pattern: str = _DATETIME

    def detect(self, document: Tag) -> DiscountResult:
        level = DiscountLevel.NONE
        for node in document.select(self.selector):
            level = next(
                (self.mapping[c] for c in node.get("class", []) if c in self.mapping),
                DiscountLevel.NONE,
            )
            if level is not DiscountLevel.NONE:
                break

        if level is DiscountLevel.NONE:
            return DiscountResult()
        end_time = find_end_time(
            document, self.end_time_selector, self.end_time_pattern, self.time_layout, self.context.tz
        )
        return DiscountResult(level=level, end_time=end_time)


@dataclass(frozen=True)
class ImageDiscountStrategy(DiscountStrategy):
    """
    Detection for sites that mark discounts with an icon file name
    (e.g. <img src="./pic/ico_free.gif">) and print the expiry as free text.

    Only the first marker image is considered. The end time is searched only
    once a level has been found.
    """

    mapping: dict[str, DiscountLevel]
    selector: str = ""
    end_time_selector: str = "font[color='red']"
    end_time_pattern: str = _DATETIME
    time_layout: str = "%Y-%m-%d %H:%M"
    context: FilterContext = field(default_factory=FilterContext)

    def icon_selector(self) -> str:
        if self.selector:
            return self.selector
        return ", ".join(f"img[src*='{keyword}']" for keyword in self.mapping)

    def detect(self, document: Tag) -> DiscountResult:
        # TODO: confirm whether pages ever carry two conflicting marker icons;
        # until then the first one wins and the rest are ignored.
        marker = document.select_one(self.icon_selector())
        if marker is None:
            return DiscountResult()

        src = marker.get("src")
        if not src:
            return DiscountResult()
        filename = posixpath.basename(urlparse(str(src)).path)
        base, _ = posixpath.splitext(filename)
        level = self.mapping.get(base, DiscountLevel.NONE)
        if level is DiscountLevel.NONE:
            logger.debug("Marker image %s has no discount mapping", filename)
            return DiscountResult()

        end_time = find_end_time(
            document, self.end_time_selector, self.end_time_pattern, self.time_layout, self.context.tz
        )
        return DiscountResult(level=level, end_time=end_time)


def detect_discount(document: Tag, strategy: DiscountStrategy) -> DiscountResult:
    """Run a discount strategy against a document or a list row."""
    return strategy.detect(document)
