"""
Filter catalogue
================
Named, pure transformations applied to a raw extracted value.

Each filter takes (value, args, context) and returns the next value or
raises FilterFailure. Filters never mutate their input, so one catalogue is
shared by every site and every document.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Any
from urllib.parse import parse_qs, urlparse

from bs4 import Tag

from trackers.errors import FilterFailure

DEFAULT_TIME_LAYOUT = "%Y-%m-%d %H:%M:%S"

_OFFSET = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_SIZE = re.compile(r"^([\d.,]+)\s*([KMGTP]?)(i?)B$", re.IGNORECASE)
_SIZE_UNITS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5}
_INFINITY_TOKENS = {"∞", "inf", "infinity"}


def parse_timezone_offset(offset: str) -> tzinfo:
    """'+0800' / '-05:30' -> fixed-offset tzinfo."""
    match = _OFFSET.match(offset.strip())
    if not match:
        raise ValueError(f"invalid timezone offset: {offset!r}")
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


@dataclass(frozen=True, slots=True)
class FilterContext:
    """Site-level settings some filters depend on."""

    tz: tzinfo = timezone(timedelta(hours=8))

    @classmethod
    def for_offset(cls, offset: str) -> FilterContext:
        return cls(tz=parse_timezone_offset(offset))


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.DOTALL)


def _as_text(name: str, value: Any) -> str:
    if isinstance(value, Tag):
        return value.get_text().strip()
    if isinstance(value, str):
        return value
    raise FilterFailure(name, f"expected text, got {type(value).__name__}")


# ── Catalogue ──────────────────────────────────────────────────────────


def regex(value: Any, args: Sequence[Any], context: FilterContext) -> str | list[str]:
    if not args:
        raise FilterFailure("regex", "missing pattern argument")
    text = _as_text("regex", value)
    match = compile_pattern(str(args[0])).search(text)
    if not match:
        raise FilterFailure("regex", f"pattern {args[0]!r} did not match")
    groups = match.groups()
    if not groups:
        return match.group(0)
    if len(groups) == 1:
        if groups[0] is None:
            raise FilterFailure("regex", "capturing group is empty")
        return groups[0]
    return list(groups)


def index(value: Any, args: Sequence[Any], context: FilterContext) -> Any:
    if not isinstance(value, (list, tuple)):
        raise FilterFailure("index", f"expected a list, got {type(value).__name__}")
    try:
        position = int(args[0]) if args else 0
    except (TypeError, ValueError):
        raise FilterFailure("index", f"position must be an integer, got {args[0]!r}") from None
    if not 0 <= position < len(value):
        raise FilterFailure("index", f"index {position} out of range (len={len(value)})")
    item = value[position]
    if item is None:
        raise FilterFailure("index", f"element {position} is empty")
    return item


def parse_number(value: Any, args: Sequence[Any], context: FilterContext) -> float:
    if isinstance(value, (int, float)):
        return float(value)
    text = _as_text("parseNumber", value).strip()
    if text.lower() in _INFINITY_TOKENS:
        return math.inf
    cleaned = text.replace(",", "").replace(" ", "").replace("\xa0", "")
    try:
        return float(cleaned)
    except ValueError:
        raise FilterFailure("parseNumber", f"not a number: {text!r}") from None


def parse_size(value: Any, args: Sequence[Any], context: FilterContext) -> int:
    text = _as_text("parseSize", value).strip()
    match = _SIZE.match(text)
    if not match:
        raise FilterFailure("parseSize", f"unrecognised size: {text!r}")
    amount, unit, _ = match.groups()
    try:
        number = float(amount.replace(",", ""))
    except ValueError:
        raise FilterFailure("parseSize", f"bad quantity: {amount!r}") from None
    size = number * 1024 ** _SIZE_UNITS[unit.upper()]
    if not math.isfinite(size):
        raise FilterFailure("parseSize", f"size out of range: {text!r}")
    return round(size)


def parse_time(value: Any, args: Sequence[Any], context: FilterContext) -> datetime:
    layout = str(args[0]) if args else DEFAULT_TIME_LAYOUT
    text = _as_text("parseTime", value).strip()
    try:
        parsed = datetime.strptime(text, layout)
    except ValueError:
        raise FilterFailure("parseTime", f"{text!r} does not match {layout!r}") from None
    return parsed.replace(tzinfo=context.tz)


def querystring(value: Any, args: Sequence[Any], context: FilterContext) -> str:
    if not args:
        raise FilterFailure("querystring", "missing parameter name")
    name = str(args[0])
    text = _as_text("querystring", value).strip()
    values = parse_qs(urlparse(text).query).get(name)
    if not values or not values[0]:
        raise FilterFailure("querystring", f"parameter {name!r} not found in {text!r}")
    return values[0]


def parent_text(value: Any, args: Sequence[Any], context: FilterContext) -> str:
    if isinstance(value, str):
        return value
    if not isinstance(value, Tag):
        raise FilterFailure("parentText", f"expected a node, got {type(value).__name__}")
    if value.parent is None:
        raise FilterFailure("parentText", "node has no parent")
    return value.parent.get_text().strip()


Filter = Callable[[Any, Sequence[Any], FilterContext], Any]

FILTERS: dict[str, Filter] = {
    "regex": regex,
    "index": index,
    "parseNumber": parse_number,
    "parseSize": parse_size,
    "parseTime": parse_time,
    "querystring": querystring,
    "parentText": parent_text,
}

# Filters that want the matched node rather than its extracted text.
NODE_FILTERS = frozenset({"parentText"})


def get_filter(name: str) -> Filter:
    try:
        return FILTERS[name]
    except KeyError:
        raise ValueError(f"unknown filter: {name!r}") from None
