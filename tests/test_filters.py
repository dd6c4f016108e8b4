"""
Tests for the filter catalogue
"""

import math
from datetime import datetime, timedelta, timezone

import pytest
from bs4 import BeautifulSoup

from trackers.errors import FilterFailure
from trackers.filters import (
    FilterContext,
    get_filter,
    index,
    parent_text,
    parse_number,
    parse_size,
    parse_time,
    parse_timezone_offset,
    querystring,
    regex,
)

CST = timezone(timedelta(hours=8))
CTX = FilterContext(tz=CST)


class TestParseSize:
    """Binary (1024-based) size parsing"""

    def test_terabytes_with_space(self):
        assert parse_size("4.196 TB", (), CTX) == pytest.approx(4.196 * 1024**4, abs=1)

    def test_gigabytes_without_space(self):
        assert parse_size("150GB", (), CTX) == 150 * 1024**3

    def test_binary_suffix_and_separators(self):
        assert parse_size("1.5 GiB", (), CTX) == int(1.5 * 1024**3)
        assert parse_size("1,024 MB", (), CTX) == 1024 * 1024**2
        assert parse_size("512 B", (), CTX) == 512

    def test_unknown_unit_fails(self):
        with pytest.raises(FilterFailure):
            parse_size("12 XB", (), CTX)

    def test_missing_unit_fails(self):
        with pytest.raises(FilterFailure):
            parse_size("12", (), CTX)

    def test_out_of_range_fails(self):
        with pytest.raises(FilterFailure):
            parse_size("9" * 400 + " PB", (), CTX)


class TestParseNumber:
    """Locale-formatted numeric text"""

    def test_infinity_tokens(self):
        assert parse_number("∞", (), CTX) == math.inf
        assert parse_number("Inf", (), CTX) == math.inf

    def test_plain_decimal(self):
        assert parse_number("908728.22", (), CTX) == 908728.22

    def test_thousands_separators(self):
        assert parse_number("1,234,567", (), CTX) == 1234567.0

    def test_rejects_garbage(self):
        with pytest.raises(FilterFailure):
            parse_number("abc", (), CTX)
        with pytest.raises(FilterFailure):
            parse_number("", (), CTX)


class TestRegexAndIndex:

    def test_single_group_returns_string(self):
        assert regex("分享率: 2.823", (r"([\d.]+)",), CTX) == "2.823"

    def test_multiple_groups_return_list(self):
        assert regex("96 (3 新)", (r"(\d+)\s*\(\s*(\d+)\s*新\)",), CTX) == ["96", "3"]

    def test_no_match_fails(self):
        with pytest.raises(FilterFailure) as exc_info:
            regex("nothing here", (r"(\d+)",), CTX)
        assert exc_info.value.filter_name == "regex"

    def test_dot_matches_newlines(self):
        assert regex("做种中\n<span class='smallfont'>10</span>", (r"做种中.*?smallfont[^>]*>(\d+)",), CTX) == "10"

    def test_index_selects_element(self):
        assert index(["96", "3"], (1,), CTX) == "3"

    def test_index_out_of_range(self):
        with pytest.raises(FilterFailure):
            index(["96"], (1,), CTX)

    def test_index_position_must_be_integer(self):
        with pytest.raises(FilterFailure):
            index(["96", "3"], ("x",), CTX)

    def test_index_requires_list(self):
        with pytest.raises(FilterFailure):
            index("96", (0,), CTX)


class TestParseTime:

    def test_anchored_to_site_offset(self):
        parsed = parse_time("2019-09-03 23:02:35", (), CTX)
        assert parsed == datetime(2019, 9, 3, 23, 2, 35, tzinfo=CST)
        assert parsed.utcoffset() == timedelta(hours=8)

    def test_custom_layout(self):
        parsed = parse_time("2026-01-30 16:32", ("%Y-%m-%d %H:%M",), CTX)
        assert parsed == datetime(2026, 1, 30, 16, 32, tzinfo=CST)

    def test_format_mismatch_fails(self):
        with pytest.raises(FilterFailure):
            parse_time("30/01/2026", (), CTX)

    def test_timezone_offsets(self):
        assert parse_timezone_offset("+0800").utcoffset(None) == timedelta(hours=8)
        assert parse_timezone_offset("-05:30").utcoffset(None) == -timedelta(hours=5, minutes=30)
        with pytest.raises(ValueError):
            parse_timezone_offset("CST")


class TestQuerystringAndParentText:

    def test_querystring_extracts_parameter(self):
        link = "https://totheglory.im/userdetails.php?id=151907"
        assert querystring(link, ("id",), CTX) == "151907"

    def test_querystring_missing_parameter(self):
        with pytest.raises(FilterFailure):
            querystring("https://totheglory.im/userdetails.php", ("id",), CTX)

    def test_parent_text_reads_sibling_text(self):
        soup = BeautifulSoup('<td><a href="messages.php">in</a> 96 (0 <b>新</b>)</td>', "html.parser")
        assert parent_text(soup.a, (), CTX) == "in 96 (0 新)"

    def test_parent_text_passes_strings_through(self):
        assert parent_text("0 (0 新)", (), CTX) == "0 (0 新)"

    def test_unknown_filter_name(self):
        with pytest.raises(ValueError):
            get_filter("toUpper")
