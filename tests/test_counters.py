"""Tests for shorthand counter parsing."""

import pytest

from instaharvest.extraction import parse_count
from instaharvest.extraction.counters import looks_like_counter


class TestParseCount:
    """Test parse_count function."""

    @pytest.mark.parametrize("text, expected", [
        ("12.3K", 12300),
        ("1M", 1000000),
        ("1,234", 1234),
        ("999", 999),
        ("1.2B", 1200000000),
        ("12.3K views", 12300),
        ("1.5K likes", 1500),
    ])
    def test_parses_counters(self, text, expected):
        assert parse_count(text) == expected

    @pytest.mark.parametrize("text", ["", None, "likes", "K", "•"])
    def test_non_numeric_is_zero(self, text):
        assert parse_count(text) == 0

    def test_fraction_is_floored(self):
        """Sub-unit remainders are dropped, not rounded up."""
        assert parse_count("1.2345K") == 1234

    def test_lowercase_suffix_is_not_a_multiplier(self):
        assert parse_count("5m") == 5
        assert parse_count("2.5k") == 2


class TestLooksLikeCounter:
    """Test looks_like_counter function."""

    @pytest.mark.parametrize("text", ["12.3K", "1,234", "56", " 7 "])
    def test_counter_text(self, text):
        assert looks_like_counter(text)

    @pytest.mark.parametrize("text", ["", None, "hello world", "3 days ago", "K12", "5m"])
    def test_other_text(self, text):
        assert not looks_like_counter(text)
