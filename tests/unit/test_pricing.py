"""Tests for the price table and cost estimation."""

from decimal import Decimal

import pytest

from diffreview.llm.pricing import PRICE_TABLE, estimate_cost, format_cost, lookup_price


class TestLookupPrice:
    def test_exact_match(self):
        assert lookup_price("claude-sonnet-4") is PRICE_TABLE["claude-sonnet-4"]

    def test_dated_model_id(self):
        assert lookup_price("claude-sonnet-4-20250514") is PRICE_TABLE["claude-sonnet-4"]

    def test_dated_point_releases(self):
        assert lookup_price("claude-sonnet-4-5-20250929") is PRICE_TABLE["claude-sonnet-4-5"]
        assert lookup_price("claude-opus-4-1-20250805") is PRICE_TABLE["claude-opus-4-1"]
        assert lookup_price("claude-opus-4-5-20251101") is PRICE_TABLE["claude-opus-4-5"]

    def test_latest_alias(self):
        assert lookup_price("claude-3-5-haiku-latest") is PRICE_TABLE["claude-3-5-haiku"]

    def test_newer_family_member_is_not_guessed(self):
        assert lookup_price("claude-opus-4-6") is None
        assert lookup_price("claude-opus-4-6-20260101") is None
        assert lookup_price("claude-sonnet-4-extended") is None

    def test_unknown_model(self):
        assert lookup_price("gpt-4o") is None
        assert lookup_price("") is None

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            PRICE_TABLE["new-model"] = PRICE_TABLE["claude-3-haiku"]


class TestEstimateCost:
    def test_cost(self):
        # 2000 * $3/M + 500 * $15/M
        assert estimate_cost("claude-sonnet-4-20250514", 2000, 500) == Decimal("0.0135")

    def test_zero_tokens(self):
        assert estimate_cost("claude-3-haiku-20240307", 0, 0) == Decimal(0)

    def test_unknown_model(self):
        assert estimate_cost("mystery", 100, 100) is None

    def test_opus_4_5_pricing(self):
        # 1000 * $5/M + 1000 * $25/M
        assert estimate_cost("claude-opus-4-5-20251101", 1000, 1000) == Decimal("0.03")


class TestFormatCost:
    @pytest.mark.parametrize(
        "cost,expected",
        [
            (Decimal("0.0135"), "$0.014"),
            (Decimal("0.0134"), "$0.013"),
            (Decimal("0"), "$0.000"),
            (Decimal("12.3456"), "$12.346"),
        ],
    )
    def test_three_decimals(self, cost, expected):
        assert format_cost(cost) == expected

    def test_unknown(self):
        assert format_cost(None) == "unknown"
