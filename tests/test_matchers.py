import logging
from datetime import date

from glrules.rules import matchers
from glrules.rules.types import AmountRange, DateRange, LineItem


def item(**kwargs):
    kwargs.setdefault("description", "Office chairs")
    return LineItem(**kwargs)


class TestVendorPatterns:
    def test_exact_name_is_case_insensitive(self):
        result = matchers.match_vendor_patterns(["ACME"], item(vendor_name="acme"))
        assert result.matched
        assert result.points == 30

    def test_regex_pattern(self):
        result = matchers.match_vendor_patterns([r"^office\s+depot"], item(vendor_name="Office Depot #123"))
        assert result.matched

    def test_no_pattern_matches(self):
        result = matchers.match_vendor_patterns(["Staples", "^Adobe"], item(vendor_name="Office Depot"))
        assert not result.matched
        assert result.points == 0

    def test_missing_vendor_name(self):
        assert not matchers.match_vendor_patterns(["Acme"], item()).matched

    def test_malformed_pattern_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="glrules"):
            result = matchers.match_vendor_patterns(["Acme(", "Acme"], item(vendor_name="Acme"), rule_id=7)
        assert result.matched
        assert "malformed vendor pattern" in caplog.text

    def test_only_malformed_pattern_does_not_match(self):
        result = matchers.match_vendor_patterns(["[unclosed"], item(vendor_name="[unclosed vendor"))
        assert not result.matched


class TestAmountRange:
    def test_inclusive_bounds(self):
        amount_range = AmountRange(min=10, max=100)
        assert matchers.match_amount_range(amount_range, item(amount=10)).matched
        assert matchers.match_amount_range(amount_range, item(amount=100)).matched
        assert not matchers.match_amount_range(amount_range, item(amount=100.01)).matched

    def test_open_ended(self):
        assert matchers.match_amount_range(AmountRange(min=50), item(amount=1_000_000)).matched
        assert matchers.match_amount_range(AmountRange(max=50), item(amount=-20)).matched

    def test_missing_amount(self):
        assert not matchers.match_amount_range(AmountRange(min=0), item()).matched

    def test_non_finite_amount_never_matches(self):
        open_range = AmountRange()
        assert not matchers.match_amount_range(open_range, item(amount=float("nan"))).matched
        assert not matchers.match_amount_range(AmountRange(min=0), item(amount=float("inf"))).matched
        assert not matchers.match_amount_range(AmountRange(max=0), item(amount=float("-inf"))).matched


class TestDescriptionClauses:
    def test_keywords_require_all(self):
        line = item(description="Paper, pens and office supplies")
        assert matchers.match_keywords(["paper", "PENS"], line).matched
        assert not matchers.match_keywords(["paper", "toner"], line).matched

    def test_keywords_points(self):
        assert matchers.match_keywords(["chairs"], item()).points == 25

    def test_exact_description_trims_and_ignores_case(self):
        result = matchers.match_exact_descriptions(["office chairs"], item(description="  OFFICE Chairs "))
        assert result.matched
        assert result.points == 35

    def test_exact_description_is_not_substring(self):
        assert not matchers.match_exact_descriptions(["office"], item()).matched

    def test_exclusion(self):
        line = item(description="Refund for office chairs")
        assert matchers.is_excluded(["refund"], line)
        assert not matchers.is_excluded(["credit"], line)
        assert not matchers.is_excluded([], line)


class TestDateRange:
    def test_within_range(self):
        date_range = DateRange(start=None, end=None)
        assert matchers.match_date_range(date_range, item(date="2024-03-01")).matched

    def test_bounds_are_inclusive(self):
        date_range = DateRange(start=date(2024, 1, 1), end=date(2024, 12, 31))
        assert matchers.match_date_range(date_range, item(date="2024-01-01")).matched
        assert matchers.match_date_range(date_range, item(date="2024-12-31T23:59:00Z")).matched
        assert not matchers.match_date_range(date_range, item(date="2025-01-01")).matched

    def test_missing_or_bad_date(self):
        date_range = DateRange(start=date(2024, 1, 1))
        assert not matchers.match_date_range(date_range, item()).matched
        assert not matchers.match_date_range(date_range, item(date="next tuesday")).matched


def test_category_match():
    result = matchers.match_category(["Software"], item(category="software"))
    assert result.matched
    assert result.points == 5
    assert not matchers.match_category(["Software"], item()).matched
