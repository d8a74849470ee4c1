from datetime import date

import pytest

from glrules.rules.types import (
    InvalidLineItemError,
    LineItem,
    RuleAction,
    RuleConditions,
    parse_iso_date,
)


class TestLineItem:
    @pytest.mark.parametrize("description", [None, "", "   "])
    def test_description_is_required(self, description):
        with pytest.raises(InvalidLineItemError):
            LineItem(description=description)

    def test_from_dict(self):
        line = LineItem.from_dict({
            "description": "Fuel",
            "amount": "65.20",
            "vendor_name": "",
            "line_item_category": "Transportation",
        })
        assert line.amount == 65.2
        assert line.vendor_name is None
        assert line.category == "Transportation"


class TestRuleConditions:
    def test_from_dict_parses_ranges(self):
        conditions = RuleConditions.from_dict({
            "amount_range": {"min": "10", "max": None},
            "date_range": {"start": "2024-01-01"},
            "keywords": ["paper", "", None],
        })
        assert conditions.amount_range.min == 10.0
        assert conditions.amount_range.max is None
        assert conditions.date_range.start == date(2024, 1, 1)
        assert conditions.keywords == ["paper"]

    def test_empty_ranges_are_not_clauses(self):
        conditions = RuleConditions.from_dict({"amount_range": {}, "date_range": {"start": None}})
        assert conditions.amount_range is None
        assert conditions.date_range is None
        assert not conditions.has_positive_clause()

    def test_exclusions_alone_are_not_a_positive_clause(self):
        assert not RuleConditions.from_dict({"exclude_keywords": ["refund"]}).has_positive_clause()

    def test_none(self):
        assert RuleConditions.from_dict(None) == RuleConditions()


def test_action_defaults():
    action = RuleAction.from_dict({"gl_code": "6000"})
    assert action.confidence_threshold == 0.8
    assert action.auto_assign is False
    assert action.override_ai is False


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-02-29", date(2024, 2, 29)),
        ("2024-02-29T10:00:00Z", date(2024, 2, 29)),
        ("2024-02-30", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_iso_date(value, expected):
    assert parse_iso_date(value) == expected
