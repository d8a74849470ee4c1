"""
Condition Matchers

One pure predicate per rule clause. Each returns a ClauseResult carrying
the clause's fixed weight when it matches and zero points otherwise.
"""

import math
import re
from typing import List, Optional, Any

from glrules.app_logger import get_logger
from glrules.rules.types import (
    AmountRange,
    ClauseResult,
    DateRange,
    GL_RULE_SCORING,
    LineItem,
    parse_iso_date,
)

logger = get_logger("rules.matchers")


def _normalize(text: str) -> str:
    return text.strip().lower()


def match_vendor_patterns(
    patterns: List[str],
    item: LineItem,
    rule_id: Optional[Any] = None,
) -> ClauseResult:
    """
    Match the vendor name against exact names or regular expressions.

    A pattern that fails to compile only disqualifies itself; the
    remaining patterns are still tried.
    """
    if not patterns or not item.vendor_name:
        return ClauseResult.miss()

    vendor_name = item.vendor_name.strip()
    for pattern in patterns:
        if _normalize(pattern) == vendor_name.lower():
            return ClauseResult(True, GL_RULE_SCORING["vendor_patterns"])
        try:
            if re.search(pattern, vendor_name, re.IGNORECASE):
                return ClauseResult(True, GL_RULE_SCORING["vendor_patterns"])
        except re.error as e:
            logger.warning(
                "Rule %s has malformed vendor pattern %r: %s", rule_id, pattern, e
            )
            continue

    return ClauseResult.miss()


def match_amount_range(amount_range: Optional[AmountRange], item: LineItem) -> ClauseResult:
    if amount_range is None or item.amount is None:
        return ClauseResult.miss()
    if not math.isfinite(item.amount):
        return ClauseResult.miss()
    if amount_range.contains(item.amount):
        return ClauseResult(True, GL_RULE_SCORING["amount_range"])
    return ClauseResult.miss()


def match_keywords(keywords: List[str], item: LineItem) -> ClauseResult:
    """All keywords must appear in the description."""
    if not keywords:
        return ClauseResult.miss()
    description = item.description.lower()
    if all(keyword.lower() in description for keyword in keywords):
        return ClauseResult(True, GL_RULE_SCORING["keywords"])
    return ClauseResult.miss()


def match_exact_descriptions(descriptions: List[str], item: LineItem) -> ClauseResult:
    if not descriptions:
        return ClauseResult.miss()
    description = _normalize(item.description)
    if any(_normalize(candidate) == description for candidate in descriptions):
        return ClauseResult(True, GL_RULE_SCORING["exact_descriptions"])
    return ClauseResult.miss()


def match_date_range(date_range: Optional[DateRange], item: LineItem) -> ClauseResult:
    if date_range is None or not item.date:
        return ClauseResult.miss()
    item_date = parse_iso_date(item.date)
    if item_date is None:
        return ClauseResult.miss()
    if date_range.contains(item_date):
        return ClauseResult(True, GL_RULE_SCORING["date_range"])
    return ClauseResult.miss()


def match_category(categories: List[str], item: LineItem) -> ClauseResult:
    if not categories or not item.category:
        return ClauseResult.miss()
    category = _normalize(item.category)
    if any(_normalize(candidate) == category for candidate in categories):
        return ClauseResult(True, GL_RULE_SCORING["line_item_category"])
    return ClauseResult.miss()


def is_excluded(exclude_keywords: List[str], item: LineItem) -> bool:
    """True if the description contains any excluded keyword."""
    if not exclude_keywords:
        return False
    description = item.description.lower()
    return any(keyword.lower() in description for keyword in exclude_keywords)
