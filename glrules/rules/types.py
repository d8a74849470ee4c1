"""
Rule and Line Item Types

Closed records for GL rules and the values computed when scoring line
items against them. The loosely-shaped JSON stored with a rule is turned
into these records once, at the rule-store boundary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Dict, Any, Literal


# Scoring weights for rule evaluation
GL_RULE_SCORING = {
    "vendor_patterns": 30,
    "amount_range": 20,
    "keywords": 25,
    "exact_descriptions": 35,
    "date_range": 10,
    "line_item_category": 5,
    "max_score": 100,
}

# Rule evaluation thresholds
GL_RULE_THRESHOLDS = {
    "auto_apply_min_confidence": 0.8,
    "suggest_min_confidence": 0.5,
    "high_confidence": 0.9,
}


class InvalidLineItemError(Exception):
    """Raised when a line item cannot be evaluated at all."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse an ISO-8601 date or datetime string, returning None if it isn't one."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _string_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(v) for v in value if v is not None and str(v).strip()]


@dataclass(frozen=True)
class AmountRange:
    min: Optional[float] = None
    max: Optional[float] = None

    def contains(self, amount: float) -> bool:
        if self.min is not None and amount < self.min:
            return False
        if self.max is not None and amount > self.max:
            return False
        return True


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class RuleConditions:
    """Predicate bundle of a rule. Every clause is optional."""
    vendor_patterns: List[str] = field(default_factory=list)
    amount_range: Optional[AmountRange] = None
    keywords: List[str] = field(default_factory=list)
    exact_descriptions: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None
    line_item_category: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleConditions":
        data = data or {}

        amount_range = None
        raw_amount = data.get("amount_range")
        if raw_amount and (raw_amount.get("min") is not None or raw_amount.get("max") is not None):
            amount_range = AmountRange(
                min=float(raw_amount["min"]) if raw_amount.get("min") is not None else None,
                max=float(raw_amount["max"]) if raw_amount.get("max") is not None else None,
            )

        date_range = None
        raw_dates = data.get("date_range")
        if raw_dates:
            start = parse_iso_date(raw_dates.get("start"))
            end = parse_iso_date(raw_dates.get("end"))
            if start is not None or end is not None:
                date_range = DateRange(start=start, end=end)

        return cls(
            vendor_patterns=_string_list(data.get("vendor_patterns")),
            amount_range=amount_range,
            keywords=_string_list(data.get("keywords")),
            exact_descriptions=_string_list(data.get("exact_descriptions")),
            exclude_keywords=_string_list(data.get("exclude_keywords")),
            date_range=date_range,
            line_item_category=_string_list(data.get("line_item_category")),
        )

    def has_positive_clause(self) -> bool:
        """True if at least one clause can contribute points."""
        return bool(
            self.vendor_patterns
            or self.amount_range is not None
            or self.keywords
            or self.exact_descriptions
            or self.date_range is not None
            or self.line_item_category
        )


@dataclass(frozen=True)
class RuleAction:
    gl_code: str
    auto_assign: bool = False
    requires_approval: bool = False
    confidence_threshold: float = GL_RULE_THRESHOLDS["auto_apply_min_confidence"]
    override_ai: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RuleAction":
        data = data or {}
        threshold = data.get("confidence_threshold")
        return cls(
            gl_code=str(data.get("gl_code") or ""),
            auto_assign=bool(data.get("auto_assign", False)),
            requires_approval=bool(data.get("requires_approval", False)),
            confidence_threshold=(
                float(threshold) if threshold is not None
                else GL_RULE_THRESHOLDS["auto_apply_min_confidence"]
            ),
            override_ai=bool(data.get("override_ai", False)),
        )


@dataclass(frozen=True)
class GLRule:
    """Read-only snapshot of a rule as seen by the evaluator."""
    id: Any
    owner_id: str
    name: str
    conditions: RuleConditions
    action: RuleAction
    priority: int = 0
    is_active: bool = True
    sequence: int = 0  # creation order, lower was created first

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "priority": self.priority,
            "is_active": self.is_active,
            "gl_code": self.action.gl_code,
        }


@dataclass(frozen=True)
class LineItem:
    """One invoice/purchase-order line being coded."""
    description: str
    vendor_name: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        if self.description is None or not str(self.description).strip():
            raise InvalidLineItemError("Description is required")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        amount = data.get("amount")
        return cls(
            description=data.get("description"),
            vendor_name=data.get("vendor_name") or None,
            amount=float(amount) if amount is not None else None,
            date=data.get("date") or None,
            category=data.get("category") or data.get("line_item_category") or None,
        )


@dataclass(frozen=True)
class ClauseResult:
    matched: bool
    points: float = 0

    @classmethod
    def miss(cls) -> "ClauseResult":
        return cls(matched=False, points=0)


@dataclass(frozen=True)
class AISuggestion:
    gl_code: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"gl_code": self.gl_code, "confidence": self.confidence}


@dataclass(frozen=True)
class RuleMatch:
    rule: GLRule
    score: float
    matched_conditions: List[str]
    confidence: float
    should_auto_apply: bool
    requires_approval: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule.to_dict(),
            "score": self.score,
            "matched_conditions": list(self.matched_conditions),
            "confidence": self.confidence,
            "should_auto_apply": self.should_auto_apply,
            "requires_approval": self.requires_approval,
        }


@dataclass(frozen=True)
class FinalSuggestion:
    gl_code: Optional[str]
    source: Literal["rule", "ai", "manual"]
    confidence: float
    auto_applied: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gl_code": self.gl_code,
            "source": self.source,
            "confidence": self.confidence,
            "auto_applied": self.auto_applied,
        }


@dataclass(frozen=True)
class EvaluationResult:
    matches: List[RuleMatch]
    final_suggestion: FinalSuggestion
    best_match: Optional[RuleMatch] = None
    ai_suggestion: Optional[AISuggestion] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "matches": [m.to_dict() for m in self.matches],
            "best_match": self.best_match.to_dict() if self.best_match else None,
            "ai_suggestion": self.ai_suggestion.to_dict() if self.ai_suggestion else None,
            "final_suggestion": self.final_suggestion.to_dict(),
        }
