"""
Rules Engine for GL Code Assignment

Scores a line item against every active rule, ranks the matches and
decides on a final GL code suggestion (rule, AI or manual).
Evaluation itself is pure: the engine only reads a rule snapshot.
"""

from typing import List, Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession

from glrules.app_logger import get_logger
from glrules.rules import matchers
from glrules.rules.store import RuleStore
from glrules.rules.types import (
    AISuggestion,
    EvaluationResult,
    FinalSuggestion,
    GLRule,
    GL_RULE_SCORING,
    GL_RULE_THRESHOLDS,
    LineItem,
    RuleAction,
    RuleConditions,
    RuleMatch,
)

logger = get_logger("rules.engine")


def score_rule(rule: GLRule, item: LineItem) -> RuleMatch:
    """
    Score a single rule against a line item.

    Excluded rules and rules without any positive clause score 0.
    """
    conditions = rule.conditions
    score = 0.0
    matched_conditions: List[str] = []

    if not matchers.is_excluded(conditions.exclude_keywords, item) and conditions.has_positive_clause():
        # Exact description wins over keywords, never both
        exact = matchers.match_exact_descriptions(conditions.exact_descriptions, item)
        if exact.matched:
            score += exact.points
            matched_conditions.append("exact_descriptions")
        else:
            keywords = matchers.match_keywords(conditions.keywords, item)
            if keywords.matched:
                score += keywords.points
                matched_conditions.append("keywords")

        independent = [
            ("vendor_patterns", matchers.match_vendor_patterns(conditions.vendor_patterns, item, rule.id)),
            ("amount_range", matchers.match_amount_range(conditions.amount_range, item)),
            ("date_range", matchers.match_date_range(conditions.date_range, item)),
            ("line_item_category", matchers.match_category(conditions.line_item_category, item)),
        ]
        for name, result in independent:
            if result.matched:
                score += result.points
                matched_conditions.append(name)

    score = max(0.0, min(score, float(GL_RULE_SCORING["max_score"])))
    confidence = score / GL_RULE_SCORING["max_score"]
    action = rule.action

    return RuleMatch(
        rule=rule,
        score=score,
        matched_conditions=matched_conditions,
        confidence=confidence,
        should_auto_apply=action.auto_assign and confidence >= action.confidence_threshold,
        requires_approval=(
            action.requires_approval
            or confidence < GL_RULE_THRESHOLDS["suggest_min_confidence"]
        ),
    )


def rank_matches(matches: List[RuleMatch]) -> List[RuleMatch]:
    """Drop non-matching rules; order by score, then priority, then creation order."""
    return sorted(
        (m for m in matches if m.score > 0),
        key=lambda m: (-m.score, -m.rule.priority, m.rule.sequence),
    )


def select_suggestion(
    best_match: Optional[RuleMatch],
    ai_suggestion: Optional[AISuggestion],
) -> FinalSuggestion:
    """Pick between the best rule match, the AI suggestion and manual coding."""
    if best_match is not None and (
        best_match.rule.action.override_ai
        or ai_suggestion is None
        or best_match.confidence >= GL_RULE_THRESHOLDS["auto_apply_min_confidence"]
    ):
        return FinalSuggestion(
            gl_code=best_match.rule.action.gl_code,
            source="rule",
            confidence=best_match.confidence,
            auto_applied=best_match.should_auto_apply,
        )

    if ai_suggestion is not None:
        return FinalSuggestion(
            gl_code=ai_suggestion.gl_code,
            source="ai",
            confidence=ai_suggestion.confidence,
            auto_applied=False,
        )

    return FinalSuggestion(gl_code=None, source="manual", confidence=0.0, auto_applied=False)


def evaluate(
    rules: List[GLRule],
    item: LineItem,
    ai_suggestion: Optional[AISuggestion] = None,
) -> EvaluationResult:
    """Evaluate a line item against a rule snapshot."""
    scored = [score_rule(rule, item) for rule in rules if rule.is_active]
    matches = rank_matches(scored)
    best_match = matches[0] if matches else None

    return EvaluationResult(
        matches=matches,
        best_match=best_match,
        ai_suggestion=ai_suggestion,
        final_suggestion=select_suggestion(best_match, ai_suggestion),
    )


def _explain(match: RuleMatch, item: LineItem) -> str:
    """Generate a human-readable explanation of a rule match."""
    explanations = []
    if "vendor_patterns" in match.matched_conditions:
        explanations.append(f'Vendor "{item.vendor_name}" matches pattern')
    if "amount_range" in match.matched_conditions:
        explanations.append(f"Amount {item.amount} falls within range")
    if "exact_descriptions" in match.matched_conditions:
        explanations.append("Description matches exactly")
    if "keywords" in match.matched_conditions:
        explanations.append("Description contains required keywords")
    if "date_range" in match.matched_conditions:
        explanations.append("Date falls within specified range")
    if "line_item_category" in match.matched_conditions:
        explanations.append(f'Category "{item.category}" matches')

    return f"Rule matched with score {match.score:g}: {', '.join(explanations)}"


def check_rule(conditions: RuleConditions, item: LineItem) -> Dict[str, Any]:
    """Score an unsaved condition bundle against sample data."""
    rule = GLRule(
        id="test",
        owner_id="test",
        name="Test Rule",
        conditions=conditions,
        action=RuleAction(gl_code="TEST-001"),
    )
    match = score_rule(rule, item)

    if match.score <= 0:
        return {
            "matched": False,
            "score": 0,
            "matched_conditions": [],
            "explanation": "Rule did not match the test data",
        }

    return {
        "matched": True,
        "score": match.score,
        "matched_conditions": match.matched_conditions,
        "explanation": _explain(match, item),
    }


class RulesEngine:
    """Engine for evaluating a user's GL rules against line items."""

    def __init__(self, db: AsyncSession):
        self.store = RuleStore(db)
        self._rules_cache: Dict[str, List[GLRule]] = {}

    async def get_rules(self, owner_id: str) -> List[GLRule]:
        """Get the owner's active rules, fetched once per engine."""
        if owner_id not in self._rules_cache:
            self._rules_cache[owner_id] = await self.store.get_active_rules(owner_id)
        return self._rules_cache[owner_id]

    async def evaluate_line_item(
        self,
        owner_id: str,
        item: LineItem,
        ai_suggestion: Optional[AISuggestion] = None,
    ) -> EvaluationResult:
        rules = await self.get_rules(owner_id)
        result = evaluate(rules, item, ai_suggestion)
        logger.debug(
            "Evaluated %r for %s against %d rules: %s",
            item.description, owner_id, len(rules), result.final_suggestion.source,
        )
        return result

    async def evaluate_line_items(
        self,
        owner_id: str,
        items: List[LineItem],
    ) -> List[EvaluationResult]:
        """Evaluate a batch of line items against one rule snapshot."""
        rules = await self.get_rules(owner_id)
        return [evaluate(rules, item) for item in items]
