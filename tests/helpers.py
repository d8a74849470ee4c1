from glrules.rules.types import GLRule, RuleAction, RuleConditions

OWNER = "owner-1"


def make_rule(
    rule_id=1,
    priority=0,
    gl_code="6000-100",
    auto_assign=False,
    requires_approval=False,
    confidence_threshold=0.8,
    override_ai=False,
    is_active=True,
    **conditions,
) -> GLRule:
    """Build an evaluator rule snapshot from keyword conditions."""
    return GLRule(
        id=rule_id,
        owner_id=OWNER,
        name=f"Rule {rule_id}",
        priority=priority,
        is_active=is_active,
        sequence=rule_id,
        conditions=RuleConditions.from_dict(conditions),
        action=RuleAction(
            gl_code=gl_code,
            auto_assign=auto_assign,
            requires_approval=requires_approval,
            confidence_threshold=confidence_threshold,
            override_ai=override_ai,
        ),
    )
