from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from glrules.ai import SuggestionClient, SuggestionAPIError
from glrules.app_logger import get_logger
from glrules.database import get_db
from glrules.dependencies import get_owner_id, get_suggestion_client
from glrules.rules import RulesEngine, RuleStore, ApplicationLog, check_rule
from glrules.rules.store import rule_to_dict
from glrules.rules.types import (
    AISuggestion,
    InvalidLineItemError,
    LineItem,
    RuleConditions,
    parse_iso_date,
)

logger = get_logger("routers.rules")


class AmountRangeIn(BaseModel):
    min: Optional[float] = Field(None, allow_inf_nan=False)
    max: Optional[float] = Field(None, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("amount_range.min must not exceed amount_range.max")
        return self


class DateRangeIn(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def check_iso_date(cls, value):
        if value is not None and parse_iso_date(value) is None:
            raise ValueError(f"{value!r} is not an ISO-8601 date")
        return value

    @model_validator(mode="after")
    def check_bounds(self):
        start, end = parse_iso_date(self.start), parse_iso_date(self.end)
        if start and end and start > end:
            raise ValueError("date_range.start must not be after date_range.end")
        return self


class ConditionsIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vendor_patterns: List[str] = []
    amount_range: Optional[AmountRangeIn] = None
    keywords: List[str] = []
    exact_descriptions: List[str] = []
    exclude_keywords: List[str] = []
    date_range: Optional[DateRangeIn] = None
    line_item_category: List[str] = []

    def to_json(self) -> dict:
        """Populated clauses only."""
        dumped = self.model_dump(exclude_none=True)
        return {key: value for key, value in dumped.items() if value}

    def to_conditions(self) -> RuleConditions:
        return RuleConditions.from_dict(self.to_json())


class ActionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gl_code: str
    auto_assign: bool = False
    requires_approval: bool = False
    confidence_threshold: float = Field(0.8, ge=0.0, le=1.0)
    override_ai: bool = False


class RuleCreate(BaseModel):
    name: str
    priority: int = 0
    is_active: bool = True
    conditions: ConditionsIn
    actions: ActionIn


class RuleUpdate(BaseModel):
    name: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    conditions: Optional[ConditionsIn] = None
    actions: Optional[ActionIn] = None


class AISuggestionIn(BaseModel):
    gl_code: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class LineItemIn(BaseModel):
    description: str
    vendor_name: Optional[str] = None
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    date: Optional[str] = None
    category: Optional[str] = None

    def to_line_item(self) -> LineItem:
        return LineItem(
            description=self.description,
            vendor_name=self.vendor_name or None,
            amount=self.amount,
            date=self.date or None,
            category=self.category or None,
        )


class EvaluateRequest(LineItemIn):
    ai_suggestion: Optional[AISuggestionIn] = None


class BatchEvaluateRequest(BaseModel):
    line_items: List[LineItemIn]


class RuleTestRequest(BaseModel):
    conditions: ConditionsIn
    test_data: LineItemIn


class ApplicationCreate(BaseModel):
    document_id: str
    rule_id: int
    line_item_index: int = Field(..., ge=0)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    applied_gl_code: Optional[str] = None


router = APIRouter()


def _line_item(body: LineItemIn) -> LineItem:
    try:
        return body.to_line_item()
    except InvalidLineItemError as e:
        raise HTTPException(status_code=400, detail=e.message)


def _validate_rule_fields(name: Optional[str], conditions: Optional[ConditionsIn], actions: Optional[ActionIn]):
    """Reject rules that could never be applied."""
    if name is not None and not name.strip():
        raise HTTPException(status_code=400, detail="Rule name is required")
    if actions is not None and not actions.gl_code.strip():
        raise HTTPException(status_code=400, detail="GL code is required in actions")
    if conditions is not None and not conditions.to_conditions().has_positive_clause():
        raise HTTPException(status_code=400, detail="At least one condition must be specified")


@router.get("")
async def list_rules(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    include_stats: bool = Query(False),
    include_inactive: bool = Query(False),
):
    """List the owner's GL rules, highest priority first."""
    rules = await RuleStore(db).list_rules(owner_id, include_inactive=include_inactive)
    data = [rule_to_dict(rule) for rule in rules]

    if include_stats and rules:
        stats = await ApplicationLog(db).get_stats([rule.id for rule in rules])
        for item in data:
            item["stats"] = stats[item["id"]]

    return {"data": data, "count": len(data)}


@router.post("", status_code=201)
async def create_rule(
    body: RuleCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new GL rule."""
    _validate_rule_fields(body.name, body.conditions, body.actions)

    rule = await RuleStore(db).create_rule(
        owner_id=owner_id,
        name=body.name.strip(),
        priority=body.priority,
        is_active=body.is_active,
        conditions=body.conditions.to_json(),
        actions=body.actions.model_dump(),
    )
    return rule_to_dict(rule)


@router.post("/evaluate")
async def evaluate_line_item(
    body: EvaluateRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    suggestion_client: SuggestionClient = Depends(get_suggestion_client),
):
    """Evaluate a line item against all of the owner's active rules."""
    item = _line_item(body)

    ai_suggestion = None
    if body.ai_suggestion is not None:
        ai_suggestion = AISuggestion(
            gl_code=body.ai_suggestion.gl_code,
            confidence=body.ai_suggestion.confidence,
        )
    elif suggestion_client.enabled:
        try:
            ai_suggestion = await suggestion_client.suggest_gl_code(item)
        except SuggestionAPIError as e:
            logger.warning("AI suggestion unavailable, continuing without it: %s", e)

    result = await RulesEngine(db).evaluate_line_item(owner_id, item, ai_suggestion)
    return result.to_dict()


@router.post("/evaluate/batch")
async def evaluate_line_items(
    body: BatchEvaluateRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Evaluate several line items against one snapshot of the owner's rules."""
    items = [_line_item(line_item) for line_item in body.line_items]
    results = await RulesEngine(db).evaluate_line_items(owner_id, items)
    return {"results": [result.to_dict() for result in results], "count": len(results)}


@router.post("/test")
async def test_rule(
    body: RuleTestRequest,
    owner_id: str = Depends(get_owner_id),
):
    """Test rule conditions against sample data without saving them."""
    item = _line_item(body.test_data)
    conditions = body.conditions.to_conditions()

    return {
        "result": check_rule(conditions, item),
        "debug_info": {
            "conditions_count": len(body.conditions.to_json()),
            "has_exclusions": bool(conditions.exclude_keywords),
        },
    }


@router.get("/test/samples")
async def test_samples(owner_id: str = Depends(get_owner_id)):
    """Sample line items for trying out rules."""
    today = date.today().isoformat()
    return {
        "office_supplies": {
            "vendor_name": "Office Depot",
            "amount": 45.99,
            "description": "Paper, pens, and office supplies",
            "date": today,
            "category": "Office Supplies",
        },
        "software": {
            "vendor_name": "Adobe Inc",
            "amount": 299.88,
            "description": "Adobe Creative Cloud subscription",
            "date": today,
            "category": "Software",
        },
        "fuel": {
            "vendor_name": "Shell Gas Station",
            "amount": 65.20,
            "description": "Fuel for company vehicle",
            "date": today,
            "category": "Transportation",
        },
        "meals": {
            "vendor_name": "Starbucks",
            "amount": 12.45,
            "description": "Coffee and breakfast for client meeting",
            "date": today,
            "category": "Meals & Entertainment",
        },
        "utilities": {
            "vendor_name": "Electric Company",
            "amount": 245.67,
            "description": "Monthly electricity bill",
            "date": today,
            "category": "Utilities",
        },
    }


@router.post("/applications", status_code=201)
async def record_application(
    body: ApplicationCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Record that a rule's GL code was applied to a document line item."""
    rule = await RuleStore(db).get_rule(owner_id, body.rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="GL rule not found")

    application = await ApplicationLog(db).record(
        owner_id=owner_id,
        document_id=body.document_id,
        rule=rule,
        line_item_index=body.line_item_index,
        confidence_score=body.confidence_score,
        applied_gl_code=body.applied_gl_code,
    )
    return _application_to_dict(application)


@router.post("/applications/{application_id}/override")
async def override_application(
    application_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Mark a rule application as overridden by the user."""
    application = await ApplicationLog(db).mark_overridden(owner_id, application_id)
    if application is None:
        raise HTTPException(status_code=404, detail="Rule application not found")
    return _application_to_dict(application)


@router.get("/{rule_id}")
async def get_rule(
    rule_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    rule = await RuleStore(db).get_rule(owner_id, rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="GL rule not found")
    return rule_to_dict(rule)


@router.get("/{rule_id}/stats")
async def get_rule_stats(
    rule_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Application stats for one rule."""
    rule = await RuleStore(db).get_rule(owner_id, rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="GL rule not found")

    stats = await ApplicationLog(db).get_stats([rule.id])
    return stats[rule.id]


@router.put("/{rule_id}")
async def update_rule(
    rule_id: int,
    body: RuleUpdate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Update an existing rule. Only provided fields change."""
    _validate_rule_fields(body.name, body.conditions, body.actions)

    changes = {
        "name": body.name.strip() if body.name is not None else None,
        "priority": body.priority,
        "is_active": body.is_active,
        "conditions": body.conditions.to_json() if body.conditions is not None else None,
        "actions": body.actions.model_dump() if body.actions is not None else None,
    }
    rule = await RuleStore(db).update_rule(owner_id, rule_id, changes)
    if rule is None:
        raise HTTPException(status_code=404, detail="GL rule not found")
    return rule_to_dict(rule)


@router.delete("/{rule_id}")
async def delete_rule(
    rule_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a rule."""
    deleted = await RuleStore(db).delete_rule(owner_id, rule_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="GL rule not found")
    return {"deleted": True, "id": rule_id}


def _application_to_dict(application) -> dict:
    return {
        "id": application.id,
        "document_id": application.document_id,
        "rule_id": application.rule_id,
        "line_item_index": application.line_item_index,
        "applied_gl_code": application.applied_gl_code,
        "confidence_score": application.confidence_score,
        "was_overridden": application.was_overridden,
        "applied_at": application.applied_at.isoformat() if application.applied_at else None,
    }
