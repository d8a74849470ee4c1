"""
Rule Store

Owner-scoped persistence for GL rules and their application audit rows.
JSON columns are converted into closed rule records here, so the
evaluator never sees free-form data.
"""

from typing import List, Optional, Dict, Any
from sqlalchemy import select, func, case, delete
from sqlalchemy.ext.asyncio import AsyncSession

from glrules.app_logger import get_logger
from glrules.models import Rule, RuleApplication
from glrules.rules.types import GLRule, RuleAction, RuleConditions

logger = get_logger("rules.store")


def to_snapshot(rule: Rule) -> GLRule:
    """Convert a persisted rule into the evaluator's read-only record."""
    return GLRule(
        id=rule.id,
        owner_id=rule.owner_id,
        name=rule.name,
        priority=rule.priority or 0,
        is_active=bool(rule.is_active),
        conditions=RuleConditions.from_dict(rule.conditions),
        action=RuleAction.from_dict(rule.actions),
        sequence=rule.id or 0,
    )


def rule_to_dict(rule: Rule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "owner_id": rule.owner_id,
        "name": rule.name,
        "priority": rule.priority,
        "is_active": rule.is_active,
        "conditions": rule.conditions or {},
        "actions": rule.actions or {},
        "created_at": rule.created_at.isoformat() if rule.created_at else None,
        "updated_at": rule.updated_at.isoformat() if rule.updated_at else None,
    }


class RuleStore:
    """Read/write access to one database session's GL rules."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_rules(self, owner_id: str) -> List[GLRule]:
        """Get the owner's active rules, highest priority first, oldest first within a priority."""
        result = await self.db.execute(
            select(Rule)
            .where(Rule.owner_id == owner_id, Rule.is_active == True)
            .order_by(Rule.priority.desc(), Rule.id.asc())
        )
        return [to_snapshot(rule) for rule in result.scalars().all()]

    async def list_rules(self, owner_id: str, include_inactive: bool = False) -> List[Rule]:
        query = select(Rule).where(Rule.owner_id == owner_id)
        if not include_inactive:
            query = query.where(Rule.is_active == True)
        result = await self.db.execute(
            query.order_by(Rule.priority.desc(), Rule.name.asc())
        )
        return list(result.scalars().all())

    async def get_rule(self, owner_id: str, rule_id: int) -> Optional[Rule]:
        """Get a rule by id, or None if it doesn't exist or belongs to someone else."""
        result = await self.db.execute(
            select(Rule).where(Rule.id == rule_id, Rule.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def create_rule(
        self,
        owner_id: str,
        name: str,
        conditions: Dict[str, Any],
        actions: Dict[str, Any],
        priority: int = 0,
        is_active: bool = True,
    ) -> Rule:
        rule = Rule(
            owner_id=owner_id,
            name=name,
            priority=priority,
            is_active=is_active,
            conditions=conditions,
            actions=actions,
        )
        self.db.add(rule)
        await self.db.commit()
        await self.db.refresh(rule)

        logger.info("Created rule %s for %s -> %s", rule.id, owner_id, actions.get("gl_code"))
        return rule

    async def update_rule(self, owner_id: str, rule_id: int, changes: Dict[str, Any]) -> Optional[Rule]:
        """Apply a partial update. Returns None if the rule is not found."""
        rule = await self.get_rule(owner_id, rule_id)
        if rule is None:
            return None

        for key in ("name", "priority", "is_active", "conditions", "actions"):
            if key in changes and changes[key] is not None:
                setattr(rule, key, changes[key])

        await self.db.commit()
        await self.db.refresh(rule)

        logger.info("Updated rule %s for %s", rule.id, owner_id)
        return rule

    async def delete_rule(self, owner_id: str, rule_id: int) -> bool:
        rule = await self.get_rule(owner_id, rule_id)
        if rule is None:
            return False

        # Audit rows go with the rule on every backend, not only where FKs cascade
        await self.db.execute(
            delete(RuleApplication).where(RuleApplication.rule_id == rule.id)
        )
        await self.db.delete(rule)
        await self.db.commit()

        logger.info("Deleted rule %s for %s", rule_id, owner_id)
        return True


class ApplicationLog:
    """Audit trail of rule applications to document line items."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        owner_id: str,
        document_id: str,
        rule: Rule,
        line_item_index: int,
        confidence_score: float,
        applied_gl_code: Optional[str] = None,
    ) -> RuleApplication:
        application = RuleApplication(
            owner_id=owner_id,
            document_id=document_id,
            rule_id=rule.id,
            line_item_index=line_item_index,
            applied_gl_code=applied_gl_code or (rule.actions or {}).get("gl_code", ""),
            confidence_score=confidence_score,
            was_overridden=False,
        )
        self.db.add(application)
        await self.db.commit()
        await self.db.refresh(application)

        logger.info(
            "Recorded rule %s on %s line %d -> %s",
            rule.id, document_id, line_item_index, application.applied_gl_code,
        )
        return application

    async def mark_overridden(self, owner_id: str, application_id: int) -> Optional[RuleApplication]:
        result = await self.db.execute(
            select(RuleApplication).where(
                RuleApplication.id == application_id,
                RuleApplication.owner_id == owner_id,
            )
        )
        application = result.scalar_one_or_none()
        if application is None:
            return None

        application.was_overridden = True
        await self.db.commit()
        await self.db.refresh(application)
        return application

    async def get_stats(self, rule_ids: List[int]) -> Dict[int, Dict[str, Any]]:
        """
        Get application stats per rule.

        Rules without applications get zeroed stats.
        """
        stats = {rule_id: self._empty_stats() for rule_id in rule_ids}
        if not rule_ids:
            return stats

        result = await self.db.execute(
            select(
                RuleApplication.rule_id,
                func.count(RuleApplication.id),
                func.sum(case((RuleApplication.was_overridden == False, 1), else_=0)),
                func.max(RuleApplication.applied_at),
            )
            .where(RuleApplication.rule_id.in_(rule_ids))
            .group_by(RuleApplication.rule_id)
        )

        for rule_id, total, successful, last_applied in result.all():
            successful = int(successful or 0)
            stats[rule_id] = {
                "total_applications": total,
                "successful_applications": successful,
                "override_rate": round((total - successful) / total, 4) if total else 0.0,
                "last_applied_at": last_applied.isoformat() if last_applied else None,
            }

        return stats

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "total_applications": 0,
            "successful_applications": 0,
            "override_rate": 0.0,
            "last_applied_at": None,
        }
