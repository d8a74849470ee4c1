from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.sql import func
from glrules.database import Base


class Rule(Base):
    """GL coding rule owned by a single user."""
    __tablename__ = "gl_rules"

    # Autoincrement id doubles as the creation sequence for tie-breaks
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Validated into RuleConditions / RuleAction by the rule store
    conditions = Column(JSON, nullable=False, default=dict)
    actions = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Rule {self.id}: {self.name} -> {(self.actions or {}).get('gl_code')}>"


class RuleApplication(Base):
    """Audit row written when a rule's GL code is applied to a line item."""
    __tablename__ = "gl_rule_applications"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    document_id = Column(String, nullable=False, index=True)
    rule_id = Column(Integer, ForeignKey("gl_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    line_item_index = Column(Integer, nullable=False)
    applied_gl_code = Column(String, nullable=False)
    confidence_score = Column(Float, nullable=False)
    was_overridden = Column(Boolean, default=False, nullable=False)
    applied_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<RuleApplication {self.id}: rule {self.rule_id} -> {self.applied_gl_code}>"


class Correction(Base):
    """A user correction to a vendor match, GL assignment or extracted field."""
    __tablename__ = "corrections"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    document_id = Column(String, nullable=False, index=True)
    field_type = Column(String, nullable=False, index=True)
    original_value = Column(String, nullable=False)
    corrected_value = Column(String, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Correction {self.id}: {self.field_type} {self.original_value!r} -> {self.corrected_value!r}>"
