"""
Correction Tracker

Logs corrections users make to vendor matches, GL assignments and
extracted fields, and aggregates them into patterns: how often a given
original value was corrected to a given new value.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glrules.app_logger import get_logger
from glrules.models import Correction

logger = get_logger("learning.tracker")

FIELD_TYPES = ("vendor_match", "gl_assignment", "extraction_field")

# Pattern type (as used by the API) -> correction field type
PATTERN_TYPES = {
    "vendor": "vendor_match",
    "gl": "gl_assignment",
}


@dataclass
class CorrectionPattern:
    """A recurring original -> corrected value mapping."""
    original_value: str
    corrected_value: str
    frequency: int
    last_corrected: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "original_value": self.original_value,
            "corrected_value": self.corrected_value,
            "frequency": self.frequency,
            "last_corrected": self.last_corrected.isoformat() if self.last_corrected else None,
        }


def aggregate_patterns(corrections: List[Correction]) -> List[CorrectionPattern]:
    """
    Group corrections by (original, corrected) pair.

    Returns patterns sorted by frequency (highest first), then by the
    most recent correction.
    """
    grouped: Dict[Tuple[str, str], CorrectionPattern] = {}

    for correction in corrections:
        key = (correction.original_value, correction.corrected_value)
        pattern = grouped.get(key)
        if pattern is None:
            grouped[key] = CorrectionPattern(
                original_value=correction.original_value,
                corrected_value=correction.corrected_value,
                frequency=1,
                last_corrected=correction.created_at,
            )
            continue

        pattern.frequency += 1
        if correction.created_at and (
            pattern.last_corrected is None or correction.created_at > pattern.last_corrected
        ):
            pattern.last_corrected = correction.created_at

    patterns = list(grouped.values())
    # Two stable sorts: recency within equal frequency
    patterns.sort(key=lambda p: p.last_corrected or datetime.min, reverse=True)
    patterns.sort(key=lambda p: p.frequency, reverse=True)
    return patterns


def summarize_by_field_type(corrections: List[Correction]) -> Dict[str, int]:
    """Count corrections per field type."""
    counts: Dict[str, int] = defaultdict(int)
    for correction in corrections:
        counts[correction.field_type] += 1
    return dict(counts)


class CorrectionTracker:
    """Persists corrections and derives patterns from them."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_correction(
        self,
        owner_id: str,
        document_id: str,
        field_type: str,
        original_value: str,
        corrected_value: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Correction:
        if field_type not in FIELD_TYPES:
            raise ValueError(
                f"Invalid field type. Must be one of: {', '.join(FIELD_TYPES)}"
            )

        correction = Correction(
            owner_id=owner_id,
            document_id=document_id,
            field_type=field_type,
            original_value=original_value,
            corrected_value=corrected_value,
            metadata_=metadata or {},
        )
        self.db.add(correction)
        await self.db.commit()
        await self.db.refresh(correction)

        logger.info(
            "Logged %s correction on %s: %r -> %r",
            field_type, document_id, original_value, corrected_value,
        )
        return correction

    async def get_corrections(
        self,
        owner_id: str,
        field_type: Optional[str] = None,
        document_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Correction]:
        """Get the owner's corrections, newest first."""
        query = select(Correction).where(Correction.owner_id == owner_id)
        if field_type:
            query = query.where(Correction.field_type == field_type)
        if document_id:
            query = query.where(Correction.document_id == document_id)

        query = query.order_by(Correction.created_at.desc(), Correction.id.desc())
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_patterns(self, owner_id: str, pattern_type: str) -> List[CorrectionPattern]:
        """Get correction patterns for 'vendor' or 'gl' corrections."""
        field_type = PATTERN_TYPES.get(pattern_type)
        if field_type is None:
            raise ValueError('Invalid pattern type. Must be "vendor" or "gl"')

        corrections = await self.get_corrections(owner_id, field_type=field_type)
        return aggregate_patterns(corrections)
