"""
Router for Corrections

Endpoints for logging user corrections and reading back the patterns
they form, so recurring fixes can be turned into rules or aliases.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict, Any, Literal

from glrules.database import get_db
from glrules.dependencies import get_owner_id
from glrules.learning import CorrectionTracker
from glrules.learning.tracker import summarize_by_field_type


class CorrectionCreate(BaseModel):
    document_id: str = Field(..., min_length=1)
    field_type: Literal["vendor_match", "gl_assignment", "extraction_field"]
    original_value: str = Field(..., min_length=1)
    corrected_value: str = Field(..., min_length=1)
    metadata: Dict[str, Any] = {}


router = APIRouter()


def _correction_to_dict(correction) -> dict:
    return {
        "id": correction.id,
        "document_id": correction.document_id,
        "field_type": correction.field_type,
        "original_value": correction.original_value,
        "corrected_value": correction.corrected_value,
        "metadata": correction.metadata_ or {},
        "created_at": correction.created_at.isoformat() if correction.created_at else None,
    }


@router.post("", status_code=201)
async def log_correction(
    body: CorrectionCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
):
    """Log a correction made by the user."""
    correction = await CorrectionTracker(db).log_correction(
        owner_id=owner_id,
        document_id=body.document_id,
        field_type=body.field_type,
        original_value=body.original_value,
        corrected_value=body.corrected_value,
        metadata=body.metadata,
    )
    return _correction_to_dict(correction)


@router.get("")
async def list_corrections(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    field_type: Optional[str] = Query(None),
    document_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
):
    """List the owner's corrections, newest first."""
    corrections = await CorrectionTracker(db).get_corrections(
        owner_id,
        field_type=field_type,
        document_id=document_id,
        limit=limit,
    )
    return {
        "data": [_correction_to_dict(c) for c in corrections],
        "count": len(corrections),
        "by_field_type": summarize_by_field_type(corrections),
    }


@router.get("/patterns")
async def correction_patterns(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    pattern_type: str = Query(..., alias="type"),
):
    """Correction patterns for 'vendor' or 'gl' corrections, most frequent first."""
    try:
        patterns = await CorrectionTracker(db).get_patterns(owner_id, pattern_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "data": [p.to_dict() for p in patterns],
        "count": len(patterns),
    }
