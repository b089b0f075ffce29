"""Flag review routes for HR managers."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime

from pulse.models.base import get_db
from pulse.models.flag import ResponseFlag, FlagStatus, FlagIssueType
from pulse.models.profile import Profile, UserRole, AppRole
from pulse.services.dashboard import RECENT_FLAGS_LIMIT, dedupe_flags_for_display

router = APIRouter()


class FlagResponse(BaseModel):
    id: int
    employee_id: Optional[int]
    survey_id: Optional[int]
    severity: str
    issue_type: str
    description: str
    flagged_by: str
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    employee_name: Optional[str] = None
    department: Optional[str] = None


class FlagReviewRequest(BaseModel):
    reviewer_id: str


def _to_flag_response(flag: ResponseFlag, profile: Optional[Profile] = None) -> FlagResponse:
    return FlagResponse(
        id=flag.id,
        employee_id=flag.employee_id,
        survey_id=flag.survey_id,
        severity=flag.severity.value,
        issue_type=flag.issue_type.value,
        description=flag.description,
        flagged_by=flag.flagged_by,
        status=flag.status.value,
        reviewed_by=flag.reviewed_by,
        reviewed_at=flag.reviewed_at,
        created_at=flag.created_at,
        employee_name=profile.full_name if profile else None,
        department=profile.department if profile else None,
    )


def _flags_with_profiles(survey_id: int):
    return (
        select(ResponseFlag, Profile)
        .outerjoin(Profile, Profile.id == ResponseFlag.employee_id)
        .where(ResponseFlag.survey_id == survey_id)
    )


@router.get("/surveys/{survey_id}/flags", response_model=List[FlagResponse])
async def list_flags(
    survey_id: int,
    status: Optional[str] = Query("pending"),
    issue_type: Optional[str] = Query(None),
    limit: int = Query(100),
    db: AsyncSession = Depends(get_db)
):
    """List flags raised for a survey, newest first."""
    query = _flags_with_profiles(survey_id)
    try:
        if status:
            query = query.where(ResponseFlag.status == FlagStatus(status))
        if issue_type:
            query = query.where(ResponseFlag.issue_type == FlagIssueType(issue_type))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    result = await db.execute(query.order_by(ResponseFlag.created_at.desc(), ResponseFlag.id.desc()).limit(limit))
    return [_to_flag_response(flag, profile) for flag, profile in result.all()]


@router.get("/surveys/{survey_id}/flags/recent", response_model=List[FlagResponse])
async def list_recent_flags(survey_id: int, db: AsyncSession = Depends(get_db)):
    """Latest pending flags for the dashboard card, with look-alike entries collapsed."""
    result = await db.execute(
        _flags_with_profiles(survey_id)
        .where(ResponseFlag.status == FlagStatus.pending)
        .order_by(ResponseFlag.created_at.desc(), ResponseFlag.id.desc())
        .limit(RECENT_FLAGS_LIMIT)
    )
    items: List[Dict[str, Any]] = [
        _to_flag_response(flag, profile).model_dump() for flag, profile in result.all()
    ]
    return [FlagResponse(**item) for item in dedupe_flags_for_display(items)]


@router.post("/flags/{flag_id}/review", response_model=FlagResponse)
async def review_flag(
    flag_id: int,
    data: FlagReviewRequest,
    db: AsyncSession = Depends(get_db)
):
    """Mark a pending flag as reviewed. Only HR managers may review."""
    role_result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == data.reviewer_id, UserRole.role == AppRole.hr_manager)
    )
    if role_result.scalar_one_or_none() is None:
        raise HTTPException(status_code=403, detail="Only HR managers can review flags")

    result = await db.execute(select(ResponseFlag).where(ResponseFlag.id == flag_id))
    flag = result.scalar_one_or_none()
    if not flag:
        raise HTTPException(status_code=404, detail="Flag not found")
    if flag.status != FlagStatus.pending:
        raise HTTPException(status_code=409, detail="Flag has already been reviewed")

    flag.status = FlagStatus.reviewed
    flag.reviewed_by = data.reviewer_id
    flag.reviewed_at = datetime.utcnow()
    await db.commit()
    await db.refresh(flag)

    profile = await db.get(Profile, flag.employee_id) if flag.employee_id else None
    return _to_flag_response(flag, profile)
