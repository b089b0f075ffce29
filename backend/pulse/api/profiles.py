from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel
from typing import Optional, List

from pulse.models.base import get_db
from pulse.models.profile import Profile, UserRole, AppRole
from pulse.services.submission import ensure_profile

router = APIRouter()


class ProfileEnsure(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    role: Optional[str] = None


class ProfileResponse(BaseModel):
    id: int
    user_id: str
    email: str
    full_name: str
    department: str
    role: str
    manager_name: Optional[str] = None
    app_roles: List[str] = []


async def _app_roles(db: AsyncSession, user_id: str) -> List[str]:
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    return [role.value for role in result.scalars().all()]


async def _to_profile_response(db: AsyncSession, profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        user_id=profile.user_id,
        email=profile.email,
        full_name=profile.full_name,
        department=profile.department,
        role=profile.role,
        manager_name=profile.manager_name,
        app_roles=await _app_roles(db, profile.user_id),
    )


@router.put("", response_model=ProfileResponse)
async def put_profile(data: ProfileEnsure, db: AsyncSession = Depends(get_db)):
    """Return the caller's profile, creating it from signup metadata on first use."""
    profile = await ensure_profile(
        db,
        user_id=data.user_id,
        email=data.email,
        full_name=data.full_name,
        department=data.department,
        role=data.role,
    )
    if data.role:
        try:
            app_role = AppRole(data.role)
        except ValueError:
            app_role = None
        if app_role is not None and app_role.value not in await _app_roles(db, data.user_id):
            db.add(UserRole(user_id=data.user_id, role=app_role))
            await db.commit()
    return await _to_profile_response(db, profile)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return await _to_profile_response(db, profile)
