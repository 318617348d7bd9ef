"""
Profile endpoints for API v1.

Each user may own one professional and one organizer profile.  Profiles
are readable by any signed-in user and writable only by their owner.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, status

from socialtend_api.app.core.security import get_current_user
from socialtend_api.app.schemas.profile import (
    OrganizerProfileCreate,
    OrganizerProfileRead,
    OrganizerProfileUpdate,
    ProfessionalProfileCreate,
    ProfessionalProfileRead,
    ProfessionalProfileUpdate,
)
from socialtend_api.app.services.profile_service import ProfileExistsError, ProfileService

router = APIRouter()


def _ensure_owner(user_id: int, current_user: dict) -> None:
    if current_user["user_id"] != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only update your own profile")


@router.get("/professional/{user_id}", response_model=ProfessionalProfileRead)
async def get_professional_profile(
    user_id: int = Path(..., description="User ID of the professional"),
    current_user: dict = Depends(get_current_user),
) -> ProfessionalProfileRead:
    profile = await ProfileService.get_professional_profile(user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Professional profile not found")
    return profile


@router.post("/professional", response_model=ProfessionalProfileRead, status_code=status.HTTP_201_CREATED)
async def create_professional_profile(
    profile: ProfessionalProfileCreate, current_user: dict = Depends(get_current_user)
) -> ProfessionalProfileRead:
    """Create the caller's professional profile (one per user)."""
    try:
        return await ProfileService.create_professional_profile(current_user["user_id"], profile)
    except ProfileExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.put("/professional/{user_id}", response_model=ProfessionalProfileRead)
async def update_professional_profile(
    updates: ProfessionalProfileUpdate,
    user_id: int = Path(..., description="User ID of the professional"),
    current_user: dict = Depends(get_current_user),
) -> ProfessionalProfileRead:
    _ensure_owner(user_id, current_user)
    profile = await ProfileService.update_professional_profile(user_id, updates)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Professional profile not found")
    return profile


@router.get("/organizer/{user_id}", response_model=OrganizerProfileRead)
async def get_organizer_profile(
    user_id: int = Path(..., description="User ID of the organizer"),
    current_user: dict = Depends(get_current_user),
) -> OrganizerProfileRead:
    profile = await ProfileService.get_organizer_profile(user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organizer profile not found")
    return profile


@router.post("/organizer", response_model=OrganizerProfileRead, status_code=status.HTTP_201_CREATED)
async def create_organizer_profile(
    profile: OrganizerProfileCreate, current_user: dict = Depends(get_current_user)
) -> OrganizerProfileRead:
    try:
        return await ProfileService.create_organizer_profile(current_user["user_id"], profile)
    except ProfileExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.put("/organizer/{user_id}", response_model=OrganizerProfileRead)
async def update_organizer_profile(
    updates: OrganizerProfileUpdate,
    user_id: int = Path(..., description="User ID of the organizer"),
    current_user: dict = Depends(get_current_user),
) -> OrganizerProfileRead:
    _ensure_owner(user_id, current_user)
    profile = await ProfileService.update_organizer_profile(user_id, updates)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organizer profile not found")
    return profile
