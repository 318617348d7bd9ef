"""
Public professional directory for API v1.

Anonymous visitors can browse and filter professionals; no token is
required.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Path, Query, status

from socialtend_api.app.schemas.profile import ProfessionalProfileRead
from socialtend_api.app.services.profile_service import ProfileService

router = APIRouter()


@router.get("/", response_model=List[ProfessionalProfileRead])
async def list_professionals(
    location: Optional[str] = Query(None, description="Substring of the location, case-insensitive"),
    service: Optional[str] = Query(None, description="Substring of an offered service, case-insensitive"),
    min_rate: Optional[float] = Query(None, ge=0, description="Minimum hourly rate"),
    max_rate: Optional[float] = Query(None, ge=0, description="Maximum hourly rate"),
    search: Optional[str] = Query(None, description="Free text over names, bio and services"),
    limit: Optional[int] = Query(None, ge=1, le=200),
    offset: Optional[int] = Query(None, ge=0),
) -> List[ProfessionalProfileRead]:
    """List professionals, verified first and then newest."""
    if min_rate is not None and max_rate is not None and min_rate > max_rate:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="min_rate cannot exceed max_rate")
    return await ProfileService.list_professionals(
        location=location,
        service=service,
        min_rate=min_rate,
        max_rate=max_rate,
        search=search,
        limit=limit,
        offset=offset,
    )


@router.get("/{user_id}", response_model=ProfessionalProfileRead)
async def get_professional(user_id: int = Path(..., description="User ID of the professional")) -> ProfessionalProfileRead:
    profile = await ProfileService.get_professional_profile(user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Professional not found")
    return profile
