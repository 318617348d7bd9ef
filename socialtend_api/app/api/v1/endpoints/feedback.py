"""
Feedback endpoints for API v1.

Anyone can submit feedback; signed-in users have their ID attached.
Reading feedback requires the administrator token.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from socialtend_api.app.core.security import get_optional_user, require_admin
from socialtend_api.app.schemas.feedback import FeedbackCreate, FeedbackRead, FeedbackSummary
from socialtend_api.app.services.feedback_service import FeedbackService

router = APIRouter()


@router.post("/", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    data: FeedbackCreate, current_user: Optional[dict] = Depends(get_optional_user)
) -> FeedbackRead:
    user_id = current_user["user_id"] if current_user else None
    return await FeedbackService.create_feedback(data, user_id=user_id)


@router.get("/", response_model=List[FeedbackRead])
async def list_feedback(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(require_admin),
) -> List[FeedbackRead]:
    return await FeedbackService.list_feedback(category=category, limit=limit, offset=offset)


@router.get("/summary", response_model=FeedbackSummary)
async def feedback_summary(admin: dict = Depends(require_admin)) -> FeedbackSummary:
    return await FeedbackService.summary()
