"""Pydantic models for product feedback."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5, description="Overall experience")
    recommendation_rating: int = Field(..., ge=1, le=5, description="Likelihood to recommend")
    experience_rating: int = Field(..., ge=1, le=5, description="Satisfaction with the user experience")
    category: str = Field("general", min_length=1, max_length=50, examples=["exit_intent"])
    message: Optional[str] = Field(None, max_length=5000)
    user_intent: Optional[str] = Field(None, max_length=1000)


class FeedbackRead(FeedbackCreate):
    id: int
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class FeedbackSummary(BaseModel):
    count: int
    average_rating: Optional[float] = None
    average_recommendation_rating: Optional[float] = None
    average_experience_rating: Optional[float] = None
