"""
Pydantic schemas for swipe and match endpoints.
"""
from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field

from pharmalink.schemas.usage import QuotaDetail


class SwipeRequest(BaseModel):
    """Request schema for POST /swipes."""
    target_type: str = Field(..., description="job_offer, internship_offer, candidate, mission or animator")
    target_id: int = Field(..., description="ID of the offer, mission or user swiped on")
    action: str = Field(..., description="Swipe action", pattern="^(like|dislike|superlike)$")
    context_id: Optional[int] = Field(None, description="Offer ID (swipe on a candidate) or mission ID (swipe on an animator)")
    context_type: Optional[str] = Field(
        None,
        description="Offer type for a swipe on a candidate (defaults to job_offer)",
        pattern="^(job_offer|internship_offer)$",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "target_type": "animator",
                "target_id": 42,
                "action": "superlike",
                "context_id": 7
            }
        }


class SwipeDetail(BaseModel):
    id: int
    user_id: int
    target_type: str
    target_id: int
    action: str
    is_super_like: bool
    super_liked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MatchResponse(BaseModel):
    """Candidate <-> job/internship offer match."""
    id: int = Field(..., description="Match ID")
    offer_type: str = Field(..., description="job_offer or internship_offer")
    offer_id: int
    candidate_id: int
    employer_id: int
    candidate_liked: bool
    employer_liked: bool
    is_super_like: bool
    status: str = Field(..., description="pending or matched")
    matched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnimatorMatchResponse(BaseModel):
    """Animator <-> animation mission match."""
    id: int = Field(..., description="Match ID")
    mission_id: int
    animator_id: int
    laboratory_id: int
    animator_liked: bool
    laboratory_liked: bool
    is_super_like: bool
    status: str = Field(..., description="pending or matched")
    matched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SwipeResponse(BaseModel):
    """Response schema for POST /swipes."""
    swipe: SwipeDetail
    newly_matched: bool = Field(..., description="True only when this swipe completed the match")
    match: Optional[MatchResponse] = None
    animator_match: Optional[AnimatorMatchResponse] = None
    quota: Optional[QuotaDetail] = Field(None, description="Daily super like quota after a superlike")


class MatchListResponse(BaseModel):
    """Response schema for GET /matches."""
    matches: List[MatchResponse] = Field(default=[], description="Offer matches")
    animator_matches: List[AnimatorMatchResponse] = Field(default=[], description="Mission matches")
    total: int


class ConflictResponse(BaseModel):
    """One matched mission overlapping the requested dates."""
    match_id: int
    mission_id: int
    title: str
    start_date: date
    end_date: date
