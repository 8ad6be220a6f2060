"""
Pydantic schemas for favorites endpoints.
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from pharmalink.schemas.usage import QuotaDetail


class FavoriteToggleRequest(BaseModel):
    target_type: str = Field(..., description="candidate, animator, laboratory, job_offer, internship_offer, mission or pharmacy_listing")
    target_id: int
    notes: Optional[str] = Field(None, max_length=1000)


class FavoriteResponse(BaseModel):
    id: int
    target_type: str
    target_id: int
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FavoriteToggleResponse(BaseModel):
    added: bool = Field(..., description="True if the target is now a favorite")
    favorite: Optional[FavoriteResponse] = None
    message: Optional[str] = None


class FavoriteListResponse(BaseModel):
    favorites: List[FavoriteResponse]
    total: int
    quota: QuotaDetail = Field(..., description="Animator favorites quota")
