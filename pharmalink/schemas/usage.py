"""
Pydantic schemas for usage endpoints.
"""
from typing import Optional, Dict
from pydantic import BaseModel, Field


class QuotaDetail(BaseModel):
    """Quota figures for a single limit key."""
    allowed: bool = Field(..., description="Whether one more use is allowed right now")
    used: int = Field(..., description="Current usage (today for super likes, this month otherwise)")
    max: Optional[int] = Field(None, description="Cap (None for unlimited)")
    remaining: Optional[int] = Field(None, description="Remaining quota (None for unlimited)")
    unlimited: bool = Field(..., description="Whether this quota is unlimited")

    class Config:
        json_schema_extra = {
            "example": {
                "allowed": True,
                "used": 1,
                "max": 3,
                "remaining": 2,
                "unlimited": False
            }
        }


class UsageResponse(BaseModel):
    """Response schema for GET /me/usage."""
    tier: str = Field(..., description="Current tier (free, starter, pro, business, premium)")
    user_type: str = Field(..., description="User type")
    month_key: str = Field(..., description="Current period in YYYY-MM format")
    quotas: Dict[str, QuotaDetail] = Field(..., description="Quota per limit key")

    class Config:
        json_schema_extra = {
            "example": {
                "tier": "starter",
                "user_type": "laboratory",
                "month_key": "2026-03",
                "quotas": {
                    "missions": {"allowed": True, "used": 1, "max": 3, "remaining": 2, "unlimited": False},
                    "super_likes_per_day": {"allowed": True, "used": 0, "max": 5, "remaining": 5, "unlimited": False}
                }
            }
        }
