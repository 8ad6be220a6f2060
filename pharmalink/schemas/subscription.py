"""
Pydantic schemas for subscription endpoints.
"""
from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, Field

from pharmalink.schemas.usage import UsageResponse


class UpgradeRequest(BaseModel):
    """Request schema for POST /subscription/upgrade."""
    tier: str = Field(..., description="Target tier, must exist for the user's type")
    duration_months: int = Field(1, ge=1, le=12, description="Billing period length")

    class Config:
        json_schema_extra = {
            "example": {
                "tier": "pro",
                "duration_months": 1
            }
        }


class SubscriptionDetail(BaseModel):
    tier: str
    started_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    auto_renew: bool
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TierInfo(BaseModel):
    value: str = Field(..., description="Tier name")
    label: str
    price: int = Field(..., description="Monthly price in whole currency units")
    limits: Dict[str, Optional[int]] = Field(..., description="Caps per limit key (None for unlimited)")
    features: Dict[str, Any]
    popular: bool


class SubscriptionStatusResponse(BaseModel):
    """Response schema for GET /subscription."""
    user_type: str
    tier: str
    tier_info: TierInfo
    next_tier: Optional[str] = None
    subscription: SubscriptionDetail
    usage: UsageResponse


class TierListResponse(BaseModel):
    """Response schema for GET /subscription/tiers."""
    user_type: str
    current_tier: str
    tiers: List[TierInfo]
