"""
Pydantic schemas for mission confirmation endpoints.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from pharmalink.schemas.invoice import InvoiceResponse


class FeeStatusResponse(BaseModel):
    """Response schema for GET /missions/{id}/fee."""
    amount: int = Field(..., description="Fee in whole currency units")
    days: int = Field(..., description="Mission duration, both ends counted")
    included_in_subscription: bool = Field(..., description="Whether the fee would be waived")
    tier: str
    contacts_remaining: Optional[int] = Field(None, description="Included confirmations left (None for unlimited)")
    contacts_max: Optional[int] = Field(None, description="Included confirmations per month (None for unlimited)")

    class Config:
        json_schema_extra = {
            "example": {
                "amount": 15,
                "days": 4,
                "included_in_subscription": False,
                "tier": "free",
                "contacts_remaining": 0,
                "contacts_max": 0
            }
        }


class ConfirmMissionRequest(BaseModel):
    """Request schema for POST /missions/{id}/confirm."""
    animator_id: Optional[int] = Field(None, description="Matched animator to confirm (required if several matched)")


class MissionFeeResponse(BaseModel):
    id: int
    mission_id: int
    payer_id: int
    amount: int
    days: Optional[int] = None
    tier: Optional[str] = None
    included_in_subscription: bool
    status: str = Field(..., description="waived, pending or paid")
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConfirmMissionResponse(BaseModel):
    fee: MissionFeeResponse
    invoice: Optional[InvoiceResponse] = None
    created: bool = Field(..., description="False when the mission was already confirmed")
