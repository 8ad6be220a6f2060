"""
Pydantic schemas for invoice endpoints.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str = Field(..., description="INV-YYYYMM-XXXXXXXX")
    kind: str = Field(..., description="mission_fee or subscription")
    status: str = Field(..., description="pending, paid or waived")
    currency: str
    subtotal: int
    discount: int
    tax: int
    total: int
    description: Optional[str] = None
    line_items: List[Dict[str, Any]] = Field(default=[])
    created_at: datetime
    paid_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceResponse]
    total: int
