from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from pharmalink.db.base import Base


class Invoice(Base):
    """User-facing invoice. Card capture happens outside this service."""
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    invoice_number = Column(String, unique=True, nullable=False, index=True)
    kind = Column(String, nullable=False)  # mission_fee | subscription
    status = Column(String, default="pending", nullable=False, index=True)  # pending | paid | waived
    currency = Column(String(3), default="EUR", nullable=False)

    subtotal = Column(Integer, default=0, nullable=False)
    discount = Column(Integer, default=0, nullable=False)
    tax = Column(Integer, default=0, nullable=False)
    total = Column(Integer, default=0, nullable=False)
    description = Column(String, nullable=True)
    line_items = Column(JSON, nullable=False, default=list)

    mission_fee_id = Column(Integer, ForeignKey("mission_fees.id"), unique=True, nullable=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True, index=True)
    period_start = Column(DateTime(timezone=True), nullable=True)
    period_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
