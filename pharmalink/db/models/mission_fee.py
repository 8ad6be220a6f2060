from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from pharmalink.db.base import Base

FEE_WAIVED = "waived"
FEE_PENDING = "pending"
FEE_PAID = "paid"


class MissionFee(Base):
    """
    Confirmation fee for a mission (one per mission).

    amount and included_in_subscription are frozen at creation; later quota
    changes never alter an existing row.
    """
    __tablename__ = "mission_fees"

    id = Column(Integer, primary_key=True, index=True)
    mission_id = Column(Integer, ForeignKey("animation_missions.id"), unique=True, nullable=False)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # whole currency units
    days = Column(Integer, nullable=True)
    tier = Column(String, nullable=True)  # payer tier when the fee was created
    included_in_subscription = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=FEE_PENDING, nullable=False, index=True)  # waived | pending | paid
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
