from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from datetime import datetime
from zoneinfo import ZoneInfo
from pharmalink.db.base import Base
from pharmalink.core.config import REFERENCE_TIMEZONE

# Counters that live on the usage row and may be incremented through the ledger
USAGE_COUNTER_FIELDS = (
    "missions_published",
    "missions_confirmed",
    "alerts_sent",
    "favorites_count",
    "super_likes_today",
    "posts_published",
    "videos_published",
    "sponsored_weeks_used",
    "sponsored_cards_used",
    "photos_count",
)

# Counters that describe what a user currently holds rather than a monthly flow
HELD_COUNTER_FIELDS = ("favorites_count", "photos_count")


class UsageRecord(Base):
    """
    Per-user, per-month usage counters.

    One row per (user_id, month_key). Monthly counters reset naturally when a
    new period row is created; super_likes_today resets lazily on read when
    super_likes_last_reset is not today's date.
    """
    __tablename__ = "usage_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    month_key = Column(String(7), nullable=False, index=True)  # "YYYY-MM" in the reference timezone

    missions_published = Column(Integer, default=0, nullable=False)
    missions_confirmed = Column(Integer, default=0, nullable=False)
    alerts_sent = Column(Integer, default=0, nullable=False)
    favorites_count = Column(Integer, default=0, nullable=False)
    super_likes_today = Column(Integer, default=0, nullable=False)
    super_likes_last_reset = Column(Date, nullable=True)
    posts_published = Column(Integer, default=0, nullable=False)
    videos_published = Column(Integer, default=0, nullable=False)
    sponsored_weeks_used = Column(Integer, default=0, nullable=False)
    sponsored_cards_used = Column(Integer, default=0, nullable=False)
    photos_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "month_key", name="uq_usage_user_month"),
        CheckConstraint(
            "missions_published >= 0 AND missions_confirmed >= 0 AND alerts_sent >= 0 "
            "AND favorites_count >= 0 AND super_likes_today >= 0 AND posts_published >= 0 "
            "AND videos_published >= 0 AND sponsored_weeks_used >= 0 "
            "AND sponsored_cards_used >= 0 AND photos_count >= 0",
            name="ck_usage_counters_non_negative",
        ),
    )

    @staticmethod
    def get_month_key(date: datetime = None) -> str:
        """Generate month_key string in YYYY-MM format."""
        if date is None:
            date = datetime.now(ZoneInfo(REFERENCE_TIMEZONE))
        return date.strftime("%Y-%m")
