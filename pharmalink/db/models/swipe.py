import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from pharmalink.db.base import Base


class TargetType(str, enum.Enum):
    """Kinds of things an actor can swipe on or favorite."""
    JOB_OFFER = "job_offer"
    INTERNSHIP_OFFER = "internship_offer"
    CANDIDATE = "candidate"
    MISSION = "mission"
    ANIMATOR = "animator"
    LABORATORY = "laboratory"
    PHARMACY_LISTING = "pharmacy_listing"


class SwipeAction(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    SUPERLIKE = "superlike"

    @property
    def is_positive(self) -> bool:
        return self in (SwipeAction.LIKE, SwipeAction.SUPERLIKE)


SWIPEABLE_TARGETS = (
    TargetType.JOB_OFFER,
    TargetType.INTERNSHIP_OFFER,
    TargetType.CANDIDATE,
    TargetType.MISSION,
    TargetType.ANIMATOR,
)


class Swipe(Base):
    """
    Directional preference from one actor toward one target.

    At most one row per (user_id, target_type, target_id); a re-swipe
    overwrites the action in place.
    """
    __tablename__ = "swipes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    target_type = Column(String, nullable=False)  # job_offer | internship_offer | candidate | mission | animator
    target_id = Column(Integer, nullable=False)
    action = Column(String, nullable=False)  # like | dislike | superlike
    is_super_like = Column(Boolean, default=False, nullable=False)
    super_liked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id", name="uq_swipe_actor_target"),
        Index("idx_swipes_target", "target_type", "target_id"),
    )

    def __repr__(self):
        return f"<Swipe(user_id={self.user_id}, target={self.target_type}:{self.target_id}, action={self.action})>"
