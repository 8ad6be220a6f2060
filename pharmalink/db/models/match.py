"""
Mutual-match models.

Match pairs a candidate with a job or internship offer; AnimatorMatch pairs
an animator with an animation mission. Both move pending -> matched once,
when both liked flags are true, and are never deleted.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from pharmalink.db.base import Base

MATCH_PENDING = "pending"
MATCH_MATCHED = "matched"


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    offer_type = Column(String, nullable=False)  # job_offer | internship_offer
    offer_id = Column(Integer, nullable=False)
    candidate_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    candidate_liked = Column(Boolean, default=False, nullable=False)
    employer_liked = Column(Boolean, default=False, nullable=False)
    is_super_like = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=MATCH_PENDING, nullable=False, index=True)
    matched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("offer_type", "offer_id", "candidate_id", name="uq_match_offer_candidate"),
        Index("idx_matches_employer_status", "employer_id", "status"),
    )

    def __repr__(self):
        return f"<Match(id={self.id}, {self.offer_type}:{self.offer_id}, candidate_id={self.candidate_id}, status={self.status})>"


class AnimatorMatch(Base):
    __tablename__ = "animator_matches"

    id = Column(Integer, primary_key=True, index=True)
    mission_id = Column(Integer, ForeignKey("animation_missions.id"), nullable=False, index=True)
    animator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    laboratory_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    animator_liked = Column(Boolean, default=False, nullable=False)
    laboratory_liked = Column(Boolean, default=False, nullable=False)
    is_super_like = Column(Boolean, default=False, nullable=False)
    status = Column(String, default=MATCH_PENDING, nullable=False, index=True)
    matched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("mission_id", "animator_id", name="uq_animator_match_mission_animator"),
        Index("idx_animator_matches_lab_status", "laboratory_id", "status"),
    )

    def __repr__(self):
        return f"<AnimatorMatch(id={self.id}, mission_id={self.mission_id}, animator_id={self.animator_id}, status={self.status})>"
