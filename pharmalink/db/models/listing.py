"""
Listing models referenced by the matching engine.

Offers and missions are maintained by the listing CRUD; the matching engine
only reads them to resolve who sits on the other side of a pairing.
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey
from sqlalchemy.sql import func
from pharmalink.db.base import Base


class JobOffer(Base):
    __tablename__ = "job_offers"

    id = Column(Integer, primary_key=True, index=True)
    pharmacy_owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    contract_type = Column(String, nullable=True)
    region = Column(String, nullable=True, index=True)
    status = Column(String, default="active", nullable=False, index=True)  # active | closed
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class InternshipOffer(Base):
    __tablename__ = "internship_offers"

    id = Column(Integer, primary_key=True, index=True)
    pharmacy_owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    type = Column(String, nullable=True)  # internship | apprenticeship
    region = Column(String, nullable=True, index=True)
    status = Column(String, default="active", nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Mission(Base):
    """Animation mission published by a laboratory (or a pharmacy owner)."""
    __tablename__ = "animation_missions"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    animator_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String, nullable=False)
    region = Column(String, nullable=True, index=True)
    daily_rate = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, default="open", nullable=False, index=True)  # open | assigned | closed
    created_at = Column(DateTime(timezone=True), server_default=func.now())
