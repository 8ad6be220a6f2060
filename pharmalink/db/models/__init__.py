"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from pharmalink.db.models.user import User
from pharmalink.db.models.subscription import Subscription
from pharmalink.db.models.usage import UsageRecord
from pharmalink.db.models.listing import JobOffer, InternshipOffer, Mission
from pharmalink.db.models.swipe import Swipe
from pharmalink.db.models.match import Match, AnimatorMatch
from pharmalink.db.models.mission_fee import MissionFee
from pharmalink.db.models.invoice import Invoice
from pharmalink.db.models.notification import Notification
from pharmalink.db.models.favorite import Favorite

# Explicitly export all models for clarity
__all__ = [
    "User",
    "Subscription",
    "UsageRecord",
    "JobOffer",
    "InternshipOffer",
    "Mission",
    "Swipe",
    "Match",
    "AnimatorMatch",
    "MissionFee",
    "Invoice",
    "Notification",
    "Favorite",
]
