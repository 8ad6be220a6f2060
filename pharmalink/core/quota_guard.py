"""
Quota enforcement at the HTTP edge.

Services report an exhausted quota as an allowed=False result; routes turn
that into QuotaExceededError, answered as 402 with the quota figures so the
app can show an upgrade screen.
"""
import logging
from sqlalchemy.orm import Session

from pharmalink.core.errors import QuotaExceededError
from pharmalink.core.tier_limits import get_next_tier
from pharmalink.db.models.user import User
from pharmalink.services.subscription_service import get_tier_for_user

logger = logging.getLogger(__name__)


def raise_quota_exceeded(db: Session, user: User, limit_key: str, quota) -> None:
    """
    Raise QuotaExceededError with the structured detail the app expects.

    Raises:
        QuotaExceededError: always
    """
    tier = get_tier_for_user(db, user.id)
    logger.warning(
        f"Quota exceeded: user_id={user.id}, limit_key={limit_key}, "
        f"tier={tier}, limit={quota.max}, used={quota.used}"
    )
    raise QuotaExceededError(
        f"Quota exceeded for {limit_key}",
        {
            "limit_key": limit_key,
            "tier": tier,
            "next_tier": get_next_tier(user.user_type, tier),
            "limit": quota.max,
            "used": quota.used,
            "remaining": 0,
        },
    )

