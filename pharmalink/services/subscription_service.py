"""
Subscription service: tier resolution and subscription lifecycle.

A user without a subscription row is on the free tier. Tier changes take
effect immediately.
"""
import calendar
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.core.tier_limits import (
    get_available_tiers,
    get_next_tier,
    get_tier_info,
    get_tier_price,
    is_valid_tier,
)
from pharmalink.db.models.subscription import Subscription
from pharmalink.db.models.user import User
from pharmalink.db.upsert import insert_for

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they were written as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found", {"user_id": user_id})
    return user


def get_user_type(db: Session, user_id: int) -> str:
    """Get a user's type (laboratory, pharmacy_owner, animator, ...)."""
    return get_user(db, user_id).user_type


def get_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def ensure_subscription(db: Session, user_id: int, commit: bool = True) -> Subscription:
    """
    Get the user's subscription, creating a free one if none exists.

    Two concurrent callers both end up with the same row.
    """
    subscription = get_subscription(db, user_id)
    if subscription:
        return subscription

    stmt = insert_for(db, Subscription.__table__).values(
        user_id=user_id,
        tier="free",
        auto_renew=False,
    ).on_conflict_do_nothing(index_elements=["user_id"])
    db.execute(stmt)
    if commit:
        db.commit()
    return get_subscription(db, user_id)


def get_tier_for_user(db: Session, user_id: int, now: Optional[datetime] = None) -> str:
    """
    Get the user's effective tier, defaulting to 'free' if none exists.

    A subscription past its expiry date without auto-renew falls back to free.
    """
    subscription = get_subscription(db, user_id)
    if not subscription or not subscription.tier:
        return "free"

    now = now or datetime.now(timezone.utc)
    expires_at = _as_utc(subscription.expires_at)
    if expires_at and expires_at <= now and not subscription.auto_renew:
        return "free"
    return subscription.tier


def upgrade_tier(
    db: Session,
    user_id: int,
    new_tier: str,
    duration_months: int = 1,
    now: Optional[datetime] = None,
) -> Subscription:
    """
    Move a user to a new tier, effective immediately.

    A paid tier produces a pending subscription invoice for the period.
    """
    from pharmalink.services.invoice_service import create_subscription_invoice

    user_type = get_user_type(db, user_id)
    if not is_valid_tier(user_type, new_tier):
        raise ValidationError(
            f"Tier '{new_tier}' is not available for {user_type}",
            {"tier": new_tier, "available": get_available_tiers(user_type)},
        )
    if duration_months < 1:
        raise ValidationError("duration_months must be at least 1")

    subscription = ensure_subscription(db, user_id, commit=False)
    started_at = now or datetime.now(timezone.utc)
    expires_at = _add_months(started_at, duration_months)

    subscription.tier = new_tier
    subscription.started_at = started_at
    subscription.expires_at = expires_at
    subscription.auto_renew = True
    subscription.cancelled_at = None
    db.flush()

    price = get_tier_price(user_type, new_tier) * duration_months
    if price > 0:
        create_subscription_invoice(
            db,
            user_id=user_id,
            subscription_id=subscription.id,
            tier=new_tier,
            price=price,
            period_start=started_at,
            period_end=expires_at,
            commit=False,
        )

    db.commit()
    db.refresh(subscription)

    logger.info(
        f"Subscription upgraded: user_id={user_id}, tier={new_tier}, "
        f"expires_at={expires_at.isoformat()}"
    )
    return subscription


def cancel_subscription(db: Session, user_id: int, now: Optional[datetime] = None) -> Subscription:
    """Stop auto-renew; the tier stays active until expires_at."""
    subscription = get_subscription(db, user_id)
    if not subscription:
        raise NotFoundError("Subscription not found", {"user_id": user_id})

    subscription.auto_renew = False
    subscription.cancelled_at = now or datetime.now(timezone.utc)
    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription cancelled: user_id={user_id}, tier={subscription.tier}")
    return subscription


def set_tier(db: Session, user_id: int, tier: str) -> Subscription:
    """Admin override: set a tier with no expiry and no invoice."""
    user_type = get_user_type(db, user_id)
    if not is_valid_tier(user_type, tier):
        raise ValidationError(f"Tier '{tier}' is not available for {user_type}", {"tier": tier})

    subscription = ensure_subscription(db, user_id, commit=False)
    subscription.tier = tier
    subscription.expires_at = None
    subscription.cancelled_at = None
    db.commit()
    db.refresh(subscription)

    logger.info(f"Subscription tier overridden: user_id={user_id}, tier={tier}")
    return subscription


def get_full_status(db: Session, user_id: int) -> Dict:
    """Subscription, tier info, next tier and quotas for display."""
    from pharmalink.services.quota_service import get_usage_for_response

    user_type = get_user_type(db, user_id)
    subscription = ensure_subscription(db, user_id)
    tier = get_tier_for_user(db, user_id)

    return {
        "user_type": user_type,
        "tier": tier,
        "tier_info": get_tier_info(user_type, tier),
        "next_tier": get_next_tier(user_type, tier),
        "subscription": {
            "tier": subscription.tier,
            "started_at": subscription.started_at,
            "expires_at": subscription.expires_at,
            "auto_renew": subscription.auto_renew,
            "cancelled_at": subscription.cancelled_at,
        },
        "usage": get_usage_for_response(db, user_id),
    }
