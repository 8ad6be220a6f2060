"""
Quota service for subscription-gated actions.

Combines the tier limits table with the usage ledger to answer whether an
action is allowed right now, and consumes quota with conditional updates so
two concurrent requests can never both take the last slot.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date
from typing import Dict, Optional

from sqlalchemy import update, or_, case
from sqlalchemy.orm import Session

from pharmalink.core.errors import ValidationError
from pharmalink.core.tier_limits import (
    LIMIT_USAGE_FIELDS,
    get_limit,
    get_limits,
    normalize_user_type,
)
from pharmalink.services.subscription_service import get_tier_for_user, get_user_type
from pharmalink.services.usage_service import (
    get_or_create_usage,
    increment_usage,
    increment_usage_within_limit,
    local_today,
    month_key_for,
    reset_daily_super_likes,
    super_likes_stale,
    usage_table,
)

logger = logging.getLogger(__name__)

SUPER_LIKE_LIMIT_KEY = "super_likes_per_day"


@dataclass(frozen=True)
class QuotaCheck:
    """
    Result of a quota check.

    max and remaining are None when the quota is unlimited.
    """
    allowed: bool
    used: int
    max: Optional[int]
    remaining: Optional[int]

    @property
    def unlimited(self) -> bool:
        return self.max is None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["unlimited"] = self.unlimited
        return data


def build_quota_check(used: int, limit: Optional[int]) -> QuotaCheck:
    if limit is None:
        return QuotaCheck(allowed=True, used=used, max=None, remaining=None)
    return QuotaCheck(
        allowed=used < limit,
        used=used,
        max=limit,
        remaining=max(0, limit - used),
    )


def resolve_limit(db: Session, user_id: int, limit_key: str) -> Optional[int]:
    """Cap for ``limit_key`` under the user's current type and tier."""
    user_type = get_user_type(db, user_id)
    tier = get_tier_for_user(db, user_id)
    return get_limit(user_type, tier, limit_key)


def check_limit(
    db: Session,
    user_id: int,
    limit_key: str,
    today: Optional[date] = None,
) -> QuotaCheck:
    """
    Check whether one more use of ``limit_key`` is allowed.

    Read-only with respect to counters: a stale daily super-like counter is
    reported as 0 without being written.
    """
    today = today or local_today()
    limit = resolve_limit(db, user_id, limit_key)

    field = LIMIT_USAGE_FIELDS.get(limit_key)
    used = 0
    if field:
        usage = get_or_create_usage(db, user_id, month_key_for(today))
        used = getattr(usage, field)
        if field == "super_likes_today" and super_likes_stale(usage.super_likes_last_reset, today):
            used = 0

    return build_quota_check(used, limit)


def can_publish_mission(db: Session, user_id: int) -> QuotaCheck:
    """Laboratories publish missions; pharmacy owners publish offers."""
    limit_key = "missions" if normalize_user_type(get_user_type(db, user_id)) == "laboratory" else "offers"
    return check_limit(db, user_id, limit_key)


def can_super_like(db: Session, user_id: int, today: Optional[date] = None) -> QuotaCheck:
    """
    Apply the lazy daily reset, then check the super-like budget.

    The reset is a conditional update, so repeated calls on the same day do
    not reset again. Use consume_super_like to actually spend one.
    """
    today = today or local_today()
    reset_daily_super_likes(db, user_id, today=today)
    return check_limit(db, user_id, SUPER_LIKE_LIMIT_KEY, today=today)


def consume_quota(
    db: Session,
    user_id: int,
    limit_key: str,
    amount: int = 1,
    commit: bool = True,
) -> QuotaCheck:
    """
    Check and consume monthly quota in one conditional update.

    Returns:
        QuotaCheck with allowed=True and the post-consumption usage when
        consumed, or allowed=False with the current usage when denied.
    """
    if limit_key == SUPER_LIKE_LIMIT_KEY:
        return consume_super_like(db, user_id, amount=amount, commit=commit)

    field = LIMIT_USAGE_FIELDS.get(limit_key)
    if field is None:
        raise ValidationError(f"Limit '{limit_key}' is not backed by a usage counter", {"limit_key": limit_key})

    limit = resolve_limit(db, user_id, limit_key)
    if limit is None:
        usage = increment_usage(db, user_id, field, amount, commit=commit)
        return QuotaCheck(allowed=True, used=getattr(usage, field), max=None, remaining=None)

    applied = increment_usage_within_limit(db, user_id, field, limit, amount, commit=commit)
    usage = get_or_create_usage(db, user_id, commit=commit)
    used = getattr(usage, field)

    if not applied:
        logger.warning(
            f"Quota exceeded: user_id={user_id}, limit_key={limit_key}, "
            f"limit={limit}, used={used}"
        )
        return QuotaCheck(allowed=False, used=used, max=limit, remaining=max(0, limit - used))

    logger.info(
        f"Quota consumed: user_id={user_id}, limit_key={limit_key}, "
        f"used={used}/{limit}"
    )
    return QuotaCheck(allowed=True, used=used, max=limit, remaining=max(0, limit - used))


def consume_super_like(
    db: Session,
    user_id: int,
    amount: int = 1,
    today: Optional[date] = None,
    commit: bool = True,
) -> QuotaCheck:
    """
    Reset-if-stale, check and increment the daily super-like counter atomically.

    One UPDATE does all three: it matches the row only when the counter is
    stale (a new day) or still below the cap, and sets the counter to
    ``amount`` on a new day or adds ``amount`` otherwise. rowcount tells
    whether this caller got the slot.
    """
    today = today or local_today()
    limit = resolve_limit(db, user_id, SUPER_LIKE_LIMIT_KEY)
    usage = get_or_create_usage(db, user_id, month_key_for(today), commit=False)

    counter = usage_table.c.super_likes_today
    last_reset = usage_table.c.super_likes_last_reset
    is_stale = or_(last_reset.is_(None), last_reset != today)

    if limit is not None and amount > limit:
        # Cap below the request: only the lazy reset applies
        reset_daily_super_likes(db, user_id, today=today, commit=commit)
        usage = get_or_create_usage(db, user_id, month_key_for(today), commit=commit)
        logger.warning(f"Super like denied: user_id={user_id}, limit={limit}")
        return QuotaCheck(allowed=False, used=usage.super_likes_today, max=limit, remaining=0)

    stmt = update(usage_table).where(usage_table.c.id == usage.id)
    if limit is not None:
        stmt = stmt.where(or_(is_stale, counter + amount <= limit))
    stmt = stmt.values(
        super_likes_today=case((is_stale, amount), else_=counter + amount),
        super_likes_last_reset=today,
    )
    applied = db.execute(stmt).rowcount == 1
    if commit:
        db.commit()

    usage = get_or_create_usage(db, user_id, month_key_for(today), commit=commit)
    used = usage.super_likes_today
    if limit is None:
        return QuotaCheck(allowed=True, used=used, max=None, remaining=None)

    if not applied:
        logger.warning(f"Super like denied: user_id={user_id}, used={used}/{limit}")
        return QuotaCheck(allowed=False, used=used, max=limit, remaining=max(0, limit - used))

    logger.info(f"Super like consumed: user_id={user_id}, used={used}/{limit}")
    return QuotaCheck(allowed=True, used=used, max=limit, remaining=max(0, limit - used))


def release_quota(db: Session, user_id: int, limit_key: str, amount: int = 1, commit: bool = True) -> None:
    """Give back previously consumed quota (e.g. a favorite removed)."""
    field = LIMIT_USAGE_FIELDS.get(limit_key)
    if field is None:
        raise ValidationError(f"Limit '{limit_key}' is not backed by a usage counter", {"limit_key": limit_key})
    increment_usage(db, user_id, field, -amount, commit=commit)


def get_usage_for_response(db: Session, user_id: int, today: Optional[date] = None) -> Dict:
    """
    Get usage data formatted for GET /me/usage response.

    Returns:
        Dictionary with tier, user_type, month_key and a quota entry per limit key
    """
    today = today or local_today()
    user_type = get_user_type(db, user_id)
    tier = get_tier_for_user(db, user_id)
    usage = get_or_create_usage(db, user_id, month_key_for(today))

    quotas = {}
    for limit_key, limit in get_limits(user_type, tier).items():
        field = LIMIT_USAGE_FIELDS.get(limit_key)
        if field is None:
            continue
        used = getattr(usage, field)
        if field == "super_likes_today" and super_likes_stale(usage.super_likes_last_reset, today):
            used = 0
        quotas[limit_key] = build_quota_check(used, limit).to_dict()

    return {
        "tier": tier,
        "user_type": user_type,
        "month_key": usage.month_key,
        "quotas": quotas,
    }
