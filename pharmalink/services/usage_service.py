"""
Usage ledger: per-user, per-month counters.

Every mutation is a single SQL statement (INSERT .. ON CONFLICT DO NOTHING to
create the period row, UPDATE .. SET f = f + n to count). Callers never
read-modify-write a counter in Python.
"""
import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session

from pharmalink.core.config import REFERENCE_TIMEZONE
from pharmalink.core.errors import ValidationError
from pharmalink.db.models.usage import UsageRecord, USAGE_COUNTER_FIELDS, HELD_COUNTER_FIELDS
from pharmalink.db.upsert import insert_for

logger = logging.getLogger(__name__)

usage_table = UsageRecord.__table__


def local_today() -> date:
    """Today's date in the reference timezone."""
    return datetime.now(ZoneInfo(REFERENCE_TIMEZONE)).date()


def month_key_for(day: date) -> str:
    return day.strftime("%Y-%m")


def _select_usage(db: Session, user_id: int, month_key: str) -> Optional[UsageRecord]:
    return db.execute(
        select(UsageRecord)
        .where(UsageRecord.user_id == user_id, UsageRecord.month_key == month_key)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def _carried_counters(db: Session, user_id: int, month_key: str) -> dict:
    """Held counters copied from the user's latest earlier period row."""
    previous = db.execute(
        select(UsageRecord)
        .where(UsageRecord.user_id == user_id, UsageRecord.month_key < month_key)
        .order_by(UsageRecord.month_key.desc())
        .limit(1)
    ).scalar_one_or_none()
    if previous is None:
        return {}
    return {field: getattr(previous, field) for field in HELD_COUNTER_FIELDS}


def get_or_create_usage(
    db: Session,
    user_id: int,
    month_key: Optional[str] = None,
    commit: bool = True,
) -> UsageRecord:
    """
    Get the usage row for the current (or given) period, creating it zeroed.

    Concurrent creators race on the (user_id, month_key) unique constraint;
    the loser's insert is a no-op and both read the same row.
    """
    month_key = month_key or UsageRecord.get_month_key()
    usage = _select_usage(db, user_id, month_key)
    if usage is not None:
        return usage

    values = {field: 0 for field in USAGE_COUNTER_FIELDS}
    values.update(_carried_counters(db, user_id, month_key))
    stmt = insert_for(db, usage_table).values(
        user_id=user_id,
        month_key=month_key,
        **values,
    ).on_conflict_do_nothing(index_elements=["user_id", "month_key"])
    db.execute(stmt)
    if commit:
        db.commit()

    logger.info(f"Usage period opened: user_id={user_id}, month_key={month_key}")
    return _select_usage(db, user_id, month_key)


def _check_field(field: str) -> None:
    if field not in USAGE_COUNTER_FIELDS:
        raise ValidationError(f"Unknown usage counter: {field}", {"field": field})


def increment_usage(
    db: Session,
    user_id: int,
    field: str,
    amount: int = 1,
    commit: bool = True,
) -> UsageRecord:
    """
    Atomically add ``amount`` to a usage counter.

    Negative amounts decrement; a decrement that would take the counter below
    zero is not applied.
    """
    _check_field(field)
    usage = get_or_create_usage(db, user_id, commit=False)
    column = usage_table.c[field]

    result = db.execute(
        update(usage_table)
        .where(usage_table.c.id == usage.id, column + amount >= 0)
        .values({field: column + amount})
    )
    if result.rowcount == 0:
        logger.warning(
            f"Usage decrement ignored (would go negative): user_id={user_id}, "
            f"field={field}, amount={amount}"
        )
    if commit:
        db.commit()

    return _select_usage(db, user_id, usage.month_key)


def increment_usage_within_limit(
    db: Session,
    user_id: int,
    field: str,
    limit: int,
    amount: int = 1,
    commit: bool = True,
) -> bool:
    """
    Atomically add ``amount`` only if the result stays within ``limit``.

    Returns:
        True when the increment was applied, False when it would exceed the cap.
    """
    _check_field(field)
    usage = get_or_create_usage(db, user_id, commit=False)
    column = usage_table.c[field]

    result = db.execute(
        update(usage_table)
        .where(usage_table.c.id == usage.id, column + amount <= limit)
        .values({field: column + amount})
    )
    if commit:
        db.commit()
    return result.rowcount == 1


def super_likes_stale(last_reset: Optional[date], today: date) -> bool:
    """The daily super-like counter is stale when it was last reset on another day."""
    return last_reset is None or last_reset != today


def reset_daily_super_likes(
    db: Session,
    user_id: int,
    today: Optional[date] = None,
    commit: bool = True,
) -> bool:
    """
    Lazily reset super_likes_today when the last reset was not today.

    The date check is part of the UPDATE's WHERE clause, so a second call on
    the same day changes nothing.

    Returns:
        True if this call performed the reset.
    """
    today = today or local_today()
    usage = get_or_create_usage(db, user_id, month_key_for(today), commit=False)

    result = db.execute(
        update(usage_table)
        .where(
            usage_table.c.id == usage.id,
            or_(
                usage_table.c.super_likes_last_reset.is_(None),
                usage_table.c.super_likes_last_reset != today,
            ),
        )
        .values(super_likes_today=0, super_likes_last_reset=today)
    )
    if commit:
        db.commit()

    reset = result.rowcount == 1
    if reset:
        logger.info(f"Daily super likes reset: user_id={user_id}, day={today.isoformat()}")
    return reset


def get_usage_snapshot(db: Session, user_id: int, today: Optional[date] = None) -> dict:
    """Counter values for the current period, with a stale super-like count shown as 0."""
    today = today or local_today()
    usage = get_or_create_usage(db, user_id, month_key_for(today))
    snapshot = {field: getattr(usage, field) for field in USAGE_COUNTER_FIELDS}
    if super_likes_stale(usage.super_likes_last_reset, today):
        snapshot["super_likes_today"] = 0
    snapshot["month_key"] = usage.month_key
    return snapshot
