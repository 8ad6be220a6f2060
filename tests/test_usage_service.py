"""
Unit tests for the usage ledger.
"""
import pytest
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.errors import ValidationError
from pharmalink.db.base import Base
from pharmalink.db.models.usage import UsageRecord
from pharmalink.db.models.user import User
from pharmalink.services.usage_service import (
    get_or_create_usage,
    get_usage_snapshot,
    increment_usage,
    increment_usage_within_limit,
    month_key_for,
    reset_daily_super_likes,
)


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def user(db):
    user = User(full_name="Lab One", email="lab@example.com", user_type="laboratory")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_usage_row_created_zeroed_once(db, user):
    first = get_or_create_usage(db, user.id, "2026-03")
    second = get_or_create_usage(db, user.id, "2026-03")

    assert first.id == second.id
    assert first.missions_published == 0
    assert first.super_likes_today == 0
    assert db.query(UsageRecord).filter(UsageRecord.user_id == user.id).count() == 1


def test_increment_adds_atomically(db, user):
    increment_usage(db, user.id, "missions_published")
    usage = increment_usage(db, user.id, "missions_published", 2)
    assert usage.missions_published == 3


def test_decrement_never_goes_below_zero(db, user):
    increment_usage(db, user.id, "favorites_count")
    increment_usage(db, user.id, "favorites_count", -1)
    usage = increment_usage(db, user.id, "favorites_count", -1)
    assert usage.favorites_count == 0


def test_unknown_field_rejected(db, user):
    with pytest.raises(ValidationError):
        increment_usage(db, user.id, "password_hash")


def test_increment_within_limit(db, user):
    assert increment_usage_within_limit(db, user.id, "missions_published", limit=2)
    assert increment_usage_within_limit(db, user.id, "missions_published", limit=2)
    assert not increment_usage_within_limit(db, user.id, "missions_published", limit=2)
    assert get_or_create_usage(db, user.id).missions_published == 2


def test_new_period_resets_flows_and_carries_held_counters(db, user):
    march = get_or_create_usage(db, user.id, "2026-03")
    march.missions_published = 4
    march.favorites_count = 2
    march.photos_count = 7
    db.commit()

    april = get_or_create_usage(db, user.id, "2026-04")
    assert april.missions_published == 0
    assert april.favorites_count == 2
    assert april.photos_count == 7


def test_month_key_format():
    assert month_key_for(date(2026, 1, 5)) == "2026-01"


def test_daily_reset_runs_once_per_day(db, user):
    today = date(2026, 3, 10)
    usage = get_or_create_usage(db, user.id, month_key_for(today))
    usage.super_likes_today = 2
    usage.super_likes_last_reset = date(2026, 3, 9)
    db.commit()

    assert reset_daily_super_likes(db, user.id, today=today) is True
    usage = get_or_create_usage(db, user.id, month_key_for(today))
    usage.super_likes_today = 1
    db.commit()
    assert reset_daily_super_likes(db, user.id, today=today) is False

    assert get_or_create_usage(db, user.id, month_key_for(today)).super_likes_today == 1


def test_snapshot_hides_stale_super_likes(db, user):
    today = date(2026, 3, 10)
    usage = get_or_create_usage(db, user.id, month_key_for(today))
    usage.super_likes_today = 3
    usage.super_likes_last_reset = date(2026, 3, 9)
    db.commit()

    snapshot = get_usage_snapshot(db, user.id, today=today)
    assert snapshot["super_likes_today"] == 0
    assert snapshot["month_key"] == "2026-03"
