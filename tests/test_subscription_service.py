"""
Unit tests for subscription lifecycle and tier resolution.
"""
import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.db.base import Base
from pharmalink.db.models.invoice import Invoice
from pharmalink.db.models.subscription import Subscription
from pharmalink.db.models.user import User
from pharmalink.services.subscription_service import (
    cancel_subscription,
    ensure_subscription,
    get_full_status,
    get_tier_for_user,
    set_tier,
    upgrade_tier,
)


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

NOW = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)


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
def lab(db):
    user = User(full_name="Lab One", email="lab@example.com", user_type="laboratory")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_no_subscription_means_free(db, lab):
    assert get_tier_for_user(db, lab.id) == "free"


def test_ensure_subscription_is_idempotent(db, lab):
    first = ensure_subscription(db, lab.id)
    second = ensure_subscription(db, lab.id)
    assert first.id == second.id
    assert first.tier == "free"
    assert db.query(Subscription).count() == 1


def test_upgrade_sets_period_and_invoice(db, lab):
    subscription = upgrade_tier(db, lab.id, "pro", duration_months=1, now=NOW)

    assert subscription.tier == "pro"
    assert subscription.auto_renew is True
    # end of month clamps to the last day of February
    assert subscription.expires_at.replace(tzinfo=None) == datetime(2026, 2, 28, 9, 0)

    invoice = db.query(Invoice).one()
    assert invoice.kind == "subscription"
    assert invoice.total == 149
    assert invoice.status == "pending"
    assert invoice.subscription_id == subscription.id


def test_upgrade_to_free_has_no_invoice(db, lab):
    upgrade_tier(db, lab.id, "pro", now=NOW)
    upgrade_tier(db, lab.id, "free", now=NOW)
    assert db.query(Invoice).count() == 1
    assert get_tier_for_user(db, lab.id) == "free"


def test_upgrade_rejects_tier_of_other_user_type(db, lab):
    with pytest.raises(ValidationError):
        upgrade_tier(db, lab.id, "premium")


def test_upgrade_rejects_zero_months(db, lab):
    with pytest.raises(ValidationError):
        upgrade_tier(db, lab.id, "pro", duration_months=0)


def test_cancel_keeps_tier_until_expiry(db, lab):
    upgrade_tier(db, lab.id, "starter", duration_months=2, now=NOW)
    subscription = cancel_subscription(db, lab.id, now=NOW)

    assert subscription.auto_renew is False
    assert subscription.cancelled_at is not None
    assert get_tier_for_user(db, lab.id, now=datetime(2026, 3, 1, tzinfo=timezone.utc)) == "starter"
    assert get_tier_for_user(db, lab.id, now=datetime(2026, 4, 1, tzinfo=timezone.utc)) == "free"


def test_cancel_without_subscription(db, lab):
    with pytest.raises(NotFoundError):
        cancel_subscription(db, lab.id)


def test_set_tier_has_no_expiry(db, lab):
    subscription = set_tier(db, lab.id, "business")
    assert subscription.expires_at is None
    assert get_tier_for_user(db, lab.id) == "business"
    assert db.query(Invoice).count() == 0


def test_full_status(db, lab):
    status = get_full_status(db, lab.id)

    assert status["tier"] == "free"
    assert status["next_tier"] == "starter"
    assert status["tier_info"]["price"] == 0
    assert status["usage"]["quotas"]["missions"]["max"] == 1
