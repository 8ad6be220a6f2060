"""
Unit tests for mission confirmation fees.
"""
import pytest
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.db.base import Base
from pharmalink.db.models.invoice import Invoice
from pharmalink.db.models.listing import Mission
from pharmalink.db.models.mission_fee import MissionFee
from pharmalink.db.models.user import User
from pharmalink.services.fee_service import (
    calculate_fee,
    check_fee_status,
    confirm_mission,
    create_fee,
    mark_fee_paid,
    mission_duration_days,
)
from pharmalink.services.match_service import on_like
from pharmalink.services.subscription_service import set_tier
from pharmalink.services.usage_service import get_or_create_usage


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, recipient_id, type, title, body, data=None):
        self.sent.append((recipient_id, type))


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


def make_user(db, user_type, email):
    user = User(full_name=email.split("@")[0].title(), email=email, user_type=user_type)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_mission(db, client, start, end, title="Animation"):
    mission = Mission(client_id=client.id, title=title, start_date=start, end_date=end)
    db.add(mission)
    db.commit()
    db.refresh(mission)
    return mission


def match(db, lab, animator, mission):
    on_like(db, animator.id, "animator", "mission", mission.id)
    on_like(db, lab.id, "laboratory", "animator", animator.id, context_id=mission.id)


@pytest.fixture
def lab(db):
    return make_user(db, "laboratory", "lab@example.com")


@pytest.fixture
def animator(db):
    return make_user(db, "animator", "anna@example.com")


@pytest.mark.parametrize(
    "days,amount",
    [(1, 10), (2, 10), (3, 15), (5, 15), (6, 20), (30, 20)],
)
def test_fee_brackets(days, amount):
    assert calculate_fee(days) == amount


def test_fee_rejects_empty_duration():
    with pytest.raises(ValidationError):
        calculate_fee(0)


def test_duration_counts_both_ends():
    assert mission_duration_days(date(2026, 5, 4), date(2026, 5, 4)) == 1
    assert mission_duration_days(date(2026, 5, 4), date(2026, 5, 7)) == 4
    with pytest.raises(ValidationError):
        mission_duration_days(date(2026, 5, 7), date(2026, 5, 4))


def test_fee_status_free_lab_not_included(db, lab):
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    status = check_fee_status(db, lab.id, mission.id)

    assert status.days == 4
    assert status.amount == 15
    assert status.included_in_subscription is False
    assert status.contacts_max == 0
    assert status.tier == "free"


def test_fee_status_starter_lab_included(db, lab):
    set_tier(db, lab.id, "starter")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 4))
    status = check_fee_status(db, lab.id, mission.id)

    assert status.amount == 10
    assert status.included_in_subscription is True
    assert status.contacts_remaining == 3


def test_fee_status_business_unlimited(db, lab):
    set_tier(db, lab.id, "business")
    mission = make_mission(db, lab, date(2026, 5, 1), date(2026, 5, 10))
    status = check_fee_status(db, lab.id, mission.id)

    assert status.included_in_subscription is True
    assert status.contacts_max is None
    assert status.to_dict()["amount"] == 20


def test_fee_status_unknown_mission(db, lab):
    with pytest.raises(NotFoundError):
        check_fee_status(db, lab.id, 999)


def test_create_fee_once_per_mission(db, lab):
    set_tier(db, lab.id, "starter")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 5))

    first = create_fee(db, mission.id, lab.id, 10, included_in_subscription=True)
    second = create_fee(db, mission.id, lab.id, 99, included_in_subscription=False)

    assert second.id == first.id
    assert second.amount == 10
    assert second.status == "waived"
    assert db.query(MissionFee).count() == 1
    assert get_or_create_usage(db, lab.id).missions_confirmed == 1


def test_waived_fee_downgraded_when_contacts_run_out(db, lab):
    set_tier(db, lab.id, "starter")
    usage = get_or_create_usage(db, lab.id)
    usage.missions_confirmed = 3
    db.commit()
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 5))

    fee = create_fee(db, mission.id, lab.id, 10, included_in_subscription=True)

    assert fee.status == "pending"
    assert fee.included_in_subscription is False
    assert get_or_create_usage(db, lab.id).missions_confirmed == 3


def test_confirm_free_lab_four_day_mission(db, lab, animator):
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)
    notifier = RecordingNotifier()

    confirmation = confirm_mission(db, lab.id, mission.id, notifier=notifier)

    assert confirmation.created is True
    assert confirmation.fee.amount == 15
    assert confirmation.fee.included_in_subscription is False
    assert confirmation.fee.status == "pending"
    assert confirmation.invoice.total == 15
    assert confirmation.invoice.status == "pending"
    assert confirmation.invoice.invoice_number.startswith("INV-")

    db.refresh(mission)
    assert mission.animator_id == animator.id
    assert mission.status == "confirmed"
    assert notifier.sent == [(lab.id, "mission_fee_pending")]


def test_confirm_starter_lab_waives_and_consumes_contact(db, lab, animator):
    set_tier(db, lab.id, "starter")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 5))
    match(db, lab, animator, mission)

    confirmation = confirm_mission(db, lab.id, mission.id)

    assert confirmation.fee.status == "waived"
    assert confirmation.fee.included_in_subscription is True
    assert confirmation.invoice.total == 0
    assert confirmation.invoice.discount == 10
    assert confirmation.invoice.status == "waived"
    assert get_or_create_usage(db, lab.id).missions_confirmed == 1


def test_last_included_contact_sends_limit_notice(db, lab, animator):
    set_tier(db, lab.id, "starter")
    usage = get_or_create_usage(db, lab.id)
    usage.missions_confirmed = 2
    db.commit()
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 5))
    match(db, lab, animator, mission)
    notifier = RecordingNotifier()

    confirm_mission(db, lab.id, mission.id, notifier=notifier)

    assert notifier.sent == [(lab.id, "contacts_limit_reached")]


def test_confirm_twice_returns_existing(db, lab, animator):
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)

    first = confirm_mission(db, lab.id, mission.id)
    second = confirm_mission(db, lab.id, mission.id)

    assert second.created is False
    assert second.fee.id == first.fee.id
    assert second.invoice.id == first.invoice.id
    assert db.query(Invoice).count() == 1


def test_confirm_requires_match(db, lab, animator):
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    on_like(db, animator.id, "animator", "mission", mission.id)

    with pytest.raises(ValidationError):
        confirm_mission(db, lab.id, mission.id)
    assert db.query(MissionFee).count() == 0


def test_confirm_requires_owner(db, lab, animator):
    other = make_user(db, "laboratory", "other@example.com")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)

    with pytest.raises(ValidationError):
        confirm_mission(db, other.id, mission.id)


def test_confirm_chooses_between_several_matches(db, lab, animator):
    second_animator = make_user(db, "animator", "bob@example.com")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)
    match(db, lab, second_animator, mission)

    with pytest.raises(ValidationError):
        confirm_mission(db, lab.id, mission.id)

    confirmation = confirm_mission(db, lab.id, mission.id, animator_id=second_animator.id)
    db.refresh(mission)
    assert confirmation.created is True
    assert mission.animator_id == second_animator.id


def test_mark_fee_paid(db, lab, animator):
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)
    confirmation = confirm_mission(db, lab.id, mission.id)

    fee = mark_fee_paid(db, mission.id)

    assert fee.status == "paid"
    assert fee.paid_at is not None
    db.refresh(confirmation.invoice)
    assert confirmation.invoice.status == "paid"


def test_mark_fee_paid_leaves_waived_fee(db, lab, animator):
    set_tier(db, lab.id, "starter")
    mission = make_mission(db, lab, date(2026, 5, 4), date(2026, 5, 7))
    match(db, lab, animator, mission)
    confirm_mission(db, lab.id, mission.id)

    assert mark_fee_paid(db, mission.id).status == "waived"


def test_mark_fee_paid_unknown_mission(db):
    with pytest.raises(NotFoundError):
        mark_fee_paid(db, 999)
