"""
Unit tests for the invoice emitter.
"""
import re

import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.errors import NotFoundError
from pharmalink.db.base import Base
from pharmalink.db.models.mission_fee import MissionFee
from pharmalink.db.models.user import User
from pharmalink.services.invoice_service import (
    create_subscription_invoice,
    emit_mission_fee_invoice,
    generate_invoice_number,
    get_invoice,
    get_invoice_by_number,
    get_user_invoices,
    mark_invoice_paid,
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
def lab(db):
    user = User(full_name="Lab One", email="lab@example.com", user_type="laboratory")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_fee(db, payer, status, amount=15, mission_id=1):
    fee = MissionFee(
        mission_id=mission_id,
        payer_id=payer.id,
        amount=amount,
        days=4,
        included_in_subscription=status == "waived",
        status=status,
    )
    db.add(fee)
    db.commit()
    db.refresh(fee)
    return fee


def test_invoice_number_format():
    number = generate_invoice_number(datetime(2026, 5, 4, tzinfo=timezone.utc))
    assert re.fullmatch(r"INV-202605-[0-9A-F]{8}", number)
    assert number != generate_invoice_number(datetime(2026, 5, 4, tzinfo=timezone.utc))


def test_pending_fee_invoice(db, lab):
    invoice = emit_mission_fee_invoice(db, make_fee(db, lab, "pending"))

    assert invoice.status == "pending"
    assert invoice.subtotal == 15
    assert invoice.discount == 0
    assert invoice.total == 15
    assert invoice.currency == "EUR"
    assert len(invoice.line_items) == 1


def test_waived_fee_invoice_totals_zero(db, lab):
    invoice = emit_mission_fee_invoice(db, make_fee(db, lab, "waived"))

    assert invoice.status == "waived"
    assert invoice.discount == 15
    assert invoice.total == 0
    assert [item["amount"] for item in invoice.line_items] == [15, -15]


def test_one_invoice_per_fee(db, lab):
    fee = make_fee(db, lab, "pending")
    first = emit_mission_fee_invoice(db, fee)
    second = emit_mission_fee_invoice(db, fee)
    assert first.id == second.id


def test_mark_paid_updates_fee(db, lab):
    fee = make_fee(db, lab, "pending")
    invoice = emit_mission_fee_invoice(db, fee)

    paid = mark_invoice_paid(db, invoice)

    assert paid.status == "paid"
    assert paid.paid_at is not None
    db.refresh(fee)
    assert fee.status == "paid"


def test_mark_paid_ignores_waived(db, lab):
    invoice = emit_mission_fee_invoice(db, make_fee(db, lab, "waived"))
    assert mark_invoice_paid(db, invoice).status == "waived"


def test_subscription_invoice_with_discount(db, lab):
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    end = datetime(2026, 2, 1, tzinfo=timezone.utc)
    invoice = create_subscription_invoice(db, lab.id, 1, "pro", 149, start, end, discount=20)

    assert invoice.total == 129
    assert invoice.description.startswith("Pro subscription")
    assert len(invoice.line_items) == 2


def test_lookups_are_scoped_to_owner(db, lab):
    other = User(full_name="Other", email="other@example.com", user_type="laboratory")
    db.add(other)
    db.commit()
    invoice = emit_mission_fee_invoice(db, make_fee(db, lab, "pending"))

    assert get_invoice(db, lab.id, invoice.id).id == invoice.id
    with pytest.raises(NotFoundError):
        get_invoice(db, other.id, invoice.id)
    assert get_invoice_by_number(db, invoice.invoice_number).id == invoice.id
    with pytest.raises(NotFoundError):
        get_invoice_by_number(db, "INV-000000-NOPE")
    assert [i.id for i in get_user_invoices(db, lab.id)] == [invoice.id]
    assert get_user_invoices(db, other.id) == []
