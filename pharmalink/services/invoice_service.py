"""
Invoice emitter.

Turns mission fees and subscription upgrades into user-facing invoices.
Payment capture is external; mark_invoice_paid records its outcome.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from pharmalink.core import config
from pharmalink.core.errors import NotFoundError
from pharmalink.core.tier_limits import TIER_LABELS
from pharmalink.db.models.invoice import Invoice
from pharmalink.db.models.mission_fee import MissionFee, FEE_PAID, FEE_WAIVED

logger = logging.getLogger(__name__)

INVOICE_PENDING = "pending"
INVOICE_PAID = "paid"
INVOICE_WAIVED = "waived"

KIND_MISSION_FEE = "mission_fee"
KIND_SUBSCRIPTION = "subscription"


def generate_invoice_number(now: Optional[datetime] = None) -> str:
    """INV-YYYYMM-XXXXXXXX"""
    now = now or datetime.now(timezone.utc)
    return f"INV-{now:%Y%m}-{uuid.uuid4().hex[:8].upper()}"


def _line_item(description: str, unit_price: int, quantity: int = 1) -> Dict:
    return {
        "description": description,
        "quantity": quantity,
        "unit_price": unit_price,
        "amount": unit_price * quantity,
    }


def get_invoice_for_fee(db: Session, mission_fee_id: int) -> Optional[Invoice]:
    return db.query(Invoice).filter(Invoice.mission_fee_id == mission_fee_id).first()


def emit_mission_fee_invoice(db: Session, fee: MissionFee, commit: bool = True) -> Invoice:
    """
    Record the invoice for a mission fee (one per fee).

    A waived fee still gets an invoice, with an offsetting line bringing the
    total to zero, so the user sees what the subscription covered.
    """
    existing = get_invoice_for_fee(db, fee.id)
    if existing:
        return existing

    line_items = [_line_item(f"Mission confirmation fee ({fee.days} days)", fee.amount)]
    discount = 0
    if fee.status == FEE_WAIVED:
        discount = fee.amount
        line_items.append(_line_item("Included in subscription", -fee.amount))

    subtotal = fee.amount
    tax = 0  # VAT handled by the payment processor
    invoice = Invoice(
        user_id=fee.payer_id,
        invoice_number=generate_invoice_number(),
        kind=KIND_MISSION_FEE,
        status=INVOICE_WAIVED if fee.status == FEE_WAIVED else INVOICE_PENDING,
        currency=config.FEE_CURRENCY,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=max(0, subtotal - discount + tax),
        description=f"Mission #{fee.mission_id} confirmation",
        line_items=line_items,
        mission_fee_id=fee.id,
    )
    db.add(invoice)
    db.flush()

    if commit:
        db.commit()
        db.refresh(invoice)

    logger.info(
        f"Invoice emitted: {invoice.invoice_number}, user_id={fee.payer_id}, "
        f"mission_id={fee.mission_id}, total={invoice.total}, status={invoice.status}"
    )
    return invoice


def create_subscription_invoice(
    db: Session,
    user_id: int,
    subscription_id: int,
    tier: str,
    price: int,
    period_start: datetime,
    period_end: datetime,
    discount: int = 0,
    commit: bool = True,
) -> Invoice:
    label = TIER_LABELS.get(tier, tier)
    line_items = [_line_item(f"{label} subscription", price)]
    if discount > 0:
        line_items.append(_line_item("Discount", -discount))

    invoice = Invoice(
        user_id=user_id,
        invoice_number=generate_invoice_number(),
        kind=KIND_SUBSCRIPTION,
        status=INVOICE_PENDING,
        currency=config.FEE_CURRENCY,
        subtotal=price,
        discount=discount,
        tax=0,
        total=max(0, price - discount),
        description=f"{label} subscription - {period_start:%d/%m/%Y} to {period_end:%d/%m/%Y}",
        line_items=line_items,
        subscription_id=subscription_id,
        period_start=period_start,
        period_end=period_end,
    )
    db.add(invoice)
    db.flush()

    if commit:
        db.commit()
        db.refresh(invoice)

    logger.info(f"Subscription invoice created: {invoice.invoice_number}, user_id={user_id}, tier={tier}")
    return invoice


def get_user_invoices(db: Session, user_id: int, limit: int = 50) -> List[Invoice]:
    return (
        db.query(Invoice)
        .filter(Invoice.user_id == user_id)
        .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        .limit(limit)
        .all()
    )


def get_invoice(db: Session, user_id: int, invoice_id: int) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.user_id == user_id).first()
    if not invoice:
        raise NotFoundError("Invoice not found", {"invoice_id": invoice_id})
    return invoice


def get_invoice_by_number(db: Session, invoice_number: str) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()
    if not invoice:
        raise NotFoundError("Invoice not found", {"invoice_number": invoice_number})
    return invoice


def mark_invoice_paid(db: Session, invoice: Invoice, now: Optional[datetime] = None, commit: bool = True) -> Invoice:
    """Record a successful external payment. Waived and paid invoices are left as is."""
    if invoice.status != INVOICE_PENDING:
        logger.warning(f"Invoice {invoice.invoice_number} not pending (status={invoice.status}), not marked paid")
        return invoice

    paid_at = now or datetime.now(timezone.utc)
    invoice.status = INVOICE_PAID
    invoice.paid_at = paid_at

    if invoice.mission_fee_id is not None:
        fee = db.query(MissionFee).filter(MissionFee.id == invoice.mission_fee_id).first()
        if fee and fee.status != FEE_PAID:
            fee.status = FEE_PAID
            fee.paid_at = paid_at

    if commit:
        db.commit()
        db.refresh(invoice)

    logger.info(f"Invoice paid: {invoice.invoice_number}, user_id={invoice.user_id}")
    return invoice
