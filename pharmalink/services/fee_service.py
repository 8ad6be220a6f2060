"""
Mission confirmation fees.

Confirming a matched animator for a mission costs a flat fee by duration
bracket, unless the payer's subscription still includes a contact
(mise en relation) this month, in which case the fee is waived and the
contacts counter is consumed instead.
"""
import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.db.models.invoice import Invoice
from pharmalink.db.models.match import AnimatorMatch, MATCH_MATCHED
from pharmalink.db.models.mission_fee import MissionFee, FEE_PAID, FEE_PENDING, FEE_WAIVED
from pharmalink.db.transaction import storage_guard
from pharmalink.db.upsert import insert_for
from pharmalink.services import invoice_service
from pharmalink.services.listing_service import get_mission
from pharmalink.services.notification_service import (
    NOTIFICATION_CONTACTS_LIMIT,
    NOTIFICATION_FEE_PENDING,
    Notifier,
)
from pharmalink.services.quota_service import check_limit, resolve_limit
from pharmalink.services.subscription_service import get_tier_for_user
from pharmalink.services.usage_service import increment_usage, increment_usage_within_limit

logger = logging.getLogger(__name__)

CONTACTS_LIMIT_KEY = "contacts"
CONTACTS_USAGE_FIELD = "missions_confirmed"

MISSION_CONFIRMED = "confirmed"

# (max days inclusive, amount); the last bracket is open-ended
FEE_BRACKETS = (
    (2, 10),
    (5, 15),
    (None, 20),
)


@dataclass(frozen=True)
class FeeStatus:
    amount: int
    days: int
    included_in_subscription: bool
    tier: str
    contacts_remaining: Optional[int]  # None when unlimited
    contacts_max: Optional[int]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class Confirmation:
    fee: MissionFee
    invoice: Optional[Invoice]
    created: bool  # False when the mission had already been confirmed


def calculate_fee(duration_days: int) -> int:
    """
    Fee for a mission lasting ``duration_days`` (endpoints counted).

    1-2 days -> 10, 3-5 days -> 15, 6+ days -> 20.
    """
    if duration_days < 1:
        raise ValidationError("Mission duration must be at least one day", {"days": duration_days})
    for max_days, amount in FEE_BRACKETS:
        if max_days is None or duration_days <= max_days:
            return amount


def mission_duration_days(start_date: date, end_date: date) -> int:
    """Inclusive day count: a mission starting and ending the same day lasts 1 day."""
    if end_date < start_date:
        raise ValidationError(
            "Mission ends before it starts",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    return (end_date - start_date).days + 1


def check_fee_status(db: Session, payer_id: int, mission_id: int) -> FeeStatus:
    """
    Fee amount and whether the payer's subscription covers it right now.

    Read-only. The decision is frozen into the MissionFee row when the fee is
    created; nothing here is persisted.
    """
    mission = get_mission(db, mission_id)
    days = mission_duration_days(mission.start_date, mission.end_date)
    contacts = check_limit(db, payer_id, CONTACTS_LIMIT_KEY)
    included = contacts.allowed and (contacts.max is None or contacts.max > 0)

    return FeeStatus(
        amount=calculate_fee(days),
        days=days,
        included_in_subscription=included,
        tier=get_tier_for_user(db, payer_id),
        contacts_remaining=contacts.remaining,
        contacts_max=contacts.max,
    )


def get_fee(db: Session, mission_id: int) -> Optional[MissionFee]:
    return db.execute(
        select(MissionFee)
        .where(MissionFee.mission_id == mission_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def insert_fee(
    db: Session,
    mission_id: int,
    payer_id: int,
    amount: int,
    included_in_subscription: bool,
    days: Optional[int] = None,
    tier: Optional[str] = None,
) -> Tuple[MissionFee, bool]:
    """
    Insert the mission's fee if it has none yet. Does not commit.

    Returns (fee, created). Only the call that created the row consumes a
    contact, so a retried confirmation never counts twice. If another
    confirmation took the last contact in the meantime, the fee is stored
    as pending instead of waived.
    """
    status = FEE_WAIVED if included_in_subscription else FEE_PENDING
    stmt = insert_for(db, MissionFee.__table__).values(
        mission_id=mission_id,
        payer_id=payer_id,
        amount=amount,
        days=days,
        tier=tier,
        included_in_subscription=included_in_subscription,
        status=status,
        created_at=datetime.now(timezone.utc),
    ).on_conflict_do_nothing(index_elements=["mission_id"])
    created = db.execute(stmt).rowcount == 1

    if created and included_in_subscription:
        limit = resolve_limit(db, payer_id, CONTACTS_LIMIT_KEY)
        if limit is None:
            increment_usage(db, payer_id, CONTACTS_USAGE_FIELD, commit=False)
        elif not increment_usage_within_limit(db, payer_id, CONTACTS_USAGE_FIELD, limit, commit=False):
            logger.warning(
                f"Contacts quota exhausted during confirmation: payer_id={payer_id}, "
                f"mission_id={mission_id}; fee billed instead of waived"
            )
            db.execute(
                update(MissionFee.__table__)
                .where(MissionFee.__table__.c.mission_id == mission_id)
                .values(status=FEE_PENDING, included_in_subscription=False)
            )

    return get_fee(db, mission_id), created


def create_fee(
    db: Session,
    mission_id: int,
    payer_id: int,
    amount: int,
    included_in_subscription: bool,
    days: Optional[int] = None,
    tier: Optional[str] = None,
) -> MissionFee:
    """
    Create the fee for a mission, once.

    Fee row and contacts counter are written in one transaction. A second
    call for the same mission returns the existing fee unchanged.

    Raises:
        StorageError: persistence failure; nothing was written
    """
    with storage_guard(db, "Creating mission fee"):
        fee, created = insert_fee(db, mission_id, payer_id, amount, included_in_subscription, days, tier)
        db.commit()

    if created:
        logger.info(
            f"Mission fee created: mission_id={mission_id}, payer_id={payer_id}, "
            f"amount={fee.amount}, status={fee.status}"
        )
    return get_fee(db, mission_id)


def _find_matched_animator(db: Session, mission_id: int, animator_id: Optional[int]) -> int:
    query = db.query(AnimatorMatch).filter(
        AnimatorMatch.mission_id == mission_id,
        AnimatorMatch.status == MATCH_MATCHED,
    )
    if animator_id is not None:
        query = query.filter(AnimatorMatch.animator_id == animator_id)
    matches = query.all()

    if not matches:
        raise ValidationError(
            "No matched animator for this mission",
            {"mission_id": mission_id, "animator_id": animator_id},
        )
    if len(matches) > 1:
        raise ValidationError(
            "Several animators matched this mission, choose one",
            {"mission_id": mission_id, "animator_ids": [m.animator_id for m in matches]},
        )
    return matches[0].animator_id


def confirm_mission(
    db: Session,
    payer_id: int,
    mission_id: int,
    animator_id: Optional[int] = None,
    notifier: Optional[Notifier] = None,
) -> Confirmation:
    """
    Confirm a matched animator for a mission and bill (or waive) the fee.

    Steps, in one transaction:
    1. Check the fee status for the payer.
    2. Insert the fee (consuming a contact when waived).
    3. Assign the animator to the mission.
    4. Emit the invoice.

    Confirming an already confirmed mission returns the existing fee and
    invoice without writing anything.

    Raises:
        NotFoundError: mission does not exist
        ValidationError: payer does not own the mission, or no matched animator
        StorageError: persistence failure; nothing was written
    """
    mission = get_mission(db, mission_id)
    if mission.client_id != payer_id:
        raise ValidationError("Only the mission owner can confirm it", {"mission_id": mission_id})

    existing = get_fee(db, mission_id)
    if existing:
        logger.info(f"Mission already confirmed: mission_id={mission_id}, fee status={existing.status}")
        return Confirmation(
            fee=existing,
            invoice=invoice_service.get_invoice_for_fee(db, existing.id),
            created=False,
        )

    animator_id = _find_matched_animator(db, mission_id, animator_id or mission.animator_id)
    status = check_fee_status(db, payer_id, mission_id)

    with storage_guard(db, "Confirming mission"):
        fee, created = insert_fee(
            db,
            mission_id=mission_id,
            payer_id=payer_id,
            amount=status.amount,
            included_in_subscription=status.included_in_subscription,
            days=status.days,
            tier=status.tier,
        )
        invoice = None
        if created:
            mission.animator_id = animator_id
            mission.status = MISSION_CONFIRMED
            invoice = invoice_service.emit_mission_fee_invoice(db, fee, commit=False)
        db.commit()

    fee = get_fee(db, mission_id)
    if invoice is None:
        # Lost the race to a concurrent confirmation
        return Confirmation(fee=fee, invoice=invoice_service.get_invoice_for_fee(db, fee.id), created=False)

    db.refresh(invoice)
    logger.info(
        f"Mission confirmed: mission_id={mission_id}, animator_id={animator_id}, "
        f"fee={fee.amount}, status={fee.status}, invoice={invoice.invoice_number}"
    )

    if notifier is not None:
        _notify_after_confirmation(db, notifier, payer_id, mission_id, fee)

    return Confirmation(fee=fee, invoice=invoice, created=True)


def _notify_after_confirmation(db: Session, notifier: Notifier, payer_id: int, mission_id: int, fee: MissionFee):
    if fee.status == FEE_PENDING:
        notifier.notify(
            payer_id,
            NOTIFICATION_FEE_PENDING,
            "Confirmation fee due",
            f"Your mission confirmation fee of {fee.amount} is awaiting payment.",
            {"mission_id": mission_id, "mission_fee_id": fee.id, "amount": fee.amount},
        )
        return

    contacts = check_limit(db, payer_id, CONTACTS_LIMIT_KEY)
    if not contacts.allowed:
        notifier.notify(
            payer_id,
            NOTIFICATION_CONTACTS_LIMIT,
            "Included confirmations used up",
            "You have used all confirmations included in your plan this month. "
            "Upgrade to keep confirming missions for free.",
            {"mission_id": mission_id, "used": contacts.used, "max": contacts.max},
        )


def mark_fee_paid(db: Session, mission_id: int, now: Optional[datetime] = None) -> MissionFee:
    """
    Record the external payment of a pending fee and its invoice.

    Waived or already paid fees are returned unchanged.
    """
    fee = get_fee(db, mission_id)
    if not fee:
        raise NotFoundError("Mission fee not found", {"mission_id": mission_id})
    if fee.status != FEE_PENDING:
        logger.info(f"Mission fee not pending: mission_id={mission_id}, status={fee.status}")
        return fee

    paid_at = now or datetime.now(timezone.utc)
    with storage_guard(db, "Marking mission fee paid"):
        invoice = invoice_service.get_invoice_for_fee(db, fee.id)
        if invoice is not None:
            invoice_service.mark_invoice_paid(db, invoice, now=paid_at, commit=False)
        fee.status = FEE_PAID
        fee.paid_at = paid_at
        db.commit()

    logger.info(f"Mission fee paid: mission_id={mission_id}, amount={fee.amount}")
    return get_fee(db, mission_id)
