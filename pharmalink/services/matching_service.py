"""
Swipe orchestration.

One swipe request runs as a single transaction:

    validate -> consume super-like budget -> record swipe -> reconcile match -> commit

and only then notifies the other party. A denied super-like writes nothing.
A dislike withdraws the actor's like from a still-pending match row instead
of reconciling.
Also serves the swipe decks (listings the actor has not swiped yet).
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmalink.core.errors import NotFoundError
from pharmalink.db.models.listing import InternshipOffer, JobOffer, Mission
from pharmalink.db.models.swipe import Swipe, SwipeAction, TargetType
from pharmalink.db.transaction import storage_guard
from pharmalink.services.match_service import (
    AnyMatch,
    PEER_TARGETS,
    reconcile_pairing,
    resolve_pairing,
    validate_swipe_request,
    withdraw_like,
)
from pharmalink.services.notification_service import (
    NOTIFICATION_NEW_MATCH,
    NOTIFICATION_SUPER_LIKE,
    Notifier,
)
from pharmalink.services.quota_service import QuotaCheck, consume_super_like
from pharmalink.services.subscription_service import get_user
from pharmalink.services.swipe_service import parse_action, parse_target_type, record_swipe

logger = logging.getLogger(__name__)


@dataclass
class SwipeResult:
    allowed: bool
    swipe: Optional[Swipe] = None
    match: Optional[AnyMatch] = None
    newly_matched: bool = False
    quota: Optional[QuotaCheck] = None
    message: Optional[str] = None


def swipe(
    db: Session,
    actor_id: int,
    target_type: Union[str, TargetType],
    target_id: int,
    action: Union[str, SwipeAction],
    context_id: Optional[int] = None,
    context_type: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    today: Optional[date] = None,
) -> SwipeResult:
    """
    Record a swipe and reconcile the match it may complete.

    context_id is the offer (for a swipe on a candidate) or mission (for a
    swipe on an animator) the swipe is made for; context_type picks
    job_offer or internship_offer for candidates.

    Returns:
        SwipeResult. allowed=False when the daily super-like budget is spent;
        nothing is recorded in that case.

    Raises:
        ValidationError: rejected before any write
        NotFoundError: actor does not exist
        StorageError: persistence failure; nothing was written
    """
    actor = get_user(db, actor_id)
    target_type = parse_target_type(target_type)
    action = parse_action(action)
    is_super_like = action == SwipeAction.SUPERLIKE

    validate_swipe_request(
        actor_id,
        actor.user_type,
        target_type,
        target_id,
        context_id,
        require_context=action.is_positive,
    )

    # A dislike on a person without its listing has no pairing to withdraw from
    pairing = None
    if action.is_positive or target_type not in PEER_TARGETS or context_id is not None:
        try:
            pairing = resolve_pairing(db, actor_id, target_type, target_id, context_id, context_type)
        except NotFoundError as e:
            logger.warning(f"Swipe without possible match: actor_id={actor_id}, {target_type.value}:{target_id}: {e}")

    quota = None
    match_result = None
    with storage_guard(db, "Recording swipe"):
        if is_super_like:
            quota = consume_super_like(db, actor_id, today=today, commit=False)
            if not quota.allowed:
                db.rollback()
                return SwipeResult(
                    allowed=False,
                    quota=quota,
                    message="Daily super like limit reached. Upgrade your plan for more super likes.",
                )

        recorded = record_swipe(db, actor_id, target_type, target_id, action, commit=False)
        if pairing is not None and action.is_positive:
            match_result = reconcile_pairing(db, pairing, super_like=is_super_like, commit=False)
        elif pairing is not None:
            withdraw_like(db, pairing, commit=False)
        db.commit()

    result = SwipeResult(allowed=True, swipe=recorded, quota=quota)
    if match_result is not None:
        result.match = match_result.match
        result.newly_matched = match_result.newly_matched

    if notifier is not None:
        _notify(notifier, actor, target_type, target_id, pairing, result)

    return result


def _notify(notifier: Notifier, actor, target_type: TargetType, target_id: int, pairing, result: SwipeResult):
    if pairing is not None:
        recipient_id = pairing.opposite_party_id
    elif target_type in PEER_TARGETS:
        recipient_id = target_id
    else:
        recipient_id = None

    if result.swipe.is_super_like and recipient_id is not None:
        notifier.notify(
            recipient_id,
            NOTIFICATION_SUPER_LIKE,
            "You received a super like!",
            f"{actor.full_name} is very interested in you.",
            {"actor_id": actor.id, "target_type": target_type.value, "target_id": target_id},
        )

    if result.newly_matched:
        data = {
            "match_id": result.match.id,
            "match_table": pairing.model.__tablename__,
            "is_super_like": result.match.is_super_like,
        }
        for user_id in (pairing.actor_id, pairing.opposite_party_id):
            notifier.notify(user_id, NOTIFICATION_NEW_MATCH, "It's a match!", "You can now start a conversation.", data)


# ==========================================
# Swipe decks
# ==========================================

def _swiped_ids(actor_id: int, target_type: TargetType):
    return select(Swipe.target_id).where(Swipe.user_id == actor_id, Swipe.target_type == target_type.value)


def get_swipeable_job_offers(
    db: Session,
    user_id: int,
    region: Optional[str] = None,
    contract_type: Optional[str] = None,
    limit: int = 20,
) -> List[JobOffer]:
    """Active job offers the user has not swiped yet, newest first."""
    query = db.query(JobOffer).filter(
        JobOffer.status == "active",
        JobOffer.pharmacy_owner_id != user_id,
        JobOffer.id.notin_(_swiped_ids(user_id, TargetType.JOB_OFFER)),
    )
    if region:
        query = query.filter(JobOffer.region == region)
    if contract_type:
        query = query.filter(JobOffer.contract_type == contract_type)
    return query.order_by(JobOffer.created_at.desc(), JobOffer.id.desc()).limit(limit).all()


def get_swipeable_internships(db: Session, user_id: int, region: Optional[str] = None, limit: int = 20) -> List[InternshipOffer]:
    query = db.query(InternshipOffer).filter(
        InternshipOffer.status == "active",
        InternshipOffer.pharmacy_owner_id != user_id,
        InternshipOffer.id.notin_(_swiped_ids(user_id, TargetType.INTERNSHIP_OFFER)),
    )
    if region:
        query = query.filter(InternshipOffer.region == region)
    return query.order_by(InternshipOffer.created_at.desc(), InternshipOffer.id.desc()).limit(limit).all()


def get_swipeable_missions(db: Session, animator_id: int, region: Optional[str] = None, limit: int = 50) -> List[Mission]:
    """Open, unassigned missions the animator has not swiped yet."""
    query = db.query(Mission).filter(
        Mission.status == "open",
        Mission.animator_id.is_(None),
        Mission.id.notin_(_swiped_ids(animator_id, TargetType.MISSION)),
    )
    if region:
        query = query.filter(Mission.region == region)
    return query.order_by(Mission.created_at.desc(), Mission.id.desc()).limit(limit).all()
