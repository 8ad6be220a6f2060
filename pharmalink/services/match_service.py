"""
Match reconciler.

Turns positive swipes into Match / AnimatorMatch rows. Each pairing has one
row keyed by a deterministic conflict key:

- offer pairing: (offer_type, offer_id, candidate_id)
- mission pairing: (mission_id, animator_id)

The liked flags are OR-merged by an upsert, then a conditional UPDATE flips
status pending -> matched only where both flags are set and the row is still
pending. That UPDATE matches at most once per pairing, whichever order the
two likes arrive in, so matched_at is stamped exactly once and only the call
that performed the transition reports newly_matched.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import ClassVar, Dict, List, Optional, Tuple, Type, Union

from sqlalchemy import select, update, or_
from sqlalchemy.orm import Session

from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.db.base import Base
from pharmalink.db.models.listing import Mission
from pharmalink.db.models.match import AnimatorMatch, Match, MATCH_MATCHED, MATCH_PENDING
from pharmalink.db.models.swipe import TargetType
from pharmalink.db.upsert import insert_for
from pharmalink.services.listing_service import get_mission, get_offer
from pharmalink.services.swipe_service import find_positive_swipe, parse_target_type

logger = logging.getLogger(__name__)

CANDIDATE_ROLES = frozenset({"pharmacist", "technician", "advisor", "student"})
EMPLOYER_ROLES = frozenset({"pharmacy_owner"})
ANIMATOR_ROLES = frozenset({"animator"})
MISSION_CLIENT_ROLES = frozenset({"laboratory", "pharmacy_owner"})

# Which user types may swipe on which target type
ALLOWED_ROLES: Dict[TargetType, frozenset] = {
    TargetType.JOB_OFFER: CANDIDATE_ROLES,
    TargetType.INTERNSHIP_OFFER: CANDIDATE_ROLES,
    TargetType.CANDIDATE: EMPLOYER_ROLES,
    TargetType.MISSION: ANIMATOR_ROLES,
    TargetType.ANIMATOR: MISSION_CLIENT_ROLES,
}

# Swiping on a person is always done on behalf of one listing
CONTEXT_REQUIRED = {
    TargetType.CANDIDATE: "offer",
    TargetType.ANIMATOR: "mission",
}

# Peer targets: the target id is a user id
PEER_TARGETS = frozenset({TargetType.CANDIDATE, TargetType.ANIMATOR})


@dataclass(frozen=True)
class OfferPairing:
    """Candidate <-> job/internship offer, owned by an employer."""
    model: ClassVar[Type[Base]] = Match
    conflict_keys: ClassVar[Tuple[str, ...]] = ("offer_type", "offer_id", "candidate_id")

    offer_type: str
    offer_id: int
    candidate_id: int
    employer_id: int
    actor_side: str  # candidate | employer

    @property
    def actor_id(self) -> int:
        return self.candidate_id if self.actor_side == "candidate" else self.employer_id

    @property
    def opposite_party_id(self) -> int:
        return self.employer_id if self.actor_side == "candidate" else self.candidate_id

    @property
    def actor_flag(self) -> str:
        return "candidate_liked" if self.actor_side == "candidate" else "employer_liked"

    @property
    def opposite_flag(self) -> str:
        return "employer_liked" if self.actor_side == "candidate" else "candidate_liked"

    def key_values(self) -> Dict:
        return {"offer_type": self.offer_type, "offer_id": self.offer_id, "candidate_id": self.candidate_id}

    def fixed_values(self) -> Dict:
        return {"employer_id": self.employer_id}

    def opposite_swipe(self) -> Tuple[int, str, int]:
        """(actor, target_type, target_id) of the reciprocal swipe to look for."""
        if self.actor_side == "candidate":
            return self.employer_id, TargetType.CANDIDATE.value, self.candidate_id
        return self.candidate_id, self.offer_type, self.offer_id


@dataclass(frozen=True)
class MissionPairing:
    """Animator <-> animation mission, owned by a laboratory."""
    model: ClassVar[Type[Base]] = AnimatorMatch
    conflict_keys: ClassVar[Tuple[str, ...]] = ("mission_id", "animator_id")

    mission_id: int
    animator_id: int
    laboratory_id: int
    actor_side: str  # animator | laboratory

    @property
    def actor_id(self) -> int:
        return self.animator_id if self.actor_side == "animator" else self.laboratory_id

    @property
    def opposite_party_id(self) -> int:
        return self.laboratory_id if self.actor_side == "animator" else self.animator_id

    @property
    def actor_flag(self) -> str:
        return "animator_liked" if self.actor_side == "animator" else "laboratory_liked"

    @property
    def opposite_flag(self) -> str:
        return "laboratory_liked" if self.actor_side == "animator" else "animator_liked"

    def key_values(self) -> Dict:
        return {"mission_id": self.mission_id, "animator_id": self.animator_id}

    def fixed_values(self) -> Dict:
        return {"laboratory_id": self.laboratory_id}

    def opposite_swipe(self) -> Tuple[int, str, int]:
        if self.actor_side == "animator":
            return self.laboratory_id, TargetType.ANIMATOR.value, self.animator_id
        return self.animator_id, TargetType.MISSION.value, self.mission_id


Pairing = Union[OfferPairing, MissionPairing]
AnyMatch = Union[Match, AnimatorMatch]


@dataclass(frozen=True)
class MatchResult:
    match: AnyMatch
    newly_matched: bool  # True only for the call that moved the pairing to matched

    @property
    def is_matched(self) -> bool:
        return self.match.status == MATCH_MATCHED


def validate_swipe_request(
    actor_id: int,
    actor_role: str,
    target_type: TargetType,
    target_id: int,
    context_id: Optional[int] = None,
    require_context: bool = True,
) -> None:
    """
    Reject a swipe before anything is written.

    Raises:
        ValidationError: self swipe, role not allowed for the target type, or
            missing offer/mission context for a swipe on a person
            (only checked when require_context, i.e. for likes)
    """
    if target_type in PEER_TARGETS and actor_id == target_id:
        raise ValidationError("You cannot swipe on yourself", {"target_type": target_type.value})

    allowed = ALLOWED_ROLES.get(target_type, frozenset())
    if actor_role not in allowed:
        raise ValidationError(
            f"A {actor_role} cannot swipe on {target_type.value}",
            {"actor_role": actor_role, "target_type": target_type.value},
        )

    if require_context and target_type in CONTEXT_REQUIRED and context_id is None:
        raise ValidationError(
            f"A {CONTEXT_REQUIRED[target_type]} id is required to swipe on {target_type.value}",
            {"target_type": target_type.value},
        )


def _resolve_offer_target(db, actor_id, target_type, target_id, context_id, context_type):
    offer = get_offer(db, target_type.value, target_id)
    return OfferPairing(
        offer_type=target_type.value,
        offer_id=offer.id,
        candidate_id=actor_id,
        employer_id=offer.pharmacy_owner_id,
        actor_side="candidate",
    )


def _resolve_candidate_target(db, actor_id, target_type, target_id, context_id, context_type):
    offer_type = context_type or TargetType.JOB_OFFER.value
    offer = get_offer(db, offer_type, context_id)
    if offer.pharmacy_owner_id != actor_id:
        raise ValidationError("Offer does not belong to this employer", {"offer_id": context_id})
    return OfferPairing(
        offer_type=offer_type,
        offer_id=offer.id,
        candidate_id=target_id,
        employer_id=actor_id,
        actor_side="employer",
    )


def _resolve_mission_target(db, actor_id, target_type, target_id, context_id, context_type):
    mission = get_mission(db, target_id)
    return MissionPairing(
        mission_id=mission.id,
        animator_id=actor_id,
        laboratory_id=mission.client_id,
        actor_side="animator",
    )


def _resolve_animator_target(db, actor_id, target_type, target_id, context_id, context_type):
    mission = get_mission(db, context_id)
    if mission.client_id != actor_id:
        raise ValidationError("Mission does not belong to this client", {"mission_id": context_id})
    return MissionPairing(
        mission_id=mission.id,
        animator_id=target_id,
        laboratory_id=actor_id,
        actor_side="laboratory",
    )


PAIRING_RESOLVERS = {
    TargetType.JOB_OFFER: _resolve_offer_target,
    TargetType.INTERNSHIP_OFFER: _resolve_offer_target,
    TargetType.CANDIDATE: _resolve_candidate_target,
    TargetType.MISSION: _resolve_mission_target,
    TargetType.ANIMATOR: _resolve_animator_target,
}


def resolve_pairing(
    db: Session,
    actor_id: int,
    target_type: Union[str, TargetType],
    target_id: int,
    context_id: Optional[int] = None,
    context_type: Optional[str] = None,
) -> Pairing:
    """
    Work out who is on the other side of a swipe.

    Raises:
        NotFoundError: the offer or mission no longer exists
        ValidationError: the context listing belongs to someone else
    """
    target_type = parse_target_type(target_type)
    resolver = PAIRING_RESOLVERS.get(target_type)
    if resolver is None:
        raise ValidationError(f"{target_type.value} swipes do not form matches", {"target_type": target_type.value})
    return resolver(db, actor_id, target_type, target_id, context_id, context_type)


def _select_match(db: Session, pairing: Pairing) -> Optional[AnyMatch]:
    model = pairing.model
    filters = [getattr(model, key) == value for key, value in pairing.key_values().items()]
    return db.execute(
        select(model).where(*filters).execution_options(populate_existing=True)
    ).scalar_one_or_none()


def reconcile_pairing(
    db: Session,
    pairing: Pairing,
    super_like: bool = False,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> MatchResult:
    """
    Record the actor's like on the pairing's match row and promote it if mutual.

    Steps:
    1. Look for the opposite side's like/superlike.
    2. Upsert the row: the actor's flag becomes true, the opposite flag is
       OR-merged, is_super_like is OR-merged.
    3. Conditionally promote pending -> matched where both flags are true.
    """
    now = now or datetime.now(timezone.utc)
    opposite_swipe = find_positive_swipe(db, *pairing.opposite_swipe())
    opposite_liked = opposite_swipe is not None
    is_super_like = super_like or bool(opposite_swipe and opposite_swipe.is_super_like)

    table = pairing.model.__table__
    stmt = insert_for(db, table).values(
        **pairing.key_values(),
        **pairing.fixed_values(),
        **{pairing.actor_flag: True, pairing.opposite_flag: opposite_liked},
        is_super_like=is_super_like,
        status=MATCH_PENDING,
        matched_at=None,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=list(pairing.conflict_keys),
        set_={
            pairing.actor_flag: True,
            pairing.opposite_flag: or_(table.c[pairing.opposite_flag], stmt.excluded[pairing.opposite_flag]),
            "is_super_like": or_(table.c.is_super_like, stmt.excluded.is_super_like),
            "updated_at": now,
        },
    )
    db.execute(stmt)

    key_filters = [table.c[key] == value for key, value in pairing.key_values().items()]
    promoted = db.execute(
        update(table)
        .where(
            *key_filters,
            table.c.status == MATCH_PENDING,
            table.c[pairing.actor_flag].is_(True),
            table.c[pairing.opposite_flag].is_(True),
        )
        .values(status=MATCH_MATCHED, matched_at=now, updated_at=now)
    ).rowcount == 1

    if commit:
        db.commit()

    match = _select_match(db, pairing)
    if promoted:
        logger.info(
            f"Match confirmed: {pairing.model.__tablename__} id={match.id}, "
            f"actor_id={pairing.actor_id}, opposite_id={pairing.opposite_party_id}"
        )
    else:
        logger.debug(f"Match row updated: {pairing.model.__tablename__} id={match.id}, status={match.status}")
    return MatchResult(match=match, newly_matched=promoted)


def withdraw_like(
    db: Session,
    pairing: Pairing,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> bool:
    """
    Clear the actor's flag after a dislike so a later reciprocal like cannot
    complete the pairing on a stale like. Matched rows are left untouched.

    Returns True when a pending row was changed.
    """
    now = now or datetime.now(timezone.utc)
    table = pairing.model.__table__
    key_filters = [table.c[key] == value for key, value in pairing.key_values().items()]
    withdrawn = db.execute(
        update(table)
        .where(
            *key_filters,
            table.c.status == MATCH_PENDING,
            table.c[pairing.actor_flag].is_(True),
        )
        .values(**{pairing.actor_flag: False}, updated_at=now)
    ).rowcount == 1

    if commit:
        db.commit()

    if withdrawn:
        logger.info(
            f"Like withdrawn: {pairing.model.__tablename__}, actor_id={pairing.actor_id}, "
            f"opposite_id={pairing.opposite_party_id}"
        )
    return withdrawn


def on_like(
    db: Session,
    actor_id: int,
    actor_role: str,
    target_type: Union[str, TargetType],
    target_id: int,
    context_id: Optional[int] = None,
    context_type: Optional[str] = None,
    super_like: bool = False,
    commit: bool = True,
) -> Optional[MatchResult]:
    """
    Reconcile a like/superlike into a match.

    Returns None when no match is possible because the referenced offer or
    mission no longer exists; the swipe itself stays valid.
    """
    target_type = parse_target_type(target_type)
    validate_swipe_request(actor_id, actor_role, target_type, target_id, context_id)
    try:
        pairing = resolve_pairing(db, actor_id, target_type, target_id, context_id, context_type)
    except NotFoundError as e:
        logger.warning(f"No match possible for actor_id={actor_id}, {target_type.value}:{target_id}: {e}")
        return None
    return reconcile_pairing(db, pairing, super_like=super_like, commit=commit)


# ==========================================
# Match listings
# ==========================================

def get_candidate_matches(db: Session, candidate_id: int, status: str = MATCH_MATCHED) -> List[Match]:
    return (
        db.query(Match)
        .filter(Match.candidate_id == candidate_id, Match.status == status)
        .order_by(Match.matched_at.desc(), Match.id.desc())
        .all()
    )


def get_employer_matches(db: Session, employer_id: int, status: str = MATCH_MATCHED) -> List[Match]:
    return (
        db.query(Match)
        .filter(Match.employer_id == employer_id, Match.status == status)
        .order_by(Match.matched_at.desc(), Match.id.desc())
        .all()
    )


def get_animator_matches(db: Session, animator_id: int, status: str = MATCH_MATCHED) -> List[AnimatorMatch]:
    return (
        db.query(AnimatorMatch)
        .filter(AnimatorMatch.animator_id == animator_id, AnimatorMatch.status == status)
        .order_by(AnimatorMatch.matched_at.desc(), AnimatorMatch.id.desc())
        .all()
    )


def get_laboratory_matches(db: Session, laboratory_id: int, status: str = MATCH_MATCHED) -> List[AnimatorMatch]:
    return (
        db.query(AnimatorMatch)
        .filter(AnimatorMatch.laboratory_id == laboratory_id, AnimatorMatch.status == status)
        .order_by(AnimatorMatch.matched_at.desc(), AnimatorMatch.id.desc())
        .all()
    )


def get_matches_for_user(db: Session, user_id: int, user_type: str, status: str = MATCH_MATCHED) -> List[AnyMatch]:
    """Matches seen from the user's side, by user type."""
    if user_type in CANDIDATE_ROLES:
        return get_candidate_matches(db, user_id, status)
    if user_type == "animator":
        return get_animator_matches(db, user_id, status)
    if user_type == "laboratory":
        return get_laboratory_matches(db, user_id, status)
    if user_type == "pharmacy_owner":
        # Pharmacy owners match on offers and may also run animation missions
        return get_employer_matches(db, user_id, status) + get_laboratory_matches(db, user_id, status)
    return []


def check_match_conflicts(db: Session, animator_id: int, start_date: date, end_date: date) -> List[AnimatorMatch]:
    """
    Matched missions of an animator overlapping [start_date, end_date].

    Only confirmed matches count; pending one-sided likes never block dates.
    """
    return (
        db.query(AnimatorMatch)
        .join(Mission, Mission.id == AnimatorMatch.mission_id)
        .filter(
            AnimatorMatch.animator_id == animator_id,
            AnimatorMatch.status == MATCH_MATCHED,
            Mission.end_date >= start_date,
            Mission.start_date <= end_date,
        )
        .order_by(Mission.start_date)
        .all()
    )
