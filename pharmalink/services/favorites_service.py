"""
Favorites.

Any user can bookmark offers, missions, people and listings. Only
laboratories are capped, on animator favorites (limit key ``favorites``);
the held count lives in the usage ledger's favorites_count and is changed
with conditional updates in the same transaction as the favorite row.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from sqlalchemy import delete
from sqlalchemy.orm import Session

from pharmalink.core.errors import ValidationError
from pharmalink.core.tier_limits import TIER_LABELS, get_limit, get_next_tier, normalize_user_type
from pharmalink.db.models.favorite import Favorite
from pharmalink.db.models.swipe import TargetType
from pharmalink.db.transaction import storage_guard
from pharmalink.db.upsert import insert_for
from pharmalink.services.quota_service import QuotaCheck, build_quota_check, check_limit
from pharmalink.services.subscription_service import get_tier_for_user, get_user_type
from pharmalink.services.usage_service import increment_usage, increment_usage_within_limit

logger = logging.getLogger(__name__)

FAVORITES_LIMIT_KEY = "favorites"
FAVORITES_USAGE_FIELD = "favorites_count"


@dataclass
class FavoriteResult:
    added: bool
    favorite: Optional[Favorite] = None
    quota: Optional[QuotaCheck] = None
    message: Optional[str] = None


def _parse_target_type(target_type: Union[str, TargetType]) -> TargetType:
    try:
        return TargetType(target_type)
    except ValueError:
        raise ValidationError(f"Unknown favorite type: {target_type}", {"target_type": target_type})


def _is_counted(user_type: str, target_type: TargetType) -> bool:
    return normalize_user_type(user_type) == "laboratory" and target_type == TargetType.ANIMATOR


def get_favorite(db: Session, user_id: int, target_type: str, target_id: int) -> Optional[Favorite]:
    return (
        db.query(Favorite)
        .filter(
            Favorite.user_id == user_id,
            Favorite.target_type == _parse_target_type(target_type).value,
            Favorite.target_id == target_id,
        )
        .first()
    )


def is_favorite(db: Session, user_id: int, target_type: str, target_id: int) -> bool:
    return get_favorite(db, user_id, target_type, target_id) is not None


def can_add_favorite(db: Session, user_id: int) -> QuotaCheck:
    """Animator favorites budget; unlimited for anyone but laboratories."""
    if normalize_user_type(get_user_type(db, user_id)) != "laboratory":
        return build_quota_check(0, None)
    return check_limit(db, user_id, FAVORITES_LIMIT_KEY)


def _limit_message(db: Session, user_id: int, quota: QuotaCheck) -> str:
    user_type = get_user_type(db, user_id)
    next_tier = get_next_tier(user_type, get_tier_for_user(db, user_id))
    message = f"Favorites limit reached ({quota.used}/{quota.max})."
    if next_tier:
        next_limit = get_limit(user_type, next_tier, FAVORITES_LIMIT_KEY)
        capacity = "unlimited animators" if next_limit is None else f"up to {next_limit} animators"
        message += f" Upgrade to {TIER_LABELS.get(next_tier, next_tier)} to save {capacity}."
    return message


def add(db: Session, user_id: int, target_type: str, target_id: int, notes: Optional[str] = None) -> FavoriteResult:
    """
    Add a favorite.

    Already-favorited targets and an exhausted quota are reported in the
    result (added=False), not raised.
    """
    target_type = _parse_target_type(target_type)
    user_type = get_user_type(db, user_id)
    counted = _is_counted(user_type, target_type)
    limit = get_limit(user_type, get_tier_for_user(db, user_id), FAVORITES_LIMIT_KEY) if counted else None

    with storage_guard(db, "Adding favorite"):
        stmt = insert_for(db, Favorite.__table__).values(
            user_id=user_id,
            target_type=target_type.value,
            target_id=target_id,
            notes=notes,
        ).on_conflict_do_nothing(index_elements=["user_id", "target_type", "target_id"])
        created = db.execute(stmt).rowcount == 1

        if not created:
            db.rollback()
            return FavoriteResult(
                added=False,
                favorite=get_favorite(db, user_id, target_type, target_id),
                message="Already in your favorites",
            )

        if counted:
            if limit is None:
                increment_usage(db, user_id, FAVORITES_USAGE_FIELD, commit=False)
            elif not increment_usage_within_limit(db, user_id, FAVORITES_USAGE_FIELD, limit, commit=False):
                db.rollback()
                quota = can_add_favorite(db, user_id)
                logger.warning(f"Favorites quota exceeded: user_id={user_id}, used={quota.used}/{quota.max}")
                return FavoriteResult(added=False, quota=quota, message=_limit_message(db, user_id, quota))

        db.commit()

    logger.info(f"Favorite added: user_id={user_id}, target={target_type.value}:{target_id}")
    return FavoriteResult(added=True, favorite=get_favorite(db, user_id, target_type, target_id))


def remove(db: Session, user_id: int, target_type: str, target_id: int) -> bool:
    """Remove a favorite. Returns False if it was not there."""
    target_type = _parse_target_type(target_type)
    counted = _is_counted(get_user_type(db, user_id), target_type)

    with storage_guard(db, "Removing favorite"):
        deleted = db.execute(
            delete(Favorite.__table__).where(
                Favorite.__table__.c.user_id == user_id,
                Favorite.__table__.c.target_type == target_type.value,
                Favorite.__table__.c.target_id == target_id,
            )
        ).rowcount == 1
        if deleted and counted:
            increment_usage(db, user_id, FAVORITES_USAGE_FIELD, -1, commit=False)
        db.commit()

    if deleted:
        logger.info(f"Favorite removed: user_id={user_id}, target={target_type.value}:{target_id}")
    return deleted


def toggle(db: Session, user_id: int, target_type: str, target_id: int, notes: Optional[str] = None) -> FavoriteResult:
    if is_favorite(db, user_id, target_type, target_id):
        remove(db, user_id, target_type, target_id)
        return FavoriteResult(added=False)
    return add(db, user_id, target_type, target_id, notes)


def list_favorites(db: Session, user_id: int, target_type: Optional[str] = None) -> List[Favorite]:
    query = db.query(Favorite).filter(Favorite.user_id == user_id)
    if target_type:
        query = query.filter(Favorite.target_type == _parse_target_type(target_type).value)
    return query.order_by(Favorite.created_at.desc(), Favorite.id.desc()).all()


def get_favorite_ids(db: Session, user_id: int, target_type: str) -> List[int]:
    return [favorite.target_id for favorite in list_favorites(db, user_id, target_type)]


def count_by_type(db: Session, user_id: int) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for favorite in list_favorites(db, user_id):
        counts[favorite.target_type] = counts.get(favorite.target_type, 0) + 1
    return counts
