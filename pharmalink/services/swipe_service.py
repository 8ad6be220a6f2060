"""
Swipe ledger.

Stores one directional preference per (actor, target_type, target_id).
Quota consumption and match detection belong to the caller.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from pharmalink.core.errors import ValidationError
from pharmalink.db.models.swipe import Swipe, SwipeAction, TargetType, SWIPEABLE_TARGETS
from pharmalink.db.transaction import storage_guard
from pharmalink.db.upsert import insert_for

logger = logging.getLogger(__name__)


def parse_action(action: Union[str, SwipeAction]) -> SwipeAction:
    try:
        return SwipeAction(action)
    except ValueError:
        raise ValidationError(f"Unknown swipe action: {action}", {"action": action})


def parse_target_type(target_type: Union[str, TargetType]) -> TargetType:
    try:
        parsed = TargetType(target_type)
    except ValueError:
        raise ValidationError(f"Unknown target type: {target_type}", {"target_type": target_type})
    if parsed not in SWIPEABLE_TARGETS:
        raise ValidationError(f"Target type {parsed.value} cannot be swiped", {"target_type": parsed.value})
    return parsed


def get_swipe(db: Session, actor_id: int, target_type: str, target_id: int) -> Optional[Swipe]:
    return db.execute(
        select(Swipe)
        .where(
            Swipe.user_id == actor_id,
            Swipe.target_type == TargetType(target_type).value,
            Swipe.target_id == target_id,
        )
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def find_positive_swipe(db: Session, actor_id: int, target_type: str, target_id: int) -> Optional[Swipe]:
    """The actor's like or superlike on a target, if any."""
    return db.execute(
        select(Swipe).where(
            Swipe.user_id == actor_id,
            Swipe.target_type == TargetType(target_type).value,
            Swipe.target_id == target_id,
            Swipe.action.in_([SwipeAction.LIKE.value, SwipeAction.SUPERLIKE.value]),
        )
    ).scalar_one_or_none()


def get_swiped_target_ids(db: Session, actor_id: int, target_type: str) -> List[int]:
    rows = db.execute(
        select(Swipe.target_id).where(
            Swipe.user_id == actor_id,
            Swipe.target_type == TargetType(target_type).value,
        )
    ).all()
    return [row[0] for row in rows]


def record_swipe(
    db: Session,
    actor_id: int,
    target_type: Union[str, TargetType],
    target_id: int,
    action: Union[str, SwipeAction],
    now: Optional[datetime] = None,
    commit: bool = True,
) -> Swipe:
    """
    Upsert the actor's swipe on a target.

    A re-swipe overwrites the action; is_super_like and super_liked_at are
    set for a superlike and cleared otherwise.

    Raises:
        ValidationError: unknown action or target type
        StorageError: persistence failure (only when this call owns the commit)
    """
    target_type = parse_target_type(target_type)
    action = parse_action(action)
    now = now or datetime.now(timezone.utc)
    is_super_like = action == SwipeAction.SUPERLIKE

    table = Swipe.__table__
    stmt = insert_for(db, table).values(
        user_id=actor_id,
        target_type=target_type.value,
        target_id=target_id,
        action=action.value,
        is_super_like=is_super_like,
        super_liked_at=now if is_super_like else None,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "target_type", "target_id"],
        set_={
            "action": stmt.excluded.action,
            "is_super_like": stmt.excluded.is_super_like,
            "super_liked_at": stmt.excluded.super_liked_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )

    if commit:
        with storage_guard(db, "Recording swipe"):
            db.execute(stmt)
            db.commit()
    else:
        db.execute(stmt)

    logger.info(
        f"Swipe recorded: actor_id={actor_id}, target={target_type.value}:{target_id}, "
        f"action={action.value}"
    )
    return get_swipe(db, actor_id, target_type, target_id)
