"""
Swipe endpoints.

POST /swipes records a like, dislike or superlike and reports whether it
completed a match. A spent daily super-like budget answers 402.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db, get_notifier
from pharmalink.core.errors import ValidationError
from pharmalink.core.quota_guard import raise_quota_exceeded
from pharmalink.db.models.match import AnimatorMatch
from pharmalink.db.models.user import User
from pharmalink.schemas.swipe import (
    AnimatorMatchResponse,
    MatchResponse,
    SwipeDetail,
    SwipeRequest,
    SwipeResponse,
)
from pharmalink.schemas.usage import QuotaDetail
from pharmalink.services import matching_service
from pharmalink.services.notification_service import Notifier
from pharmalink.services.quota_service import SUPER_LIKE_LIMIT_KEY

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/swipes", tags=["Swipes"])


@router.post("", status_code=status.HTTP_200_OK, response_model=SwipeResponse)
def create_swipe(
    swipe_data: SwipeRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """
    Swipe on an offer, mission, candidate or animator.

    Swipes on a candidate need the offer (context_id, context_type) and
    swipes on an animator need the mission (context_id) they are made for.
    """
    result = matching_service.swipe(
        db,
        actor_id=user.id,
        target_type=swipe_data.target_type,
        target_id=swipe_data.target_id,
        action=swipe_data.action,
        context_id=swipe_data.context_id,
        context_type=swipe_data.context_type,
        notifier=notifier,
    )
    if not result.allowed:
        raise_quota_exceeded(db, user, SUPER_LIKE_LIMIT_KEY, result.quota)

    response = SwipeResponse(
        swipe=SwipeDetail.model_validate(result.swipe),
        newly_matched=result.newly_matched,
        quota=QuotaDetail(**result.quota.to_dict()) if result.quota else None,
    )
    if isinstance(result.match, AnimatorMatch):
        response.animator_match = AnimatorMatchResponse.model_validate(result.match)
    elif result.match is not None:
        response.match = MatchResponse.model_validate(result.match)

    logger.debug(f"Swipe handled: user_id={user.id}, newly_matched={result.newly_matched}")
    return response


@router.get("/deck", status_code=status.HTTP_200_OK)
def get_deck(
    target_type: str = Query(..., description="job_offer, internship_offer or mission"),
    region: Optional[str] = Query(None, description="Filter by region"),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Listings not swiped yet by the authenticated user."""
    if target_type == "job_offer":
        items = matching_service.get_swipeable_job_offers(db, user.id, region=region, limit=limit)
    elif target_type == "internship_offer":
        items = matching_service.get_swipeable_internships(db, user.id, region=region, limit=limit)
    elif target_type == "mission":
        items = matching_service.get_swipeable_missions(db, user.id, region=region, limit=limit)
    else:
        raise ValidationError(f"No deck for {target_type}", {"target_type": target_type})

    return {
        "target_type": target_type,
        "items": [{"id": item.id, "title": item.title, "region": item.region} for item in items],
    }
