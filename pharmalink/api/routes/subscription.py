"""
Subscription endpoints.

Tier changes take effect immediately; paid tiers produce a pending invoice
settled by the external payment processor.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.core.tier_limits import get_all_tiers_info
from pharmalink.db.models.user import User
from pharmalink.schemas.subscription import (
    SubscriptionDetail,
    SubscriptionStatusResponse,
    TierListResponse,
    UpgradeRequest,
)
from pharmalink.services import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])


@router.get("", status_code=status.HTTP_200_OK, response_model=SubscriptionStatusResponse)
def get_subscription_status(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    return subscription_service.get_full_status(db, user.id)


@router.get("/tiers", status_code=status.HTTP_200_OK, response_model=TierListResponse)
def list_tiers(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Tiers available for the user's type, for the pricing screen."""
    return {
        "user_type": user.user_type,
        "current_tier": subscription_service.get_tier_for_user(db, user.id),
        "tiers": get_all_tiers_info(user.user_type),
    }


@router.post("/upgrade", status_code=status.HTTP_200_OK, response_model=SubscriptionDetail)
def upgrade(
    upgrade_data: UpgradeRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    subscription = subscription_service.upgrade_tier(
        db, user.id, upgrade_data.tier, duration_months=upgrade_data.duration_months
    )
    return SubscriptionDetail.model_validate(subscription)


@router.post("/cancel", status_code=status.HTTP_200_OK, response_model=SubscriptionDetail)
def cancel(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Stop auto-renew; the current tier stays active until it expires."""
    subscription = subscription_service.cancel_subscription(db, user.id)
    return SubscriptionDetail.model_validate(subscription)
