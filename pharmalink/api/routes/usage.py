"""
Usage tracking endpoints.

Provides usage statistics and quota information for authenticated users.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.core.errors import ValidationError
from pharmalink.core.tier_limits import LIMIT_USAGE_FIELDS
from pharmalink.db.models.user import User
from pharmalink.schemas.usage import QuotaDetail, UsageResponse
from pharmalink.services.quota_service import check_limit, get_usage_for_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Usage"])


@router.get("/usage", status_code=status.HTTP_200_OK, response_model=UsageResponse)
def get_usage(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Get current period usage for the authenticated user.

    Returns:
    - tier: Current tier
    - month_key: Current period in YYYY-MM format
    - quotas: allowed, used, max, remaining, unlimited per limit key
    """
    usage_data = get_usage_for_response(db, user.id)
    logger.debug(f"Usage summary requested: user_id={user.id}, tier={usage_data['tier']}")
    return usage_data


@router.get("/quota/{limit_key}", status_code=status.HTTP_200_OK, response_model=QuotaDetail)
def get_quota(
    limit_key: str,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Whether one more use of ``limit_key`` is allowed right now."""
    if limit_key not in LIMIT_USAGE_FIELDS:
        raise ValidationError(f"Unknown limit key: {limit_key}", {"limit_key": limit_key})
    return check_limit(db, user.id, limit_key).to_dict()
