"""
Mission confirmation endpoints.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db, get_notifier
from pharmalink.db.models.user import User
from pharmalink.schemas.invoice import InvoiceResponse
from pharmalink.schemas.mission import (
    ConfirmMissionRequest,
    ConfirmMissionResponse,
    FeeStatusResponse,
    MissionFeeResponse,
)
from pharmalink.services import fee_service
from pharmalink.services.notification_service import Notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/missions", tags=["Missions"])


@router.get("/{mission_id}/fee", status_code=status.HTTP_200_OK, response_model=FeeStatusResponse)
def get_fee_status(
    mission_id: int,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Fee the authenticated user would pay to confirm the mission, and whether
    the subscription covers it. Nothing is written.
    """
    return fee_service.check_fee_status(db, user.id, mission_id).to_dict()


@router.post("/{mission_id}/confirm", status_code=status.HTTP_200_OK, response_model=ConfirmMissionResponse)
def confirm(
    mission_id: int,
    confirm_data: Optional[ConfirmMissionRequest] = Body(None),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Confirm the matched animator; waives or bills the confirmation fee."""
    animator_id = confirm_data.animator_id if confirm_data else None
    confirmation = fee_service.confirm_mission(db, user.id, mission_id, animator_id=animator_id, notifier=notifier)

    logger.info(f"Mission confirm handled: mission_id={mission_id}, user_id={user.id}, created={confirmation.created}")
    return ConfirmMissionResponse(
        fee=MissionFeeResponse.model_validate(confirmation.fee),
        invoice=InvoiceResponse.model_validate(confirmation.invoice) if confirmation.invoice else None,
        created=confirmation.created,
    )
