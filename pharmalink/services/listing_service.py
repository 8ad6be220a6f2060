"""
Read-only lookups against listing tables maintained by the listing CRUD.
"""
from typing import Union

from sqlalchemy.orm import Session

from pharmalink.core.errors import NotFoundError, ValidationError
from pharmalink.db.models.listing import JobOffer, InternshipOffer, Mission

OFFER_MODELS = {
    "job_offer": JobOffer,
    "internship_offer": InternshipOffer,
}


def get_offer(db: Session, offer_type: str, offer_id: int) -> Union[JobOffer, InternshipOffer]:
    model = OFFER_MODELS.get(offer_type)
    if model is None:
        raise ValidationError(f"Unknown offer type: {offer_type}", {"offer_type": offer_type})
    offer = db.query(model).filter(model.id == offer_id).first()
    if not offer:
        raise NotFoundError("Offer not found", {"offer_type": offer_type, "offer_id": offer_id})
    return offer


def get_mission(db: Session, mission_id: int) -> Mission:
    mission = db.query(Mission).filter(Mission.id == mission_id).first()
    if not mission:
        raise NotFoundError("Mission not found", {"mission_id": mission_id})
    return mission
