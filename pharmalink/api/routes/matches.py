"""
Match listing endpoints.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.core.errors import ValidationError
from pharmalink.db.models.listing import Mission
from pharmalink.db.models.match import AnimatorMatch, MATCH_MATCHED
from pharmalink.db.models.user import User
from pharmalink.schemas.swipe import AnimatorMatchResponse, ConflictResponse, MatchListResponse, MatchResponse
from pharmalink.services.match_service import check_match_conflicts, get_matches_for_user

router = APIRouter(prefix="/matches", tags=["Matches"])


@router.get("", status_code=status.HTTP_200_OK, response_model=MatchListResponse)
def list_matches(
    match_status: str = Query(MATCH_MATCHED, alias="status", pattern="^(pending|matched)$"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Matches of the authenticated user, most recent first."""
    rows = get_matches_for_user(db, user.id, user.user_type, match_status)
    matches = [MatchResponse.model_validate(m) for m in rows if not isinstance(m, AnimatorMatch)]
    animator_matches = [AnimatorMatchResponse.model_validate(m) for m in rows if isinstance(m, AnimatorMatch)]
    return MatchListResponse(matches=matches, animator_matches=animator_matches, total=len(rows))


@router.get("/conflicts", status_code=status.HTTP_200_OK)
def list_conflicts(
    start_date: date = Query(...),
    end_date: date = Query(...),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Matched missions of the authenticated animator overlapping the dates."""
    if end_date < start_date:
        raise ValidationError("end_date is before start_date")

    conflicts = []
    for match in check_match_conflicts(db, user.id, start_date, end_date):
        mission = db.query(Mission).filter(Mission.id == match.mission_id).first()
        conflicts.append(ConflictResponse(
            match_id=match.id,
            mission_id=mission.id,
            title=mission.title,
            start_date=mission.start_date,
            end_date=mission.end_date,
        ))
    return {"conflicts": conflicts, "has_conflict": bool(conflicts)}
