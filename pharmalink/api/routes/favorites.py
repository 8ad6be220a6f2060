"""
Favorites endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmalink.core.auth_dependency import get_current_user_obj, get_db
from pharmalink.core.quota_guard import raise_quota_exceeded
from pharmalink.db.models.user import User
from pharmalink.schemas.favorite import (
    FavoriteListResponse,
    FavoriteResponse,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
)
from pharmalink.services import favorites_service

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.post("/toggle", status_code=status.HTTP_200_OK, response_model=FavoriteToggleResponse)
def toggle_favorite(
    toggle_data: FavoriteToggleRequest,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """Add the target to favorites, or remove it if already there."""
    result = favorites_service.toggle(db, user.id, toggle_data.target_type, toggle_data.target_id, toggle_data.notes)
    if result.quota is not None and not result.quota.allowed:
        raise_quota_exceeded(db, user, favorites_service.FAVORITES_LIMIT_KEY, result.quota)

    return FavoriteToggleResponse(
        added=result.added,
        favorite=FavoriteResponse.model_validate(result.favorite) if result.added else None,
        message=result.message,
    )


@router.get("", status_code=status.HTTP_200_OK, response_model=FavoriteListResponse)
def list_favorites(
    target_type: Optional[str] = Query(None, description="Filter by target type"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    favorites = favorites_service.list_favorites(db, user.id, target_type)
    return FavoriteListResponse(
        favorites=[FavoriteResponse.model_validate(f) for f in favorites],
        total=len(favorites),
        quota=favorites_service.can_add_favorite(db, user.id).to_dict(),
    )
