from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.preferences import PreferencesResponse, PreferencesUpdate
from app.services.preferences_service import PreferencesService
from app.utils.dependencies import get_current_user, get_user_id
from app.utils.errors import NotFoundError

router = APIRouter(prefix="/api/preferences", tags=["Preferences"])


@router.get("", response_model=PreferencesResponse)
def get_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the user's stored recommendation criteria"""
    preferences = PreferencesService.get_preferences(db, get_user_id(current_user))
    if preferences is None:
        raise NotFoundError("Preferences not found")
    return preferences


@router.put("", response_model=PreferencesResponse)
def update_preferences(
    data: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create or replace the user's stored recommendation criteria"""
    return PreferencesService.upsert_preferences(db, get_user_id(current_user), data)
