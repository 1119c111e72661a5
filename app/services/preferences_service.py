from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.models.user_preferences import UserPreferences
from app.schemas.preferences import PreferencesUpdate

logger = logging.getLogger(__name__)


class PreferencesService:
    """Stored default criteria, used when a recommendation request has none"""

    @staticmethod
    def get_preferences(db: Session, user_id: int) -> Optional[UserPreferences]:
        return db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()

    @staticmethod
    def upsert_preferences(db: Session, user_id: int, data: PreferencesUpdate) -> UserPreferences:
        """Create the user's single preferences row or overwrite it"""
        preferences = PreferencesService.get_preferences(db, user_id)
        if preferences is None:
            preferences = UserPreferences(user_id=user_id)
            db.add(preferences)

        preferences.actors = data.actors  # type: ignore
        preferences.directors = data.directors  # type: ignore
        preferences.genres = data.genres  # type: ignore
        preferences.year_from = data.year_from  # type: ignore
        preferences.year_to = data.year_to  # type: ignore

        db.commit()
        db.refresh(preferences)
        logger.info(f"Saved preferences for user {user_id}")
        return preferences
