"""
Import all models to ensure they are registered with SQLAlchemy
"""
from app.models.user import User
from app.models.film import UserFilm, FilmStatusLog
from app.models.generation_log import GenerationLog, GenerationErrorLog
from app.models.user_preferences import UserPreferences
from app.models.password_reset_token import PasswordResetToken

__all__ = [
    "User",
    "UserFilm",
    "FilmStatusLog",
    "GenerationLog",
    "GenerationErrorLog",
    "UserPreferences",
    "PasswordResetToken",
]
