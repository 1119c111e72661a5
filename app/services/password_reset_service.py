"""
Password recovery: single-use, hashed, expiring reset tokens sent by email.
"""
import hashlib
import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from typing import Optional

from app.models.password_reset_token import PasswordResetToken
from app.models.user import User
from app.services.email_service import EmailService
from app.utils.errors import RateLimitedError, ValidationFailedError
from app.utils.security import hash_password

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL_MINUTES = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "30"))
RESET_TOKEN_MAX_ACTIVE = int(os.getenv("RESET_TOKEN_MAX_ACTIVE", "3"))
PASSWORD_RESET_URL = os.getenv("PASSWORD_RESET_URL", "http://localhost:3000/password-recovery")

INVALID_TOKEN = "Invalid or expired reset token."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class PasswordResetService:
    """Issues and redeems password reset tokens."""

    @classmethod
    def request_reset(cls, db: Session, email: str, client_ip: Optional[str] = None) -> None:
        """
        Email a reset link if the account exists.
        Unknown emails succeed silently so account existence is not revealed.
        """
        now = _utcnow()
        db.query(PasswordResetToken).filter(
            PasswordResetToken.expires_at <= now
        ).delete(synchronize_session=False)

        user = db.query(User).filter(User.email == email).first()
        if not user:
            db.commit()
            return

        active_tokens = db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > now,
        ).count()

        if active_tokens >= RESET_TOKEN_MAX_ACTIVE:
            db.commit()
            logger.warning(f"Password reset throttled for user {user.id}")
            raise RateLimitedError("Too many password reset requests. Please try again later.")

        raw_token = secrets.token_urlsafe(48)
        db.add(PasswordResetToken(
            user_id=user.id,
            token_hash=hash_token(raw_token),
            expires_at=now + timedelta(minutes=RESET_TOKEN_TTL_MINUTES),
            requested_ip=client_ip,
        ))

        reset_link = f"{PASSWORD_RESET_URL.rstrip('/')}/{raw_token}"
        try:
            EmailService.send_password_reset_email(user.email, reset_link)
        except Exception:
            db.rollback()
            raise

        db.commit()
        logger.info(f"Password reset requested for user {user.id}")

    @classmethod
    def reset_password(cls, db: Session, token: str, new_password: str) -> None:
        """Redeem a token, set the new password and burn every other open token"""
        record = db.query(PasswordResetToken).filter(
            PasswordResetToken.token_hash == hash_token(token),
            PasswordResetToken.used_at.is_(None),
        ).first()

        now = _utcnow()
        if record is None or _as_utc(record.expires_at) < now:
            raise ValidationFailedError(INVALID_TOKEN)

        user = db.get(User, record.user_id)
        if not user:
            raise ValidationFailedError(INVALID_TOKEN)

        user.password_hash = hash_password(new_password)  # type: ignore
        db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used_at.is_(None),
        ).update({"used_at": now}, synchronize_session=False)

        db.commit()
        logger.info(f"Password reset completed for user {user.id}")
