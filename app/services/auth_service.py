from sqlalchemy.orm import Session
from app.models.user import User
from app.schemas.auth import UserRegister, UserLogin
from app.utils.errors import ValidationFailedError
from app.utils.security import hash_password, verify_password, build_session
import logging
from typing import cast

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    @staticmethod
    def register_user(db: Session, user_data: UserRegister) -> dict:
        # Check existing email
        existing_user = db.query(User).filter(User.email == user_data.email).first()
        if existing_user:
            raise ValidationFailedError("Email already registered")

        new_user = User(
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            name=user_data.name
        )
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
        logger.info(f"Registered user {new_user.id}")

        return {
            "user": new_user,
            "session": build_session(new_user.id, new_user.email)
        }

    @staticmethod
    def login_user(db: Session, credentials: UserLogin) -> dict:
        user = db.query(User).filter(User.email == credentials.email).first()

        # Same message for unknown email, wrong password and inactive account
        if not user:
            logger.warning(f"Login failed: User not found with email {credentials.email}")
            raise ValidationFailedError(INVALID_CREDENTIALS)

        if not verify_password(credentials.password, str(user.password_hash)):
            logger.warning(f"Login failed: Incorrect password for email {credentials.email}")
            raise ValidationFailedError(INVALID_CREDENTIALS)

        if not cast(bool, user.is_active):
            logger.warning(f"Login failed: Account {user.id} is deactivated")
            raise ValidationFailedError(INVALID_CREDENTIALS)

        return {
            "user": user,
            "redirectTo": "/recommendations",
            "session": build_session(user.id, user.email)
        }
