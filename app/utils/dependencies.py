from functools import lru_cache
from typing import Optional
import os

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.openrouter import ServiceConfig
from app.services.openrouter_service import OpenRouterService
from app.services.recommendation_service import RecommendationService
from app.utils.errors import UnauthorizedError
from app.utils.security import ACCESS_TOKEN_COOKIE, decode_token

# Bearer header is optional; the session cookie is the fallback
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    token = credentials.credentials if credentials else request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        raise UnauthorizedError("Unauthorized")

    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("user_id")
    user = db.query(User).filter(User.id == user_id).first()

    if not user or not user.is_active:
        raise UnauthorizedError("User not found or inactive")

    return user


def get_user_id(user: User) -> int:
    """Helper to extract user_id as int for type safety"""
    return int(user.id)  # type: ignore


@lru_cache(maxsize=1)
def get_openrouter_service() -> OpenRouterService:
    """One OpenRouter client per process, configured from the environment"""
    timeout = float(os.getenv("OPENROUTER_TIMEOUT", "45"))
    return OpenRouterService(config=ServiceConfig(timeout=timeout))


def get_recommendation_service(
    db: Session = Depends(get_db),
    openrouter: OpenRouterService = Depends(get_openrouter_service),
) -> RecommendationService:
    return RecommendationService(db, openrouter)
