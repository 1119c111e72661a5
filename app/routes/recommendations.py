"""
Recommendation Routes
AI-generated film suggestions from criteria or stored preferences
"""
from fastapi import APIRouter, Depends
from typing import Optional

from app.models.user import User
from app.schemas.recommendations import RecommendationCriteriaCommand, RecommendationResponse
from app.services.recommendation_service import RecommendationService
from app.utils.dependencies import get_current_user, get_recommendation_service, get_user_id

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.post("", response_model=RecommendationResponse)
def generate_recommendations(
    command: Optional[RecommendationCriteriaCommand] = None,
    current_user: User = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Generate film recommendations

    **Body (optional):**
    ```json
    {"criteria": {"actors": ["Tom Hanks"], "genres": ["Drama"], "year_from": 1990, "year_to": 2005}}
    ```
    Without criteria the user's stored preferences are used.

    **Returns:** recommended films not yet tracked by the user, plus the
    `generation_id` to attach when saving them.
    """
    criteria = command.criteria if command else None
    return service.get_recommendations(get_user_id(current_user), criteria)
