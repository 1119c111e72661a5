from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from app.schemas.recommendations import RecommendationCriteria


class PreferencesUpdate(RecommendationCriteria):
    """Stored default criteria; same rules as an ad-hoc request"""


class PreferencesResponse(BaseModel):
    id: int
    user_id: int
    actors: Optional[List[str]] = None
    directors: Optional[List[str]] = None
    genres: Optional[List[str]] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
