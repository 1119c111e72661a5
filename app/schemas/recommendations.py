from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Annotated, List, Optional

from app.schemas.validation import MIN_MOVIE_YEAR, SafeStringMixin, check_year_range

# Keeps the largest possible prompt within the chat message limit
MAX_CRITERIA_ITEMS = 10
MAX_CRITERIA_ITEM_LENGTH = 100

CriteriaName = Annotated[str, Field(max_length=MAX_CRITERIA_ITEM_LENGTH)]


class RecommendationCriteria(BaseModel, SafeStringMixin):
    """Structured filter turned into a prompt. Every field is optional."""
    actors: Optional[List[CriteriaName]] = Field(None, max_length=MAX_CRITERIA_ITEMS)
    directors: Optional[List[CriteriaName]] = Field(None, max_length=MAX_CRITERIA_ITEMS)
    genres: Optional[List[CriteriaName]] = Field(None, max_length=MAX_CRITERIA_ITEMS)
    year_from: Optional[int] = Field(None, ge=MIN_MOVIE_YEAR)
    year_to: Optional[int] = Field(None, ge=MIN_MOVIE_YEAR)

    @field_validator('actors', 'directors', 'genres')
    @classmethod
    def clean_names(cls, v):
        if v is None:
            return v
        cleaned = [cls.validate_no_script(item.strip()) for item in v]
        return [item for item in cleaned if item]

    @model_validator(mode='after')
    def check_years(self):
        check_year_range(self.year_from, self.year_to)
        return self


class RecommendationCriteriaCommand(BaseModel):
    """Body of POST /api/recommendations"""
    criteria: Optional[RecommendationCriteria] = None


class RecommendedFilm(BaseModel):
    """One film as returned by the model. Strict: any gap fails the whole reply."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    year: int
    description: str = Field(..., min_length=1)
    genres: List[str]
    actors: List[str]
    director: str = Field(..., min_length=1)


class RecommendationResponse(BaseModel):
    recommendations: List[RecommendedFilm]
    generation_id: int
    generated_count: int
