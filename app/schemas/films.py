from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.schemas.validation import MIN_MOVIE_YEAR, SafeStringMixin, current_year

MAX_FILMS_PER_REQUEST = 100
DEFAULT_PAGE_SIZE = 9


class FilmStatus(str, Enum):
    """Mutually exclusive classification of a tracked film"""
    TO_WATCH = "to-watch"
    WATCHED = "watched"
    REJECTED = "rejected"


# ==================== INPUT SCHEMAS ====================

class FilmInput(BaseModel, SafeStringMixin):
    """Schema for a single film in a create batch"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    year: int = Field(..., ge=MIN_MOVIE_YEAR)
    description: str = Field(..., min_length=1)
    genres: List[str] = Field(..., min_length=1, description="At least one genre")
    actors: List[str] = Field(..., min_length=1, description="At least one actor")
    director: str = Field(..., min_length=1, max_length=255)
    status: FilmStatus
    generation_id: Optional[int] = Field(None, gt=0, description="Recommendation batch the film came from")

    @field_validator('year')
    @classmethod
    def year_not_in_future(cls, v):
        if v > current_year():
            raise ValueError('Year cannot be in the future')
        return v

    @field_validator('title')
    @classmethod
    def clean_title(cls, v):
        return cls.validate_no_script(v)

    @field_validator('description')
    @classmethod
    def clean_description(cls, v):
        v = cls.sanitize_html(v)
        if not v.strip():
            raise ValueError('Description is required')
        return v


class FilmCreateCommand(BaseModel):
    """Schema for creating a batch of films"""
    films: List[FilmInput] = Field(..., min_length=1, max_length=MAX_FILMS_PER_REQUEST)


class FilmStatusUpdate(BaseModel):
    """Schema for changing a film's status"""
    new_status: FilmStatus


# ==================== RESPONSE SCHEMAS ====================

class FilmResponse(BaseModel):
    """Schema for a stored film record"""
    id: int
    user_id: int
    title: str
    year: int
    description: Optional[str] = None
    genres: List[str] = []
    actors: List[str] = []
    director: str
    status: FilmStatus
    generation_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator('genres', 'actors', mode='before')
    @classmethod
    def none_as_empty(cls, v):
        return v or []


class PaginatedFilmsResponse(BaseModel):
    """Schema for a page of films"""
    data: List[FilmResponse]
    page: int
    limit: int
    total: int
