from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.utils.dependencies import get_current_user, get_user_id
from app.models.user import User
from app.schemas.films import (
    DEFAULT_PAGE_SIZE,
    FilmCreateCommand,
    FilmResponse,
    FilmStatus,
    FilmStatusUpdate,
    PaginatedFilmsResponse,
)
from app.schemas.validation import SafeStringMixin
from app.services.films_service import FilmsService
from app.utils.errors import ValidationFailedError

router = APIRouter(prefix="/api/films", tags=["Films"])


@router.get("", response_model=PaginatedFilmsResponse)
def get_films(
    status_filter: Optional[FilmStatus] = Query(None, alias="status", description="to-watch / watched / rejected"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=255, description="Case-insensitive title substring"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the user's films, newest first

    - **status**: only films with this status
    - **page** / **limit**: pagination (page starts at 1)
    - **search**: title contains this text
    """
    if search:
        try:
            search = SafeStringMixin.validate_no_script(search.strip())
        except ValueError as exc:
            raise ValidationFailedError("Invalid search query", details=str(exc))

    return FilmsService.get_user_films(
        db, get_user_id(current_user), status=status_filter, page=page, limit=limit, search=search or None
    )


@router.post("", response_model=List[FilmResponse], status_code=status.HTTP_201_CREATED)
def create_films(
    command: FilmCreateCommand,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save a batch of films (e.g. picked from a recommendation)

    The whole batch is rejected with 409 if any title is already tracked.
    """
    return FilmsService.create_films(db, get_user_id(current_user), command)


@router.delete("/{film_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_film(
    film_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete one of the user's films"""
    FilmsService.delete_film(db, get_user_id(current_user), film_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{film_id}/status", response_model=FilmResponse)
def update_film_status(
    command: FilmStatusUpdate,
    film_id: int = Path(..., gt=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Move a film to another status (to-watch / watched / rejected)"""
    return FilmsService.update_film_status(db, get_user_id(current_user), film_id, command.new_status)
