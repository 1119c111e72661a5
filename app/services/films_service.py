from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import Dict, Iterable, List, Optional
import logging

from app.models.film import UserFilm, FilmStatusLog
from app.models.generation_log import GenerationLog
from app.schemas.films import DEFAULT_PAGE_SIZE, FilmCreateCommand, FilmStatus
from app.schemas.validation import escape_like
from app.utils.errors import ConflictError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

FILM_NOT_FOUND = "Film not found or not authorized"

# GenerationLog counter column per status
STATUS_COUNTERS = {
    FilmStatus.TO_WATCH.value: "marked_as_to_watch_count",
    FilmStatus.WATCHED.value: "marked_as_watched_count",
    FilmStatus.REJECTED.value: "marked_as_rejected_count",
}


class FilmsService:
    """Service for the user's tracked films"""

    @staticmethod
    def get_user_films(
        db: Session,
        user_id: int,
        status: Optional[FilmStatus] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None
    ) -> Dict:
        """
        Get one page of the user's films, newest first.

        Returns:
            {"data": [...], "page": page, "limit": limit, "total": total}
            where total counts every film matching the filters.
        """
        query = db.query(UserFilm).filter(UserFilm.user_id == user_id)

        if status is not None:
            query = query.filter(UserFilm.status == FilmStatus(status).value)

        if search:
            query = query.filter(UserFilm.title.ilike(f"%{escape_like(search)}%", escape="\\"))

        total = query.order_by(None).with_entities(func.count(UserFilm.id)).scalar() or 0

        films = (
            query.order_by(UserFilm.created_at.desc(), UserFilm.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {"data": films, "page": page, "limit": limit, "total": total}

    @staticmethod
    def _find_duplicates(db: Session, user_id: int, titles: List[str]) -> List[str]:
        """Titles from the batch the user already owns, in one query"""
        rows = db.query(UserFilm.title).filter(
            UserFilm.user_id == user_id,
            UserFilm.title.in_(titles)
        ).all()
        return [title for (title,) in rows]

    @staticmethod
    def _load_generations(db: Session, user_id: int, generation_ids: Iterable[int]) -> Dict[int, GenerationLog]:
        """Generation logs referenced by the batch; every id must belong to the user"""
        wanted = set(generation_ids)
        if not wanted:
            return {}

        logs = db.query(GenerationLog).filter(
            GenerationLog.id.in_(wanted),
            GenerationLog.user_id == user_id
        ).all()
        found = {log.id: log for log in logs}

        missing = sorted(wanted - found.keys())
        if missing:
            raise ValidationFailedError(
                "Unknown generation_id",
                details={"generation_ids": missing}
            )
        return found

    @staticmethod
    def _bump_counter(generation: Optional[GenerationLog], status: str, delta: int) -> None:
        if generation is None:
            return
        column = STATUS_COUNTERS[status]
        current = getattr(generation, column) or 0
        setattr(generation, column, max(current + delta, 0))

    @staticmethod
    def create_films(db: Session, user_id: int, command: FilmCreateCommand) -> List[UserFilm]:
        """
        Insert a batch of films for a user, all or nothing.

        Raises:
            ConflictError: if the user already owns any title in the batch
                (lists every conflicting title, nothing is inserted)
            ValidationFailedError: if a generation_id is not one of the user's
        """
        titles = [film.title for film in command.films]

        repeated = sorted({title for title in titles if titles.count(title) > 1})
        if repeated:
            raise ConflictError(
                f"Following films appear more than once: {', '.join(repeated)}",
                titles=repeated
            )

        duplicates = FilmsService._find_duplicates(db, user_id, titles)
        if duplicates:
            logger.info(f"Rejected film batch for user {user_id}: duplicates {duplicates}")
            raise ConflictError(
                f"Following films already exist: {', '.join(duplicates)}",
                titles=duplicates
            )

        generations = FilmsService._load_generations(
            db, user_id, (film.generation_id for film in command.films if film.generation_id)
        )

        films = [
            UserFilm(
                user_id=user_id,
                title=film.title,
                year=film.year,
                description=film.description,
                genres=film.genres,
                actors=film.actors,
                director=film.director,
                status=film.status.value,
                generation_id=film.generation_id
            )
            for film in command.films
        ]
        for film in films:
            FilmsService._bump_counter(generations.get(film.generation_id), film.status, 1)

        db.add_all(films)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent create slipped past the pre-check
            db.rollback()
            conflicting = FilmsService._find_duplicates(db, user_id, titles)
            if not conflicting:
                raise
            raise ConflictError(
                f"Following films already exist: {', '.join(conflicting)}",
                titles=conflicting
            )

        for film in films:
            db.refresh(film)

        logger.info(f"Created {len(films)} films for user {user_id}")
        return films

    @staticmethod
    def update_film_status(db: Session, user_id: int, film_id: int, new_status: FilmStatus) -> UserFilm:
        """
        Change a film's status and append the audit row in one transaction.

        Raises:
            NotFoundError: film missing or owned by another user (same error)
        """
        film = db.query(UserFilm).filter(
            UserFilm.id == film_id,
            UserFilm.user_id == user_id
        ).with_for_update().first()

        if not film:
            raise NotFoundError(FILM_NOT_FOUND)

        prev_status = film.status
        next_status = FilmStatus(new_status).value
        if prev_status == next_status:
            db.rollback()
            return film

        film.status = next_status  # type: ignore
        db.add(FilmStatusLog(
            film_id=film.id,
            user_id=user_id,
            prev_status=prev_status,
            next_status=next_status
        ))

        if film.generation_id is not None:
            generation = db.get(GenerationLog, film.generation_id)
            FilmsService._bump_counter(generation, prev_status, -1)
            FilmsService._bump_counter(generation, next_status, 1)

        db.commit()
        db.refresh(film)

        logger.info(f"Film {film_id} of user {user_id}: {prev_status} -> {next_status}")
        return film

    @staticmethod
    def delete_film(db: Session, user_id: int, film_id: int) -> None:
        """
        Delete one of the user's films.

        Raises:
            NotFoundError: nothing deleted (missing or foreign film)
        """
        film = db.query(UserFilm).filter(
            UserFilm.id == film_id,
            UserFilm.user_id == user_id
        ).first()

        if not film:
            raise NotFoundError(FILM_NOT_FOUND)

        db.delete(film)
        db.commit()
        logger.info(f"Deleted film {film_id} of user {user_id}")
