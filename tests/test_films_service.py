import pytest
from sqlalchemy.exc import IntegrityError

from app.models.film import FilmStatusLog, UserFilm
from app.models.generation_log import GenerationLog
from app.schemas.films import FilmCreateCommand, FilmStatus
from app.services.films_service import FilmsService
from app.utils.errors import ConflictError, NotFoundError, ValidationFailedError

from conftest import make_movie


def film_command(*movies, status="to-watch", generation_id=None):
    films = []
    for movie in movies:
        film = dict(movie, status=status)
        if generation_id is not None:
            film["generation_id"] = generation_id
        films.append(film)
    return FilmCreateCommand(films=films)


def add_generation(db_session, user, count=3):
    log = GenerationLog(
        user_id=user.id, criteria_hash="", generated_count=count,
        generation_duration=1200, model="test/model",
    )
    db_session.add(log)
    db_session.commit()
    db_session.refresh(log)
    return log


# ==================== CREATE ====================

def test_create_films_persists_batch(db_session, test_user):
    films = FilmsService.create_films(
        db_session, test_user.id, film_command(make_movie("Heat"), make_movie("Ronin"))
    )

    assert [film.title for film in films] == ["Heat", "Ronin"]
    assert all(film.id and film.user_id == test_user.id for film in films)
    assert all(film.status == "to-watch" for film in films)
    assert db_session.query(UserFilm).count() == 2


def test_create_films_rejects_whole_batch_on_duplicate(db_session, test_user):
    FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))

    with pytest.raises(ConflictError) as exc_info:
        FilmsService.create_films(
            db_session, test_user.id, film_command(make_movie("Ronin"), make_movie("Heat"))
        )

    assert exc_info.value.titles == ["Heat"]
    assert "Heat" in exc_info.value.message
    assert db_session.query(UserFilm).filter(UserFilm.title == "Ronin").count() == 0


def test_create_films_rejects_repeated_title_in_batch(db_session, test_user):
    with pytest.raises(ConflictError) as exc_info:
        FilmsService.create_films(
            db_session, test_user.id, film_command(make_movie("Heat"), make_movie("Heat", 1986))
        )

    assert exc_info.value.titles == ["Heat"]
    assert db_session.query(UserFilm).count() == 0


def test_same_title_allowed_for_different_users(db_session, test_user, other_user):
    FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))
    FilmsService.create_films(db_session, other_user.id, film_command(make_movie("Heat")))

    assert db_session.query(UserFilm).count() == 2


def test_create_films_counts_generation_marks(db_session, test_user):
    generation = add_generation(db_session, test_user)

    FilmsService.create_films(
        db_session, test_user.id,
        film_command(make_movie("Heat"), make_movie("Ronin"), generation_id=generation.id)
    )
    FilmsService.create_films(
        db_session, test_user.id,
        film_command(make_movie("Thief"), status="rejected", generation_id=generation.id)
    )

    db_session.refresh(generation)
    assert generation.marked_as_to_watch_count == 2
    assert generation.marked_as_rejected_count == 1
    assert generation.marked_as_watched_count is None


def test_create_films_rejects_foreign_generation(db_session, test_user, other_user):
    generation = add_generation(db_session, other_user)

    with pytest.raises(ValidationFailedError):
        FilmsService.create_films(
            db_session, test_user.id, film_command(make_movie("Heat"), generation_id=generation.id)
        )

    assert db_session.query(UserFilm).count() == 0


# ==================== LIST ====================

def test_get_user_films_filters_and_paginates(db_session, test_user, other_user):
    FilmsService.create_films(
        db_session, test_user.id,
        film_command(*[make_movie(f"Film {i}") for i in range(5)])
    )
    FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Seen"), status="watched"))
    FilmsService.create_films(db_session, other_user.id, film_command(make_movie("Not Mine")))

    page = FilmsService.get_user_films(db_session, test_user.id, status=FilmStatus.TO_WATCH, page=2, limit=2)

    assert page["total"] == 5
    assert page["page"] == 2
    assert page["limit"] == 2
    assert len(page["data"]) == 2
    # Newest first: ids descend within the same second
    assert [film.title for film in page["data"]] == ["Film 2", "Film 1"]


def test_get_user_films_search_is_case_insensitive(db_session, test_user):
    FilmsService.create_films(
        db_session, test_user.id,
        film_command(make_movie("The Godfather"), make_movie("Godzilla"), make_movie("Heat"))
    )

    page = FilmsService.get_user_films(db_session, test_user.id, search="GOD")

    assert sorted(film.title for film in page["data"]) == ["Godzilla", "The Godfather"]
    assert page["total"] == 2


def test_get_user_films_search_treats_wildcards_literally(db_session, test_user):
    FilmsService.create_films(
        db_session, test_user.id,
        film_command(make_movie("100% Wolf"), make_movie("1000 Years"))
    )

    page = FilmsService.get_user_films(db_session, test_user.id, search="100%")

    assert [film.title for film in page["data"]] == ["100% Wolf"]


def test_get_user_films_page_past_end_is_empty(db_session, test_user):
    FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))

    page = FilmsService.get_user_films(db_session, test_user.id, page=5, limit=9)

    assert page["data"] == []
    assert page["total"] == 1


# ==================== STATUS ====================

def test_update_film_status_writes_audit_log(db_session, test_user):
    film = FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))[0]

    updated = FilmsService.update_film_status(db_session, test_user.id, film.id, FilmStatus.WATCHED)

    assert updated.status == "watched"
    log = db_session.query(FilmStatusLog).one()
    assert (log.film_id, log.user_id) == (film.id, test_user.id)
    assert (log.prev_status, log.next_status) == ("to-watch", "watched")


def test_update_film_status_same_status_is_noop(db_session, test_user):
    film = FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))[0]

    FilmsService.update_film_status(db_session, test_user.id, film.id, FilmStatus.TO_WATCH)

    assert db_session.query(FilmStatusLog).count() == 0


def test_update_film_status_moves_generation_counters(db_session, test_user):
    generation = add_generation(db_session, test_user)
    film = FilmsService.create_films(
        db_session, test_user.id, film_command(make_movie("Heat"), generation_id=generation.id)
    )[0]

    FilmsService.update_film_status(db_session, test_user.id, film.id, FilmStatus.REJECTED)

    db_session.refresh(generation)
    assert generation.marked_as_to_watch_count == 0
    assert generation.marked_as_rejected_count == 1


def test_update_foreign_film_is_not_found(db_session, test_user, other_user):
    film = FilmsService.create_films(db_session, other_user.id, film_command(make_movie("Heat")))[0]

    with pytest.raises(NotFoundError):
        FilmsService.update_film_status(db_session, test_user.id, film.id, FilmStatus.WATCHED)

    db_session.refresh(film)
    assert film.status == "to-watch"
    assert db_session.query(FilmStatusLog).count() == 0


# ==================== DELETE ====================

def test_delete_film(db_session, test_user):
    film = FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))[0]
    FilmsService.update_film_status(db_session, test_user.id, film.id, FilmStatus.WATCHED)

    FilmsService.delete_film(db_session, test_user.id, film.id)

    assert db_session.query(UserFilm).count() == 0
    assert db_session.query(FilmStatusLog).count() == 0


def test_delete_missing_film_is_not_found(db_session, test_user):
    with pytest.raises(NotFoundError):
        FilmsService.delete_film(db_session, test_user.id, 999)


def test_delete_foreign_film_is_not_found(db_session, test_user, other_user):
    film = FilmsService.create_films(db_session, other_user.id, film_command(make_movie("Heat")))[0]

    with pytest.raises(NotFoundError):
        FilmsService.delete_film(db_session, test_user.id, film.id)

    assert db_session.query(UserFilm).count() == 1


def test_non_duplicate_integrity_error_is_not_a_conflict(db_session, test_user, monkeypatch):
    def failing_commit():
        raise IntegrityError("INSERT INTO user_films", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(IntegrityError):
        FilmsService.create_films(db_session, test_user.id, film_command(make_movie("Heat")))
