"""
Recommendation Service - AI-assisted film suggestions

Turns structured criteria (or the user's stored preferences) into a prompt,
asks the OpenRouter model for films, parses its JSON reply and drops films the
user already tracks. Every request leaves exactly one audit row behind: a
GenerationLog on success or a GenerationErrorLog on failure.
"""
import hashlib
import json
import logging
import re
import time
from typing import List, Optional, Set

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.models.film import UserFilm
from app.models.generation_log import GenerationErrorLog, GenerationLog
from app.models.user_preferences import UserPreferences
from app.schemas.recommendations import RecommendationCriteria, RecommendedFilm
from app.services.openrouter_service import OpenRouterService
from app.utils.errors import UpstreamFailureError

logger = logging.getLogger(__name__)

GENERATION_ERROR = "GENERATION_ERROR"

PROMPT_INSTRUCTIONS = (
    "For every film include the full list of main cast members. "
    "Return the films as a JSON array under the \"movies\" key, "
    "sorted by release year in descending order."
)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class RecommendationParseError(UpstreamFailureError):
    """The model answered, but not with the expected {movies: [...]} JSON"""
    code = "INVALID_RECOMMENDATION_FORMAT"


class RecommendationService:
    """
    Request-scoped service. The OpenRouter client is shared across requests
    and passed in; the database session belongs to the current request.
    """

    def __init__(self, db: Session, openrouter: OpenRouterService):
        self.db = db
        self.openrouter = openrouter

    # ==================== PROMPT & HASH ====================

    @staticmethod
    def build_prompt(criteria: Optional[RecommendationCriteria]) -> str:
        """Deterministic prompt: same criteria always yields the same text"""
        clauses: List[str] = []

        if criteria is not None:
            if criteria.actors:
                clauses.append(f"starring {', '.join(criteria.actors)}")
            if criteria.directors:
                clauses.append(f"directed by {', '.join(criteria.directors)}")
            if criteria.genres:
                clauses.append(f"in the following genres: {', '.join(criteria.genres)}")

            year_from, year_to = criteria.year_from, criteria.year_to
            if year_from is not None and year_to is not None:
                clauses.append(f"released between {year_from} and {year_to}")
            elif year_from is not None:
                clauses.append(f"released in {year_from} or later")
            elif year_to is not None:
                clauses.append(f"released in {year_to} or earlier")

        if clauses:
            request = "Recommend films " + "; ".join(clauses) + "."
        else:
            request = "Recommend popular, critically acclaimed films."

        return f"{request} {PROMPT_INSTRUCTIONS}"

    @staticmethod
    def generate_criteria_hash(criteria: Optional[RecommendationCriteria]) -> str:
        """MD5 of the canonical criteria JSON; empty string when there is none"""
        if criteria is None:
            return ""
        canonical = json.dumps(criteria.model_dump(exclude_none=True), sort_keys=True)
        return hashlib.md5(canonical.encode("utf-8")).hexdigest()

    # ==================== PARSING ====================

    @staticmethod
    def parse_recommendations(content: str) -> List[RecommendedFilm]:
        """
        Parse the model's reply into films.

        Raises:
            RecommendationParseError: on invalid JSON, a missing "movies" list
                or any movie lacking a required field
        """
        text = (content or "").strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RecommendationParseError(f"Model reply is not valid JSON: {exc.msg}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("movies"), list):
            raise RecommendationParseError("Model reply does not contain a \"movies\" array")

        films = []
        for position, raw in enumerate(data["movies"]):
            try:
                films.append(RecommendedFilm.model_validate(raw))
            except ValidationError as exc:
                raise RecommendationParseError(
                    f"Movie at position {position} is invalid: {exc.errors()[0]['msg']}"
                ) from exc
        return films

    # ==================== MAIN FLOW ====================

    def get_recommendations(self, user_id: int, criteria: Optional[RecommendationCriteria] = None) -> dict:
        """
        Generate recommendations for a user.

        Args:
            user_id: requesting user
            criteria: explicit criteria; None falls back to stored preferences

        Returns:
            {"recommendations": [...], "generation_id": int, "generated_count": int}
        """
        start = time.monotonic()
        criteria_hash = self.generate_criteria_hash(criteria)

        try:
            if criteria is None:
                criteria = self._load_preferences_as_criteria(user_id)
                criteria_hash = self.generate_criteria_hash(criteria)

            prompt = self.build_prompt(criteria)
            response = self.openrouter.send_chat_request(prompt)

            if not response.choices:
                raise RecommendationParseError("Model reply contains no choices")
            films = self.parse_recommendations(response.choices[0].message.content)

            owned = self._owned_titles(user_id)
            recommendations = [film for film in films if film.title.lower() not in owned]

            generation_log = GenerationLog(
                user_id=user_id,
                criteria_hash=criteria_hash,
                generated_count=len(recommendations),
                generation_duration=int((time.monotonic() - start) * 1000),
                model=self.openrouter.model,
            )
            self.db.add(generation_log)
            self.db.commit()
            self.db.refresh(generation_log)

        except Exception as exc:
            self.db.rollback()
            self._log_failure(user_id, criteria_hash, exc)
            raise

        logger.info(
            f"Generated {len(recommendations)} recommendations for user {user_id} "
            f"(generation_id={generation_log.id}, {len(films) - len(recommendations)} already owned)"
        )
        return {
            "recommendations": recommendations,
            "generation_id": generation_log.id,
            "generated_count": generation_log.generated_count,
        }

    # ==================== HELPERS ====================

    def _load_preferences_as_criteria(self, user_id: int) -> Optional[RecommendationCriteria]:
        preferences = self.db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()
        if preferences is None:
            logger.debug(f"No stored preferences for user {user_id}, using empty criteria")
            return None

        return RecommendationCriteria.model_construct(
            actors=preferences.actors or None,
            directors=preferences.directors or None,
            genres=preferences.genres or None,
            year_from=preferences.year_from,
            year_to=preferences.year_to,
        )

    def _owned_titles(self, user_id: int) -> Set[str]:
        rows = self.db.query(UserFilm.title).filter(UserFilm.user_id == user_id).all()
        return {title.lower() for (title,) in rows}

    def _log_failure(self, user_id: int, criteria_hash: str, exc: Exception) -> None:
        """Persist the failure. Not retried; a failing write propagates."""
        error_code = getattr(exc, "code", None) or GENERATION_ERROR
        logger.error(f"Recommendation generation failed for user {user_id}: [{error_code}] {exc}")

        self.db.add(GenerationErrorLog(
            user_id=user_id,
            error_message=str(exc) or exc.__class__.__name__,
            error_code=error_code,
            criteria_hash=criteria_hash,
            model=self.openrouter.model,
        ))
        self.db.commit()
