"""Recommendation engine: orchestrates profiling, scoring, exploration and fallback."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import config
from gamesoul.catalog import DEFAULT_CATALOG, EmotionCatalog
from gamesoul.errors import DatabaseError, NotFoundError, ValidationError
from gamesoul.exploration import ExplorationSelector
from gamesoul.fallback import FallbackCatalog
from gamesoul.feedback import FeedbackProcessor, FeedbackResult
from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import (
    EmotionalProfile,
    GameRecommendation,
    RecommendationResult,
    ScoringRequest,
)
from gamesoul.profile_builder import ProfileBuilder
from gamesoul.scoring import ScoringEngine

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """Serves the five GameSoul operations on top of one graph store.

    Degrade policy for both recommendation flows:

    ==========================  =========================================
    Situation                   Outcome
    ==========================  =========================================
    Scoring succeeds            ranked emotional picks
    Fewer than 3 picks          exploration picks added (user id needed)
    Every candidate query fails curated fallback list, no exploration
    Profile write fails         logged; recommendations still returned
    ==========================  =========================================

    Args:
        port: The graph datastore.
        catalog: Reference data and questionnaire.
        profile_builder: Defaults to a builder over *catalog*.
        scoring_engine: Defaults to a :class:`ScoringEngine` over *port*.
        exploration: Defaults to an :class:`ExplorationSelector` over *port*.
        feedback: Defaults to a :class:`FeedbackProcessor` over *port*.
        fallback: Defaults to the built-in :class:`FallbackCatalog`.
    """

    def __init__(
        self,
        port: GraphQueryPort,
        catalog: EmotionCatalog = DEFAULT_CATALOG,
        profile_builder: ProfileBuilder | None = None,
        scoring_engine: ScoringEngine | None = None,
        exploration: ExplorationSelector | None = None,
        feedback: FeedbackProcessor | None = None,
        fallback: FallbackCatalog | None = None,
    ) -> None:
        self._port = port
        self._catalog = catalog
        self._profile_builder = profile_builder or ProfileBuilder(catalog)
        self._scoring = scoring_engine or ScoringEngine(port)
        self._exploration = exploration or ExplorationSelector(port)
        self._feedback = feedback or FeedbackProcessor(port, catalog=catalog)
        self._fallback = fallback or FallbackCatalog()

    # ------------------------------------------------------------------
    # Questionnaire flow
    # ------------------------------------------------------------------

    def get_questionnaire(self) -> dict[str, Any]:
        """Return the questionnaire plus the selectable emotions and characteristics.

        The reference lists come from the store when it has them.  Store
        emotions missing from the catalog are dropped.  An empty or failing
        store falls back to the catalog emotions and its dealbreaker
        candidates.
        """
        try:
            emotions = self._port.list_emotions()
            characteristics = self._port.list_characteristics()
        except DatabaseError as exc:
            logger.warning("Reference lists unavailable, using the catalog: %s", exc)
            emotions, characteristics = [], []
        emotions = [e for e in emotions if self._catalog.is_emotion(e)]

        return {
            "questions": [q.to_dict() for q in self._catalog.questions],
            "available_emotions": emotions or self._catalog.emotion_types(),
            "available_characteristics": (
                characteristics or list(self._catalog.dealbreakers)
            ),
        }

    def submit_questionnaire(
        self,
        user_id: str,
        answers: Mapping[str, str],
        dealbreakers: Sequence[str] = (),
    ) -> RecommendationResult:
        """Build and store the user's profile, then recommend from it.

        Raises:
            ValidationError: If the answers are incomplete or inconsistent.
        """
        dealbreakers = _clean_dealbreakers(dealbreakers)
        profile = self._profile_builder.build(user_id, answers)

        try:
            self._port.replace_profile(profile, config.PROFILE_RESONANCE_MIN_WEIGHT)
        except DatabaseError as exc:
            logger.error("Could not store profile for user %r: %s", user_id, exc)

        request = ScoringRequest(
            dominant_emotion=profile.dominant_emotion,
            emotions=dict(profile.emotions),
            user_id=user_id,
            dealbreakers=dealbreakers,
            min_minutes=profile.duration_band.min_minutes,
            limit=config.DEFAULT_RESULT_LIMIT,
        )
        return self._recommend(request, include_exploration=True)

    # ------------------------------------------------------------------
    # Direct flow
    # ------------------------------------------------------------------

    def recommend_for_emotion(
        self,
        emotion: str,
        minutes: int = config.DEFAULT_AVAILABLE_MINUTES,
        dealbreakers: Sequence[str] = (),
        user_id: str | None = None,
        include_exploration: bool = True,
    ) -> RecommendationResult:
        """Recommend games for a single stated emotion.

        Raises:
            ValidationError: If *emotion* is empty or *minutes* is outside
                the accepted range.
        """
        if not emotion or not isinstance(emotion, str):
            raise ValidationError("estado_emocional must be a non-empty string")
        if not config.MIN_AVAILABLE_MINUTES <= minutes <= config.MAX_AVAILABLE_MINUTES:
            raise ValidationError(
                f"tiempo_disponible must be between {config.MIN_AVAILABLE_MINUTES} "
                f"and {config.MAX_AVAILABLE_MINUTES}, got {minutes}"
            )

        request = ScoringRequest(
            dominant_emotion=emotion,
            user_id=user_id or None,
            dealbreakers=_clean_dealbreakers(dealbreakers),
            min_minutes=minutes,
            limit=config.DEFAULT_RESULT_LIMIT,
        )
        return self._recommend(request, include_exploration=include_exploration)

    # ------------------------------------------------------------------
    # Profile and feedback
    # ------------------------------------------------------------------

    def get_user_profile(self, user_id: str) -> EmotionalProfile:
        """Return the stored profile of *user_id*.

        Raises:
            ValidationError: If *user_id* is empty.
            NotFoundError: If the user has no stored profile.
        """
        if not user_id:
            raise ValidationError("user_id must be non-empty")
        profile = self._port.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError(f"No emotional profile for user {user_id!r}")
        return profile

    def submit_feedback(
        self,
        user_id: str,
        game_id: str,
        satisfaction: int,
        emotions: Sequence[str] | None = None,
    ) -> FeedbackResult:
        return self._feedback.process(user_id, game_id, satisfaction, emotions)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _recommend(
        self, request: ScoringRequest, include_exploration: bool
    ) -> RecommendationResult:
        try:
            emotional = self._scoring.score(request)
        except DatabaseError as exc:
            logger.error(
                "Scoring failed for %r, serving curated fallback: %s",
                request.dominant_emotion,
                exc,
            )
            picks = self._fallback.lookup(
                request.dominant_emotion, request.dealbreakers, request.min_minutes
            )
            return RecommendationResult(emotional=picks, used_fallback=True)

        exploration = None
        if include_exploration:
            exploration = self._explore(request, emotional)
        logger.info(
            "Recommended %d games (%s exploration) for %r",
            len(emotional),
            len(exploration) if exploration is not None else "no",
            request.dominant_emotion,
        )
        return RecommendationResult(emotional=emotional, exploration=exploration)

    def _explore(
        self, request: ScoringRequest, emotional: list[GameRecommendation]
    ) -> list[GameRecommendation] | None:
        if not request.user_id or len(emotional) >= config.EXPLORATION_THRESHOLD:
            return None
        try:
            return self._exploration.select(
                request.user_id,
                request.min_minutes,
                request.dealbreakers,
                exclude={r.id for r in emotional},
            )
        except DatabaseError as exc:
            logger.warning("Exploration failed for user %r: %s", request.user_id, exc)
            return None


def _clean_dealbreakers(dealbreakers: Sequence[str] | None) -> list[str]:
    cleaned = []
    for item in dealbreakers or ():
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"Invalid dealbreaker {item!r}")
        cleaned.append(item.strip())
    return cleaned
