"""Scoring engine: candidate cascade, exclusion filters, composite score, ranking."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

import config
from gamesoul.errors import DatabaseError
from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import (
    GameCandidate,
    GameRecommendation,
    ScoreBreakdown,
    ScoringRequest,
)
from gamesoul.strategies.base import CandidateQuery
from gamesoul.strategies.direct import DirectMatchQuery
from gamesoul.strategies.dominant import DominantEmotionQuery
from gamesoul.strategies.weighted import WeightedProfileQuery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Policy constants for the composite score.

    ``genre_relation`` and ``characteristic_relation`` scale each
    ``RELATED_TO`` intensity inside its sub-score; ``direct``, ``genre`` and
    ``characteristic`` then combine the three sub-scores into the total.
    """

    direct: float = config.DIRECT_WEIGHT
    genre: float = config.GENRE_WEIGHT
    characteristic: float = config.CHARACTERISTIC_WEIGHT
    genre_relation: float = config.GENRE_RELATION_WEIGHT
    characteristic_relation: float = config.CHARACTERISTIC_RELATION_WEIGHT

    def vector(self) -> np.ndarray:
        return np.array([self.direct, self.genre, self.characteristic], dtype=np.float64)


def composite_score(
    direct: float,
    via_genre: float,
    via_characteristic: float,
    weights: ScoringWeights | None = None,
) -> float:
    """Combine the three sub-scores into the ranking total."""
    weights = weights or ScoringWeights()
    signals = np.array([direct, via_genre, via_characteristic], dtype=np.float64)
    return float(np.dot(signals, weights.vector()))


def passes_duration(max_minutes: int | None, requested_minutes: int) -> bool:
    """Return whether a game with ceiling *max_minutes* fits the request.

    A game without a duration band only fits a request for zero minutes.
    """
    if max_minutes is None:
        return requested_minutes <= 0
    return max_minutes >= requested_minutes


def hits_dealbreaker(characteristics: Iterable[str], dealbreakers: Iterable[str]) -> bool:
    return not set(dealbreakers).isdisjoint(characteristics)


def default_strategies() -> list[CandidateQuery]:
    """The cascade in priority order: weighted, dominant emotion, direct."""
    return [WeightedProfileQuery(), DominantEmotionQuery(), DirectMatchQuery()]


class ScoringEngine:
    """Ranks games for a :class:`~gamesoul.models.ScoringRequest`.

    Candidate retrieval walks *strategies* in order:

    ======================  =========================================
    Strategy                Score
    ======================  =========================================
    Weighted profile        direct + genre + characteristic composite
    Dominant emotion        dominant emotion's direct intensity
    Direct match            dominant emotion's direct intensity
    ======================  =========================================

    A strategy raising :class:`DatabaseError` is logged and skipped.  A
    strategy whose candidates are all excluded relaxes to the next one.  The
    first strategy with surviving candidates produces the result.

    Exclusion filters are always applied here, whatever the store already
    filtered: games played by the user, games whose duration ceiling is
    below the requested minutes, and games carrying a dealbreaker.

    Args:
        port: The graph datastore.
        weights: Composite score constants.
        strategies: Ordered candidate queries.  Defaults to
            :func:`default_strategies`.
    """

    def __init__(
        self,
        port: GraphQueryPort,
        weights: ScoringWeights | None = None,
        strategies: Sequence[CandidateQuery] | None = None,
    ) -> None:
        self._port = port
        self._weights = weights or ScoringWeights()
        self._strategies = list(strategies) if strategies is not None else default_strategies()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def score(self, request: ScoringRequest) -> list[GameRecommendation]:
        """Return up to ``request.limit`` recommendations, best first.

        Returns:
            Ranked recommendations, or ``[]`` when at least one strategy ran
            and none produced a surviving candidate.

        Raises:
            DatabaseError: If every applicable strategy failed.  A failed
                played-games lookup counts as a failure of the strategy
                that needed it.
        """
        played: set[str] | None = None

        attempted: list[str] = []
        failed: list[str] = []
        for strategy in self._strategies:
            if not strategy.applies(request):
                continue
            attempted.append(strategy.name)
            try:
                candidates = strategy.fetch(self._port, request)
                if played is None and not strategy.excludes_played:
                    played = self._played_ids(request.user_id)
            except DatabaseError as exc:
                logger.warning("Candidate query %s failed: %s", strategy.name, exc)
                failed.append(strategy.name)
                continue

            kept = self.filter_candidates(candidates, request, played or set())
            if not kept:
                logger.info(
                    "Candidate query %s left no games for %r (%d fetched); relaxing.",
                    strategy.name,
                    request.dominant_emotion,
                    len(candidates),
                )
                continue

            ranked = self.rank(kept, request, composite=strategy.composite)
            logger.debug(
                "Candidate query %s ranked %d of %d games for %r",
                strategy.name,
                len(ranked),
                len(kept),
                request.dominant_emotion,
            )
            return ranked

        if attempted and len(failed) == len(attempted):
            raise DatabaseError(
                f"All candidate queries failed: {', '.join(attempted)}",
                variant=failed[-1],
            )
        return []

    def filter_candidates(
        self,
        candidates: Iterable[GameCandidate],
        request: ScoringRequest,
        played: set[str],
    ) -> list[GameCandidate]:
        """Drop played, too-short and dealbreaker games, keeping store order."""
        kept = []
        for candidate in candidates:
            if candidate.game_id in played:
                continue
            if not passes_duration(candidate.max_minutes, request.min_minutes):
                continue
            if hits_dealbreaker(candidate.characteristics, request.dealbreakers):
                continue
            kept.append(candidate)
        return kept

    def rank(
        self,
        candidates: Sequence[GameCandidate],
        request: ScoringRequest,
        composite: bool,
    ) -> list[GameRecommendation]:
        """Score *candidates*, stable-sort descending and truncate."""
        if composite:
            scored = [self._score_composite(c, request) for c in candidates]
        else:
            scored = [self._score_direct(c, request) for c in candidates]
        scored = sorted(scored, key=lambda r: r.score, reverse=True)
        return scored[: request.limit]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _played_ids(self, user_id: str | None) -> set[str]:
        if not user_id:
            return set()
        return self._port.get_played_game_ids(user_id)

    def _score_composite(
        self, candidate: GameCandidate, request: ScoringRequest
    ) -> GameRecommendation:
        profile = request.emotions
        matched = [e for e in profile if e in candidate.intensities]
        direct = sum(candidate.intensities[e] for e in matched)

        genres = set(candidate.genres)
        via_genre = sum(
            r.intensity * self._weights.genre_relation
            for r in candidate.genre_relations
            if r.emotion in profile and r.source in genres
        )
        characteristics = set(candidate.characteristics)
        via_characteristic = sum(
            r.intensity * self._weights.characteristic_relation
            for r in candidate.characteristic_relations
            if r.emotion in profile and r.source in characteristics
        )

        total = composite_score(direct, via_genre, via_characteristic, self._weights)
        return _recommendation(
            candidate,
            total,
            ScoreBreakdown(direct, via_genre, via_characteristic),
            matched,
        )

    def _score_direct(
        self, candidate: GameCandidate, request: ScoringRequest
    ) -> GameRecommendation:
        emotion = request.dominant_emotion
        intensity = candidate.intensities.get(emotion, 0.0)
        return _recommendation(
            candidate, intensity, ScoreBreakdown(direct=intensity), [emotion]
        )


def _recommendation(
    candidate: GameCandidate,
    score: float,
    breakdown: ScoreBreakdown,
    matched_emotions: list[str],
) -> GameRecommendation:
    return GameRecommendation(
        id=candidate.game_id,
        name=candidate.name,
        description=candidate.description,
        score=score,
        score_breakdown=breakdown,
        genres=list(candidate.genres),
        characteristics=list(candidate.characteristics),
        matched_emotions=matched_emotions,
    )
