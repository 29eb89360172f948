"""Exploration picks: unplayed games from genres the user has not touched lately."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Sequence
from datetime import datetime, timedelta, timezone

import numpy as np

import config
from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import GameRecommendation, ScoreBreakdown
from gamesoul.scoring import hits_dealbreaker, passes_duration

logger = logging.getLogger(__name__)

EXPLORATION_TAG = "exploration"


class ExplorationSelector:
    """Suggests games outside the user's recent genre history.

    Each candidate gets a random score in ``[offset, 1 + offset)`` drawn from
    a :class:`numpy.random.Generator`, so a seeded generator makes the picks
    reproducible.

    Args:
        port: The graph datastore.
        rng: Random source.  Defaults to ``np.random.default_rng`` seeded with
            ``config.EXPLORATION_SEED``.
        limit: Maximum number of picks.
        window_days: How far back "recent" genres reach.
        score_offset: Added to every random draw.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        port: GraphQueryPort,
        rng: np.random.Generator | None = None,
        limit: int = config.EXPLORATION_LIMIT,
        window_days: int = config.EXPLORATION_WINDOW_DAYS,
        score_offset: float = config.EXPLORATION_SCORE_OFFSET,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._port = port
        self._rng = rng if rng is not None else np.random.default_rng(config.EXPLORATION_SEED)
        self._limit = limit
        self._window = timedelta(days=window_days)
        self._offset = score_offset
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def select(
        self,
        user_id: str,
        min_minutes: int,
        dealbreakers: Sequence[str] = (),
        limit: int | None = None,
        exclude: Collection[str] = (),
    ) -> list[GameRecommendation]:
        """Return up to *limit* exploration picks for *user_id*.

        Games in *exclude* are dropped before the list is truncated.

        Raises:
            DatabaseError: If a datastore query fails.
        """
        limit = self._limit if limit is None else limit
        since = self._clock() - self._window
        recent = self._port.get_recent_genres(user_id, since)
        candidates = self._port.find_unplayed_genre_games(user_id, recent, min_minutes)
        played = self._port.get_played_game_ids(user_id)

        picks = []
        for candidate in candidates:
            if candidate.game_id in played or candidate.game_id in exclude:
                continue
            if not any(genre not in recent for genre in candidate.genres):
                continue
            if not passes_duration(candidate.max_minutes, min_minutes):
                continue
            if hits_dealbreaker(candidate.characteristics, dealbreakers):
                continue
            picks.append(
                GameRecommendation(
                    id=candidate.game_id,
                    name=candidate.name,
                    description=candidate.description,
                    score=float(self._rng.random()) + self._offset,
                    score_breakdown=ScoreBreakdown(),
                    genres=list(candidate.genres),
                    characteristics=list(candidate.characteristics),
                    matched_emotions=[EXPLORATION_TAG],
                )
            )

        picks.sort(key=lambda r: r.score, reverse=True)
        logger.debug(
            "Exploration for user %r: %d candidates outside %d recent genres",
            user_id,
            len(picks),
            len(recent),
        )
        return picks[:limit]
