"""Dominant-emotion candidate query."""

from __future__ import annotations

from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import GameCandidate, ScoringRequest
from gamesoul.strategies.base import CandidateQuery


class DominantEmotionQuery(CandidateQuery):
    """Fetches games resonating with the request's dominant emotion only.

    This is the primary query of the single-emotion path and the first
    relaxation of the weighted path.
    """

    name = "dominant_emotion"

    def fetch(self, port: GraphQueryPort, request: ScoringRequest) -> list[GameCandidate]:
        return port.find_games_by_emotion(request.dominant_emotion, request.dealbreakers)
