"""Weighted-profile candidate query: every profile emotion plus indirect edges."""

from __future__ import annotations

from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import GameCandidate, ScoringRequest
from gamesoul.strategies.base import CandidateQuery


class WeightedProfileQuery(CandidateQuery):
    """Fetches games resonating with any emotion in the profile.

    Candidates carry the genre and characteristic ``RELATED_TO`` relations
    needed for the composite score.  Only runs on the weighted path, i.e.
    when the request holds a non-empty emotion map.
    """

    name = "weighted_profile"
    composite = True
    excludes_played = True

    def applies(self, request: ScoringRequest) -> bool:
        return request.is_weighted

    def fetch(self, port: GraphQueryPort, request: ScoringRequest) -> list[GameCandidate]:
        return port.find_games_by_profile(
            request.emotions,
            request.user_id,
            request.min_minutes,
            request.dealbreakers,
        )
