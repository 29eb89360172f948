"""Direct-match candidate query, the most relaxed tier."""

from __future__ import annotations

from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import GameCandidate, ScoringRequest
from gamesoul.strategies.base import CandidateQuery


class DirectMatchQuery(CandidateQuery):
    """Fetches games with a direct ``RESONATES_WITH`` edge to the dominant emotion.

    No genre or ``RELATED_TO`` joins are made, so the query keeps working
    when those parts of the graph are missing or broken.
    """

    name = "direct_match"

    def fetch(self, port: GraphQueryPort, request: ScoringRequest) -> list[GameCandidate]:
        return port.find_direct_matches(request.dominant_emotion)
