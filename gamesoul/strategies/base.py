"""Abstract base class for all candidate query strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod

from gamesoul.graph.port import GraphQueryPort
from gamesoul.models import GameCandidate, ScoringRequest


class CandidateQuery(ABC):
    """One tier of the candidate retrieval cascade.

    The :class:`~gamesoul.scoring.ScoringEngine` walks its strategies in
    order.  A strategy that raises :class:`~gamesoul.errors.DatabaseError`
    is skipped; one whose candidates are all filtered out relaxes to the
    next strategy.

    Attributes:
        name: Variant name used in logs and error messages.
        composite: When true, candidates are ranked with the full
            direct + genre + characteristic score; otherwise the score is the
            dominant emotion's direct intensity alone.
        excludes_played: When true, the store query already drops games the
            user has played, so the engine skips the played-games lookup.
    """

    name: str = "candidate_query"
    composite: bool = False
    excludes_played: bool = False

    def applies(self, request: ScoringRequest) -> bool:
        """Return whether this strategy should run for *request*."""
        return True

    @abstractmethod
    def fetch(self, port: GraphQueryPort, request: ScoringRequest) -> list[GameCandidate]:
        """Return raw candidates for *request*.

        Args:
            port: The graph datastore.
            request: The scoring request being served.

        Returns:
            Candidates in store order.  The engine re-applies every
            exclusion filter, so prefiltering here is optional.

        Raises:
            DatabaseError: If the underlying query fails.
        """
