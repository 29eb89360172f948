"""Abstract contract between the scoring core and the graph datastore."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime

from gamesoul.models import EmotionalProfile, GameCandidate, ResonanceOwner


def clamp_intensity(value: float) -> float:
    """Clamp a resonance intensity into ``[0.0, 1.0]``."""
    return max(0.0, min(1.0, float(value)))


class GraphQueryPort(ABC):
    """Operations the engine needs from the graph datastore.

    Every method either returns a (possibly empty) result or raises
    :class:`~gamesoul.errors.DatabaseError`.  Implementations never repair
    the schema on the fly; reference nodes are bootstrapped once at startup.
    """

    # ------------------------------------------------------------------
    # Candidate queries
    # ------------------------------------------------------------------

    @abstractmethod
    def find_games_by_emotion(
        self, emotion: str, dealbreakers: Sequence[str]
    ) -> list[GameCandidate]:
        """Return games resonating with *emotion*, with characteristics and genres.

        Each candidate's ``intensities`` holds exactly ``{emotion: intensity}``.
        """

    @abstractmethod
    def find_games_by_profile(
        self,
        emotions: Mapping[str, float],
        user_id: str | None,
        min_minutes: int,
        dealbreakers: Sequence[str],
    ) -> list[GameCandidate]:
        """Return games resonating with any emotion in *emotions*.

        Candidates carry per-emotion intensities, genres, characteristics and
        the genre/characteristic ``RELATED_TO`` edges touching those emotions.
        Implementations may prefilter on *user_id*, *min_minutes* and
        *dealbreakers*; the engine re-applies every filter regardless.
        """

    @abstractmethod
    def find_direct_matches(self, emotion: str) -> list[GameCandidate]:
        """Return games with a direct ``RESONATES_WITH`` edge to *emotion*.

        Only the direct clause is evaluated: no genre or ``RELATED_TO`` joins.
        Characteristics and the duration ceiling are still reported.
        """

    @abstractmethod
    def find_unplayed_genre_games(
        self, user_id: str, excluded_genres: set[str], min_minutes: int
    ) -> list[GameCandidate]:
        """Return unplayed games with at least one genre outside *excluded_genres*."""

    # ------------------------------------------------------------------
    # User history
    # ------------------------------------------------------------------

    @abstractmethod
    def get_played_game_ids(self, user_id: str) -> set[str]:
        """Return the ids of every game *user_id* has played."""

    @abstractmethod
    def get_recent_genres(self, user_id: str, since: datetime) -> set[str]:
        """Return genres of games *user_id* played at or after *since*."""

    @abstractmethod
    def get_user_resonance(self, user_id: str, emotion: str) -> float | None:
        """Return the user's ``RESONATES_WITH`` intensity for *emotion*, if any."""

    @abstractmethod
    def get_user_profile(self, user_id: str) -> EmotionalProfile | None:
        """Return the stored profile for *user_id*, or ``None``."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def upsert_played(self, user_id: str, game_id: str, satisfaction: int) -> None:
        """Create or update the ``PLAYED`` edge with a fresh timestamp."""

    @abstractmethod
    def record_experienced(
        self, user_id: str, game_id: str, emotions: Sequence[str]
    ) -> None:
        """Record which catalog *emotions* the user felt while playing *game_id*."""

    @abstractmethod
    def upsert_resonance(
        self,
        owner_id: str,
        emotion: str,
        intensity: float,
        owner: ResonanceOwner = ResonanceOwner.USER,
    ) -> None:
        """Set the ``RESONATES_WITH`` intensity from a user or game to *emotion*.

        *owner* selects whether *owner_id* names a user or a game.  The
        stored value is clamped to ``[0.0, 1.0]``.
        """

    @abstractmethod
    def replace_emotional_state(
        self, user_id: str, emotion: str, intensity: float = 1.0
    ) -> None:
        """Retire the user's current emotional state and record *emotion*."""

    @abstractmethod
    def set_preferred_duration(self, user_id: str, band_name: str) -> None:
        """Point the user's single ``PREFERS_DURATION`` edge at *band_name*."""

    @abstractmethod
    def replace_profile(self, profile: EmotionalProfile, min_weight: float) -> None:
        """Persist *profile* as one unit.

        Replaces the emotional state with the dominant emotion, sets the
        preferred duration and upserts a user resonance for every emotion
        weighted above *min_weight*.
        """

    # ------------------------------------------------------------------
    # Reference lists
    # ------------------------------------------------------------------

    @abstractmethod
    def list_emotions(self) -> list[str]:
        """Return all emotion types present in the graph."""

    @abstractmethod
    def list_characteristics(self) -> list[str]:
        """Return all characteristic names present in the graph."""
