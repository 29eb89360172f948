"""In-process graph store: used by tests and by ``GAMESOUL_STORE=memory``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

import config
from gamesoul.catalog import DEFAULT_CATALOG, EmotionCatalog
from gamesoul.graph.port import GraphQueryPort, clamp_intensity
from gamesoul.models import EmotionalProfile, GameCandidate, Relation, ResonanceOwner

logger = logging.getLogger(__name__)


@dataclass
class GameNode:
    """A game and its outgoing edges."""

    game_id: str
    name: str
    description: str = ""
    resonances: dict[str, float] = field(default_factory=dict)
    genres: list[str] = field(default_factory=list)
    characteristics: list[str] = field(default_factory=list)
    duration_bands: list[str] = field(default_factory=list)


@dataclass
class PlayedEdge:
    satisfaction: int
    played_at: datetime


@dataclass
class UserNode:
    """A user and its outgoing edges."""

    user_id: str
    emotional_state: tuple[str, float] | None = None
    preferred_duration: str | None = None
    resonances: dict[str, float] = field(default_factory=dict)
    played: dict[str, PlayedEdge] = field(default_factory=dict)
    experienced: dict[str, set[str]] = field(default_factory=dict)


class InMemoryGraphStore(GraphQueryPort):
    """Thread-safe dict-backed implementation of :class:`GraphQueryPort`.

    Candidate queries return games in insertion order, which keeps ranking
    ties reproducible.

    Args:
        catalog: Resolves duration band names to minute ranges.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        catalog: EmotionCatalog = DEFAULT_CATALOG,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._catalog = catalog
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._games: dict[str, GameNode] = {}
        self._users: dict[str, UserNode] = {}
        self._genre_relations: dict[str, dict[str, float]] = {}
        self._characteristic_relations: dict[str, dict[str, float]] = {}

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_game(self, game: GameNode) -> None:
        with self._lock:
            self._games[game.game_id] = game

    def relate_genre(self, genre: str, emotion: str, intensity: float) -> None:
        with self._lock:
            self._genre_relations.setdefault(genre, {})[emotion] = intensity

    def relate_characteristic(self, name: str, emotion: str, intensity: float) -> None:
        with self._lock:
            self._characteristic_relations.setdefault(name, {})[emotion] = intensity

    def record_play_at(
        self, user_id: str, game_id: str, satisfaction: int, played_at: datetime
    ) -> None:
        """Record a play with an explicit timestamp (history seeding)."""
        with self._lock:
            user = self._get_or_create_user(user_id)
            user.played[game_id] = PlayedEdge(satisfaction, played_at)

    # ------------------------------------------------------------------
    # Candidate queries
    # ------------------------------------------------------------------

    def find_games_by_emotion(
        self, emotion: str, dealbreakers: Sequence[str]
    ) -> list[GameCandidate]:
        blocked = set(dealbreakers)
        with self._lock:
            return [
                self._to_candidate(game, {emotion: game.resonances[emotion]})
                for game in self._games.values()
                if emotion in game.resonances
                and not blocked.intersection(game.characteristics)
            ]

    def find_games_by_profile(
        self,
        emotions: Mapping[str, float],
        user_id: str | None,
        min_minutes: int,
        dealbreakers: Sequence[str],
    ) -> list[GameCandidate]:
        blocked = set(dealbreakers)
        with self._lock:
            played = self._played_ids(user_id) if user_id else set()
            candidates = []
            for game in self._games.values():
                matched = {
                    e: game.resonances[e] for e in emotions if e in game.resonances
                }
                if not matched or game.game_id in played:
                    continue
                if blocked.intersection(game.characteristics):
                    continue
                if not self._fits(game, min_minutes):
                    continue
                candidate = self._to_candidate(game, matched)
                candidate.genre_relations = self._relations(
                    self._genre_relations, game.genres, emotions
                )
                candidate.characteristic_relations = self._relations(
                    self._characteristic_relations, game.characteristics, emotions
                )
                candidates.append(candidate)
            return candidates

    def find_direct_matches(self, emotion: str) -> list[GameCandidate]:
        with self._lock:
            candidates = []
            for game in self._games.values():
                if emotion not in game.resonances:
                    continue
                candidate = self._to_candidate(game, {emotion: game.resonances[emotion]})
                candidate.genres = []
                candidates.append(candidate)
            return candidates

    def find_unplayed_genre_games(
        self, user_id: str, excluded_genres: set[str], min_minutes: int
    ) -> list[GameCandidate]:
        with self._lock:
            played = self._played_ids(user_id)
            return [
                self._to_candidate(game, {})
                for game in self._games.values()
                if game.game_id not in played
                and any(g not in excluded_genres for g in game.genres)
                and self._fits(game, min_minutes)
            ]

    # ------------------------------------------------------------------
    # User history
    # ------------------------------------------------------------------

    def get_played_game_ids(self, user_id: str) -> set[str]:
        with self._lock:
            return self._played_ids(user_id)

    def get_recent_genres(self, user_id: str, since: datetime) -> set[str]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return set()
            genres: set[str] = set()
            for game_id, edge in user.played.items():
                game = self._games.get(game_id)
                if game and edge.played_at >= since:
                    genres.update(game.genres)
            return genres

    def get_user_resonance(self, user_id: str, emotion: str) -> float | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.resonances.get(emotion) if user else None

    def get_user_profile(self, user_id: str) -> EmotionalProfile | None:
        with self._lock:
            user = self._users.get(user_id)
            if user is None or user.emotional_state is None:
                return None
            band = self._catalog.get_band(
                user.preferred_duration or config.DEFAULT_DURATION_BAND
            ) or self._catalog.get_band(config.DEFAULT_DURATION_BAND)
            ordered = sorted(user.resonances, key=self._catalog.emotion_rank)
            return EmotionalProfile(
                user_id=user_id,
                emotions={e: user.resonances[e] for e in ordered},
                dominant_emotion=user.emotional_state[0],
                duration_band=band,
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_played(self, user_id: str, game_id: str, satisfaction: int) -> None:
        with self._lock:
            user = self._get_or_create_user(user_id)
            if game_id not in self._games:
                self._games[game_id] = GameNode(game_id=game_id, name=game_id)
            user.played[game_id] = PlayedEdge(satisfaction, self._clock())

    def record_experienced(
        self, user_id: str, game_id: str, emotions: Sequence[str]
    ) -> None:
        with self._lock:
            user = self._get_or_create_user(user_id)
            user.experienced.setdefault(game_id, set()).update(emotions)

    def upsert_resonance(
        self,
        owner_id: str,
        emotion: str,
        intensity: float,
        owner: ResonanceOwner = ResonanceOwner.USER,
    ) -> None:
        value = clamp_intensity(intensity)
        with self._lock:
            if ResonanceOwner(owner) is ResonanceOwner.GAME:
                game = self._games.get(owner_id)
                if game is None:
                    logger.warning("Resonance for unknown game %r ignored.", owner_id)
                    return
                game.resonances[emotion] = value
            else:
                self._get_or_create_user(owner_id).resonances[emotion] = value

    def replace_emotional_state(
        self, user_id: str, emotion: str, intensity: float = 1.0
    ) -> None:
        with self._lock:
            self._get_or_create_user(user_id).emotional_state = (emotion, intensity)

    def set_preferred_duration(self, user_id: str, band_name: str) -> None:
        with self._lock:
            self._get_or_create_user(user_id).preferred_duration = band_name

    def replace_profile(self, profile: EmotionalProfile, min_weight: float) -> None:
        with self._lock:
            self.replace_emotional_state(
                profile.user_id,
                profile.dominant_emotion,
                profile.emotions.get(profile.dominant_emotion, 1.0),
            )
            self.set_preferred_duration(profile.user_id, profile.duration_band.name)
            for emotion, weight in profile.emotions.items():
                if weight > min_weight:
                    self.upsert_resonance(profile.user_id, emotion, weight)

    # ------------------------------------------------------------------
    # Reference lists
    # ------------------------------------------------------------------

    def list_emotions(self) -> list[str]:
        with self._lock:
            found = {e for g in self._games.values() for e in g.resonances}
        return sorted(found, key=self._catalog.emotion_rank)

    def list_characteristics(self) -> list[str]:
        with self._lock:
            return sorted({c for g in self._games.values() for c in g.characteristics})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_or_create_user(self, user_id: str) -> UserNode:
        if user_id not in self._users:
            self._users[user_id] = UserNode(user_id=user_id)
        return self._users[user_id]

    def _played_ids(self, user_id: str) -> set[str]:
        user = self._users.get(user_id)
        return set(user.played) if user else set()

    def _max_minutes(self, game: GameNode) -> int | None:
        ceilings = [
            band.max_minutes
            for band in (self._catalog.get_band(b) for b in game.duration_bands)
            if band is not None
        ]
        return max(ceilings) if ceilings else None

    def _fits(self, game: GameNode, min_minutes: int) -> bool:
        ceiling = self._max_minutes(game)
        if ceiling is None:
            return min_minutes <= 0
        return ceiling >= min_minutes

    def _to_candidate(self, game: GameNode, intensities: dict[str, float]) -> GameCandidate:
        return GameCandidate(
            game_id=game.game_id,
            name=game.name,
            description=game.description,
            intensities=dict(intensities),
            genres=list(game.genres),
            characteristics=list(game.characteristics),
            max_minutes=self._max_minutes(game),
        )

    @staticmethod
    def _relations(
        table: dict[str, dict[str, float]],
        sources: list[str],
        emotions: Mapping[str, float],
    ) -> list[Relation]:
        return [
            Relation(source, emotion, intensity)
            for source in sources
            for emotion, intensity in table.get(source, {}).items()
            if emotion in emotions
        ]


# ---------------------------------------------------------------------------
# Demo catalog
# ---------------------------------------------------------------------------

DEMO_GAMES: list[GameNode] = [
    GameNode("game1", "Stardew Valley", "Farming sim: grow crops, fish, mine and make friends.",
             {"relaxing": 0.95, "social": 0.6, "creative": 0.5},
             ["simulation"], ["collectible", "social"], ["medium"]),
    GameNode("game4", "Animal Crossing: New Horizons", "Build a community on a deserted island.",
             {"relaxing": 0.9, "joyful": 0.7},
             ["simulation"], ["collectible"], ["short"]),
    GameNode("game11", "Factorio", "Build and automate ever larger factories.",
             {"creative": 0.9, "challenging": 0.6},
             ["strategy", "building"], ["strategy", "puzzles"], ["long"]),
    GameNode("game12", "Hades", "Action roguelike with a rich story and frantic combat.",
             {"challenging": 0.85, "joyful": 0.5},
             ["action", "roguelike"], ["combat", "story", "fast-paced"], ["short"]),
    GameNode("game13", "Among Us", "Social deduction: find the impostors among the crew.",
             {"social": 0.95, "competitive": 0.6},
             ["party", "deduction"], ["social", "teamwork"], ["very_short"]),
    GameNode("game16", "Elden Ring", "Open-world action RPG with demanding combat.",
             {"challenging": 0.9, "exploration": 0.8},
             ["action", "rpg"], ["combat", "difficult", "exploration"], ["very_long"]),
    GameNode("game21", "No Man's Sky", "Space exploration across a procedural universe.",
             {"exploration": 0.9, "contemplative": 0.5},
             ["exploration", "adventure"], ["exploration", "atmosphere"], ["long"]),
    GameNode("game22", "Journey", "A wordless pilgrimage across a luminous desert.",
             {"contemplative": 0.9, "melancholic": 0.7, "relaxing": 0.6},
             ["adventure", "indie"], ["artistic", "atmosphere"], ["medium"]),
    GameNode("game27", "Subnautica", "Underwater survival and exploration on an alien world.",
             {"exploration": 0.85, "contemplative": 0.4},
             ["survival", "exploration"], ["exploration", "atmosphere"], ["very_long"]),
    GameNode("game28", "Slay the Spire", "Deck-building roguelike with turn-based strategy.",
             {"challenging": 0.9, "competitive": 0.4},
             ["strategy", "roguelike"], ["strategy", "challenging"], ["medium"]),
]

DEMO_GENRE_RELATIONS: list[tuple[str, str, float]] = [
    ("simulation", "relaxing", 0.8),
    ("roguelike", "challenging", 0.7),
    ("adventure", "exploration", 0.7),
    ("party", "social", 0.9),
    ("strategy", "contemplative", 0.4),
]

DEMO_CHARACTERISTIC_RELATIONS: list[tuple[str, str, float]] = [
    ("atmosphere", "contemplative", 0.6),
    ("difficult", "challenging", 0.8),
    ("collectible", "relaxing", 0.4),
    ("teamwork", "social", 0.8),
    ("puzzles", "challenging", 0.5),
]


def seed_demo_catalog(store: InMemoryGraphStore) -> None:
    """Load the demo games and ``RELATED_TO`` edges into *store*."""
    for game in DEMO_GAMES:
        store.add_game(
            GameNode(
                game.game_id,
                game.name,
                game.description,
                dict(game.resonances),
                list(game.genres),
                list(game.characteristics),
                list(game.duration_bands),
            )
        )
    for genre, emotion, intensity in DEMO_GENRE_RELATIONS:
        store.relate_genre(genre, emotion, intensity)
    for name, emotion, intensity in DEMO_CHARACTERISTIC_RELATIONS:
        store.relate_characteristic(name, emotion, intensity)
    logger.info("Seeded in-memory graph with %d demo games.", len(DEMO_GAMES))
