"""Static curated recommendations served when the datastore is unavailable."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from gamesoul.models import GameRecommendation
from gamesoul.scoring import hits_dealbreaker, passes_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CuratedGame:
    """One hand-picked entry of the fallback lists."""

    id: str
    name: str
    description: str
    score: float
    genres: tuple[str, ...]
    characteristics: tuple[str, ...]
    max_minutes: int

    def to_recommendation(self, emotion: str) -> GameRecommendation:
        return GameRecommendation(
            id=self.id,
            name=self.name,
            description=self.description,
            score=self.score,
            score_breakdown=None,
            genres=list(self.genres),
            characteristics=list(self.characteristics),
            matched_emotions=[emotion],
        )


_STARDEW = CuratedGame(
    "game1",
    "Stardew Valley",
    "A farming sim where you grow crops, fish, mine and make friends.",
    0.95,
    ("simulation",),
    ("relaxing", "social"),
    180,
)
_ANIMAL_CROSSING = CuratedGame(
    "game4",
    "Animal Crossing: New Horizons",
    "A life sim where you build a community on a deserted island.",
    0.9,
    ("simulation",),
    ("collectible", "relaxing"),
    60,
)
_SATISFACTORY = CuratedGame(
    "game30",
    "Satisfactory",
    "A first-person factory building game on an alien planet.",
    0.7,
    ("simulation", "building"),
    ("relaxing", "creative"),
    480,
)
_ELDEN_RING = CuratedGame(
    "game16",
    "Elden Ring",
    "An open-world action RPG with demanding combat and non-linear exploration.",
    0.9,
    ("action", "RPG"),
    ("challenging", "exploration"),
    9999,
)
_SLAY_THE_SPIRE = CuratedGame(
    "game28",
    "Slay the Spire",
    "A deck-building roguelike with turn-based strategy.",
    0.9,
    ("strategy", "roguelike"),
    ("challenging",),
    180,
)
_HADES = CuratedGame(
    "game12",
    "Hades",
    "An action roguelike with a rich story and frantic combat.",
    0.85,
    ("action", "roguelike"),
    ("challenging", "story"),
    60,
)
_NO_MANS_SKY = CuratedGame(
    "game21",
    "No Man's Sky",
    "Space exploration across a practically infinite procedural universe.",
    0.9,
    ("exploration", "adventure"),
    ("exploration", "space"),
    480,
)
_GOD_OF_WAR = CuratedGame(
    "game20",
    "God of War (2018)",
    "An action adventure with visceral combat and a moving father-son story.",
    0.8,
    ("adventure", "action"),
    ("exploration", "combat"),
    480,
)
_SUBNAUTICA = CuratedGame(
    "game27",
    "Subnautica",
    "Underwater survival and exploration on an alien ocean planet.",
    0.85,
    ("exploration", "survival"),
    ("exploration", "atmosphere"),
    480,
)
_FACTORIO = CuratedGame(
    "game11",
    "Factorio",
    "Factory building and management with a focus on automation.",
    0.9,
    ("strategy", "building"),
    ("creative", "optimization"),
    9999,
)
_AMONG_US = CuratedGame(
    "game13",
    "Among Us",
    "A social deduction game about finding the impostors in the crew.",
    0.95,
    ("party", "deduction"),
    ("social", "cooperative"),
    30,
)
_FFXIV = CuratedGame(
    "game29",
    "Final Fantasy XIV",
    "An MMORPG with a rich story, varied classes and plenty of content.",
    0.85,
    ("MMORPG", "RPG"),
    ("social", "cooperative"),
    9999,
)

CURATED: dict[str, tuple[CuratedGame, ...]] = {
    "relaxing": (_STARDEW, _ANIMAL_CROSSING, _SATISFACTORY),
    "challenging": (_ELDEN_RING, _SLAY_THE_SPIRE, _HADES),
    "exploration": (_NO_MANS_SKY, _GOD_OF_WAR, _SUBNAUTICA),
    "creative": (_FACTORIO, _SATISFACTORY),
    "social": (_AMONG_US, _FFXIV),
}

DEFAULT_CURATED: tuple[CuratedGame, ...] = (
    CuratedGame(
        "game27",
        "Subnautica",
        "Underwater survival and exploration on an alien ocean planet.",
        0.8,
        ("survival", "exploration"),
        ("atmosphere", "exploration"),
        480,
    ),
)
_DEFAULT_EMOTION = "contemplative"


class FallbackCatalog:
    """Hand-curated lists keyed by emotion, used when the graph cannot answer.

    Lookups never expose the stored entries: every call builds fresh
    :class:`~gamesoul.models.GameRecommendation` objects.

    Args:
        curated: Emotion to curated entries.
        default: Entries for emotions without a list, or whose list is
            emptied by the filters.
    """

    def __init__(
        self,
        curated: dict[str, tuple[CuratedGame, ...]] | None = None,
        default: tuple[CuratedGame, ...] = DEFAULT_CURATED,
    ) -> None:
        self._curated = curated if curated is not None else CURATED
        self._default = default

    def lookup(
        self,
        emotion: str,
        dealbreakers: Sequence[str] = (),
        min_minutes: int = 0,
    ) -> list[GameRecommendation]:
        """Return curated picks for *emotion* that pass the exclusion filters."""
        picks = [
            game.to_recommendation(emotion)
            for game in self._filter(self._curated.get(emotion, ()), dealbreakers, min_minutes)
        ]
        if picks:
            return picks

        logger.info("No curated picks left for %r; using the default list.", emotion)
        return [
            game.to_recommendation(_DEFAULT_EMOTION)
            for game in self._filter(self._default, dealbreakers, min_minutes)
        ]

    @staticmethod
    def _filter(
        games: Sequence[CuratedGame], dealbreakers: Sequence[str], min_minutes: int
    ) -> list[CuratedGame]:
        return [
            game
            for game in games
            if passes_duration(game.max_minutes, min_minutes)
            and not hits_dealbreaker(game.characteristics, dealbreakers)
        ]
