"""Core domain dataclasses shared across all GameSoul modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class OptionKind(str, Enum):
    """What a questionnaire option contributes when selected."""

    EMOTION_MAPPING = "emotion_mapping"
    DURATION = "duration"
    STRING = "string"


class ResonanceOwner(str, Enum):
    """Node kind at the source of a ``RESONATES_WITH`` edge."""

    USER = "user"
    GAME = "game"


@dataclass(frozen=True)
class Emotion:
    """An emotion tag from the fixed catalog."""

    type: str
    description: str | None = None


@dataclass(frozen=True)
class Characteristic:
    """A game characteristic tag (possible dealbreaker)."""

    name: str
    description: str | None = None


@dataclass(frozen=True)
class DurationBand:
    """One of the five fixed play-session length buckets.

    Attributes:
        name: Band identifier as stored in the graph (e.g. ``"medium"``).
        min_minutes: Inclusive lower bound.
        max_minutes: Upper bound; a game in this band fits any request of at
            most this many minutes.
        description: Human-readable label.
    """

    name: str
    min_minutes: int
    max_minutes: int
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "min_minutes": self.min_minutes,
            "max_minutes": self.max_minutes,
            "description": self.description,
        }


@dataclass(frozen=True)
class QuestionOption:
    """A selectable answer to a questionnaire question.

    Exactly one of the payload attributes is meaningful, chosen by *kind*:

    ==================  ==========================================
    Kind                Payload
    ==================  ==========================================
    EMOTION_MAPPING     ``emotions``: ``(emotion, intensity)`` pairs
    DURATION            ``duration_band``: band name
    STRING              ``value``: opaque string, not interpreted
    ==================  ==========================================
    """

    id: str
    text: str
    kind: OptionKind
    emotions: tuple[tuple[str, float], ...] = ()
    duration_band: str | None = None
    value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.kind is OptionKind.EMOTION_MAPPING:
            content: Any = {emotion: weight for emotion, weight in self.emotions}
        elif self.kind is OptionKind.DURATION:
            content = self.duration_band
        else:
            content = self.value
        return {
            "id": self.id,
            "text": self.text,
            "value": {"type": self.kind.value, "content": content},
        }


@dataclass(frozen=True)
class Question:
    """A questionnaire question with its fixed options."""

    id: str
    text: str
    question_type: str
    options: tuple[QuestionOption, ...]

    def find_option(self, option_id: str) -> QuestionOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "question_type": self.question_type,
            "options": [o.to_dict() for o in self.options],
        }


@dataclass
class EmotionalProfile:
    """Emotional state derived from one questionnaire submission.

    Attributes:
        user_id: The user who answered.
        emotions: Normalized emotion weights (sum to 1.0) in canonical
            catalog order, or empty when no answer carried an emotion.
        dominant_emotion: Highest-weighted emotion, or the neutral sentinel.
        duration_band: The selected :class:`DurationBand`.
    """

    user_id: str
    emotions: dict[str, float]
    dominant_emotion: str
    duration_band: DurationBand

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "emotions": dict(self.emotions),
            "dominant_emotion": self.dominant_emotion,
            "duration_band": self.duration_band.to_dict(),
        }


@dataclass(frozen=True)
class Relation:
    """A ``RELATED_TO`` edge from a genre or characteristic to an emotion."""

    source: str
    emotion: str
    intensity: float


@dataclass
class GameCandidate:
    """A game row returned by a graph query, before scoring.

    Attributes:
        game_id: Unique identifier for the game.
        name: Display name.
        description: Display description.
        intensities: ``RESONATES_WITH`` intensity per matched emotion.
        genres: Genre names of the game.
        characteristics: Characteristic names of the game.
        max_minutes: Largest ``max_minutes`` over the game's duration bands;
            ``None`` when the game has no band.
        genre_relations: Genre ``RELATED_TO`` edges touching requested emotions.
        characteristic_relations: Characteristic ``RELATED_TO`` edges touching
            requested emotions.
    """

    game_id: str
    name: str
    description: str
    intensities: dict[str, float] = field(default_factory=dict)
    genres: list[str] = field(default_factory=list)
    characteristics: list[str] = field(default_factory=list)
    max_minutes: int | None = None
    genre_relations: list[Relation] = field(default_factory=list)
    characteristic_relations: list[Relation] = field(default_factory=list)


@dataclass
class ScoringRequest:
    """Inputs to one scoring pass.

    Attributes:
        dominant_emotion: Emotion used by the single-emotion and relaxed
            queries.
        emotions: Normalized profile weights.  Empty selects the
            single-emotion path.
        user_id: When set, games this user has played are excluded.
        dealbreakers: Characteristics that exclude a game outright.
        min_minutes: Requested session length; a game's duration ceiling
            must be at least this.
        limit: Maximum number of recommendations returned.
    """

    dominant_emotion: str
    emotions: dict[str, float] = field(default_factory=dict)
    user_id: str | None = None
    dealbreakers: list[str] = field(default_factory=list)
    min_minutes: int = 0
    limit: int = 5

    @property
    def is_weighted(self) -> bool:
        return bool(self.emotions)


@dataclass
class ScoreBreakdown:
    """Per-signal contributions to a recommendation's score."""

    direct: float = 0.0
    via_genre: float = 0.0
    via_characteristic: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "direct": self.direct,
            "via_genre": self.via_genre,
            "via_characteristic": self.via_characteristic,
        }


@dataclass
class GameRecommendation:
    """A ranked game suggestion, built per request and never stored."""

    id: str
    name: str
    description: str
    score: float
    score_breakdown: ScoreBreakdown | None = None
    genres: list[str] = field(default_factory=list)
    characteristics: list[str] = field(default_factory=list)
    matched_emotions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "score": self.score,
            "score_breakdown": (
                self.score_breakdown.to_dict() if self.score_breakdown else None
            ),
            "genres": list(self.genres),
            "characteristics": list(self.characteristics),
            "matched_emotions": list(self.matched_emotions),
        }


@dataclass
class RecommendationResult:
    """Emotional picks plus optional exploration picks for one request."""

    emotional: list[GameRecommendation]
    exploration: list[GameRecommendation] | None = None
    used_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "recomendaciones_emocionales": [r.to_dict() for r in self.emotional],
        }
        if self.exploration is not None:
            payload["recomendaciones_exploracion"] = [
                r.to_dict() for r in self.exploration
            ]
        return payload
