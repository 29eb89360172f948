"""Feedback loop: post-play satisfaction nudges the user's emotional resonance."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import config
from gamesoul.catalog import DEFAULT_CATALOG, EmotionCatalog
from gamesoul.errors import ValidationError
from gamesoul.graph.port import GraphQueryPort, clamp_intensity

logger = logging.getLogger(__name__)

_MIN_SATISFACTION = 1
_MAX_SATISFACTION = 5
_NEUTRAL_SATISFACTION = 3


def next_intensity(
    previous: float | None,
    satisfaction: int,
    initial: float = config.FEEDBACK_INITIAL_INTENSITY,
    divisor: float = config.FEEDBACK_DELTA_DIVISOR,
) -> float:
    """Return the resonance intensity after one rating.

    ``delta = (satisfaction - 3) / divisor`` is added to *previous*, or to
    *initial* when the user has no resonance yet; the result is clamped to
    ``[0.0, 1.0]``.
    """
    delta = (satisfaction - _NEUTRAL_SATISFACTION) / divisor
    base = initial if previous is None else previous
    return clamp_intensity(base + delta)


@dataclass
class FeedbackResult:
    """Outcome of one feedback submission.

    Attributes:
        user_id: The rating user.
        game_id: The rated game.
        satisfaction: The rating, 1 to 5.
        intensities: New resonance intensity per experienced emotion.
    """

    user_id: str
    game_id: str
    satisfaction: int
    intensities: dict[str, float] = field(default_factory=dict)


class FeedbackProcessor:
    """Records a play and folds its rating into ``RESONATES_WITH`` weights.

    Writes accumulate: each rating moves the stored intensity by a bounded
    delta instead of overwriting it.  The read of the previous intensity and
    the write of the new one are separate datastore calls, so two concurrent
    ratings for the same user and emotion can lose one update.

    Args:
        port: The graph datastore.
        neutral_emotion: Emotion credited when the user names none.
        catalog: Emotions a user may report; the neutral sentinel is also
            accepted.
    """

    def __init__(
        self,
        port: GraphQueryPort,
        neutral_emotion: str = config.NEUTRAL_EMOTION,
        catalog: EmotionCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._port = port
        self._neutral = neutral_emotion
        self._catalog = catalog

    def process(
        self,
        user_id: str,
        game_id: str,
        satisfaction: int,
        emotions: Sequence[str] | None = None,
    ) -> FeedbackResult:
        """Validate and apply one rating.

        Args:
            user_id: The rating user. Must be non-empty.
            game_id: The rated game. Must be non-empty.
            satisfaction: Integer rating in ``[1, 5]``.
            emotions: Emotions the user experienced.  Defaults to the
                neutral sentinel.

        Returns:
            A :class:`FeedbackResult` with the written intensities.

        Raises:
            ValidationError: On empty ids, an out-of-range rating, or an
                emotion tag missing from the catalog.
            DatabaseError: If a datastore call fails.
        """
        self.validate(user_id, game_id, satisfaction, emotions)
        experienced = list(emotions) if emotions else [self._neutral]

        self._port.upsert_played(user_id, game_id, satisfaction)
        reported = [e for e in experienced if e != self._neutral]
        if reported:
            self._port.record_experienced(user_id, game_id, reported)

        result = FeedbackResult(user_id=user_id, game_id=game_id, satisfaction=satisfaction)
        for emotion in experienced:
            previous = self._port.get_user_resonance(user_id, emotion)
            updated = next_intensity(previous, satisfaction)
            self._port.upsert_resonance(user_id, emotion, updated)
            result.intensities[emotion] = updated

        logger.info(
            "Feedback from user %r on game %r (satisfaction=%d): %s",
            user_id,
            game_id,
            satisfaction,
            result.intensities,
        )
        return result

    def validate(
        self,
        user_id: str,
        game_id: str,
        satisfaction: int,
        emotions: Sequence[str] | None,
    ) -> None:
        if not user_id:
            raise ValidationError("user_id must be non-empty")
        if not game_id:
            raise ValidationError("game_id must be non-empty")
        if isinstance(satisfaction, bool) or not isinstance(satisfaction, int):
            raise ValidationError(f"satisfaction must be an integer, got {satisfaction!r}")
        if not _MIN_SATISFACTION <= satisfaction <= _MAX_SATISFACTION:
            raise ValidationError(
                f"satisfaction must be between {_MIN_SATISFACTION} and "
                f"{_MAX_SATISFACTION}, got {satisfaction}"
            )
        for emotion in emotions or ():
            if not isinstance(emotion, str) or not emotion.strip():
                raise ValidationError(f"Invalid emotion tag {emotion!r}")
            if emotion != self._neutral and not self._catalog.is_emotion(emotion):
                raise ValidationError(f"Unknown emotion {emotion!r}")
