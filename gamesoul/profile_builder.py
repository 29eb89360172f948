"""Questionnaire answers → normalized emotional profile."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import numpy as np

import config
from gamesoul.catalog import EmotionCatalog
from gamesoul.errors import InternalError, ValidationError
from gamesoul.models import EmotionalProfile, OptionKind

logger = logging.getLogger(__name__)


class ProfileBuilder:
    """Turns a questionnaire submission into an :class:`EmotionalProfile`.

    Accumulation rules:

    ================  ===============================================
    Option kind       Effect
    ================  ===============================================
    Emotion mapping   each ``(emotion, intensity)`` added to the total
    Duration          overwrites the selected band (last one wins)
    String            ignored
    ================  ===============================================

    Questions are processed in questionnaire order, so the result never
    depends on the iteration order of the submitted answers.

    Args:
        catalog: The :class:`~gamesoul.catalog.EmotionCatalog` holding the
            questionnaire and duration bands.
        neutral_emotion: Dominant emotion reported for an empty profile.
        default_band: Band used when no answer selects a duration.
    """

    def __init__(
        self,
        catalog: EmotionCatalog,
        neutral_emotion: str = config.NEUTRAL_EMOTION,
        default_band: str = config.DEFAULT_DURATION_BAND,
    ) -> None:
        self._catalog = catalog
        self._neutral = neutral_emotion
        self._default_band = default_band

    def build(self, user_id: str, answers: Mapping[str, str]) -> EmotionalProfile:
        """Validate *answers* and return the derived profile.

        Args:
            user_id: The answering user. Must be non-empty.
            answers: Map from question id to selected option id.

        Returns:
            A fresh :class:`EmotionalProfile`.

        Raises:
            ValidationError: If the user id is empty, a question is
                unanswered or unknown, or an option does not belong to its
                question.
        """
        self.validate(user_id, answers)

        totals: dict[str, float] = {}
        band_name = self._default_band

        for question in self._catalog.questions:
            option = question.find_option(answers[question.id])
            if option.kind is OptionKind.EMOTION_MAPPING:
                for emotion, intensity in option.emotions:
                    totals[emotion] = totals.get(emotion, 0.0) + intensity
            elif option.kind is OptionKind.DURATION and option.duration_band:
                band_name = option.duration_band

        emotions = self.normalize(totals)
        dominant = self.dominant_emotion(emotions)
        band = self._catalog.get_band(band_name) or self._catalog.get_band(
            self._default_band
        )
        if band is None:
            raise InternalError(f"Catalog has no duration band {self._default_band!r}")
        logger.debug(
            "Profile for user %r: dominant=%r band=%r weights=%s",
            user_id,
            dominant,
            band.name,
            emotions,
        )
        return EmotionalProfile(
            user_id=user_id,
            emotions=emotions,
            dominant_emotion=dominant,
            duration_band=band,
        )

    def validate(self, user_id: str, answers: Mapping[str, str]) -> None:
        """Raise :class:`ValidationError` unless the submission is complete."""
        if not user_id:
            raise ValidationError("user_id must be non-empty")
        if not answers:
            raise ValidationError("answers must be non-empty")

        for question_id in answers:
            if self._catalog.get_question(question_id) is None:
                raise ValidationError(f"Unknown question id {question_id!r}")

        for question in self._catalog.questions:
            if question.id not in answers:
                raise ValidationError(f"Question {question.id!r} is unanswered")
            option_id = answers[question.id]
            if question.find_option(option_id) is None:
                raise ValidationError(
                    f"Option {option_id!r} does not belong to question {question.id!r}"
                )

    def normalize(self, totals: Mapping[str, float]) -> dict[str, float]:
        """Scale *totals* so they sum to 1.0, in canonical emotion order.

        Returns an empty dict when the total weight is not positive.
        """
        if not totals:
            return {}
        ordered = sorted(totals, key=self._catalog.emotion_rank)
        weights = np.array([totals[e] for e in ordered], dtype=np.float64)
        total = weights.sum()
        if total <= 0.0:
            return {}
        normalized = weights / total
        return {emotion: float(w) for emotion, w in zip(ordered, normalized)}

    def dominant_emotion(self, emotions: Mapping[str, float]) -> str:
        """Return the highest-weighted emotion.

        Ties go to the emotion earliest in canonical catalog order; an empty
        map yields the neutral sentinel.
        """
        if not emotions:
            return self._neutral
        best: str | None = None
        best_weight = 0.0
        for emotion in sorted(emotions, key=self._catalog.emotion_rank):
            weight = emotions[emotion]
            if best is None or weight > best_weight:
                best, best_weight = emotion, weight
        return best
