"""Tests for EmotionCatalog reference data."""

from __future__ import annotations

from gamesoul.models import OptionKind


class TestEmotions:
    def test_canonical_order(self, catalog) -> None:
        assert catalog.emotion_types() == [
            "joyful", "relaxing", "melancholic", "exploration", "challenging",
            "contemplative", "social", "competitive", "creative",
        ]

    def test_rank_of_known_emotion(self, catalog) -> None:
        assert catalog.emotion_rank("joyful") == 0
        assert catalog.emotion_rank("creative") == 8

    def test_unknown_emotion_ranks_last(self, catalog) -> None:
        assert catalog.emotion_rank("neutral") == len(catalog.emotions)

    def test_is_emotion(self, catalog) -> None:
        assert catalog.is_emotion("social")
        assert not catalog.is_emotion("neutral")


class TestCharacteristics:
    def test_dealbreakers_are_characteristics(self, catalog) -> None:
        names = set(catalog.characteristic_names())
        assert set(catalog.dealbreakers) <= names

    def test_eighteen_characteristics(self, catalog) -> None:
        assert len(catalog.characteristics) == 18


class TestDurationBands:
    def test_bands_are_contiguous(self, catalog) -> None:
        bands = catalog.duration_bands
        for lower, upper in zip(bands, bands[1:]):
            assert lower.max_minutes == upper.min_minutes

    def test_get_band(self, catalog) -> None:
        band = catalog.get_band("medium")
        assert (band.min_minutes, band.max_minutes) == (60, 180)
        assert catalog.get_band("eternal") is None


class TestQuestionnaire:
    def test_five_questions_in_order(self, catalog) -> None:
        assert [q.id for q in catalog.questions] == [
            "experience_type", "available_time", "mood",
            "preferred_activity", "emotional_goal",
        ]

    def test_available_time_options_name_real_bands(self, catalog) -> None:
        question = catalog.get_question("available_time")
        for option in question.options:
            assert option.kind is OptionKind.DURATION
            assert catalog.get_band(option.duration_band) is not None

    def test_mapped_emotions_are_catalog_emotions(self, catalog) -> None:
        for question in catalog.questions:
            for option in question.options:
                for emotion, intensity in option.emotions:
                    assert catalog.is_emotion(emotion)
                    assert 0.0 < intensity <= 1.0

    def test_get_unknown_question(self, catalog) -> None:
        assert catalog.get_question("favourite_colour") is None
