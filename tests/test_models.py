"""Tests for the core domain dataclasses."""

from __future__ import annotations

from gamesoul.models import (
    DurationBand,
    EmotionalProfile,
    GameRecommendation,
    OptionKind,
    Question,
    QuestionOption,
    RecommendationResult,
    ScoreBreakdown,
    ScoringRequest,
)


def _rec(game_id: str = "g1") -> GameRecommendation:
    return GameRecommendation(
        id=game_id,
        name="Game",
        description="A game.",
        score=0.9,
        score_breakdown=ScoreBreakdown(direct=0.9),
        genres=["simulation"],
        characteristics=["atmosphere"],
        matched_emotions=["relaxing"],
    )


class TestQuestionOption:
    def test_emotion_mapping_serialises_weights(self) -> None:
        option = QuestionOption(
            "relax", "Unwind", OptionKind.EMOTION_MAPPING,
            emotions=(("relaxing", 0.9), ("contemplative", 0.4)),
        )
        assert option.to_dict() == {
            "id": "relax",
            "text": "Unwind",
            "value": {
                "type": "emotion_mapping",
                "content": {"relaxing": 0.9, "contemplative": 0.4},
            },
        }

    def test_duration_serialises_band_name(self) -> None:
        option = QuestionOption("short", "A little", OptionKind.DURATION, duration_band="short")
        assert option.to_dict()["value"] == {"type": "duration", "content": "short"}

    def test_string_serialises_value(self) -> None:
        option = QuestionOption("x", "X", OptionKind.STRING, value="opaque")
        assert option.to_dict()["value"] == {"type": "string", "content": "opaque"}


class TestQuestion:
    def test_find_option(self) -> None:
        option = QuestionOption("a", "A", OptionKind.STRING, value="a")
        question = Question("q", "Q?", "kind", (option,))
        assert question.find_option("a") is option
        assert question.find_option("missing") is None


class TestEmotionalProfile:
    def test_to_dict(self) -> None:
        band = DurationBand("short", 30, 60, "Between 30 minutes and 1 hour")
        profile = EmotionalProfile("u1", {"relaxing": 1.0}, "relaxing", band)
        data = profile.to_dict()
        assert data["user_id"] == "u1"
        assert data["emotions"] == {"relaxing": 1.0}
        assert data["dominant_emotion"] == "relaxing"
        assert data["duration_band"]["min_minutes"] == 30


class TestScoringRequest:
    def test_weighted_when_emotions_present(self) -> None:
        assert ScoringRequest("relaxing", emotions={"relaxing": 1.0}).is_weighted

    def test_single_emotion_when_empty(self) -> None:
        assert not ScoringRequest("relaxing").is_weighted


class TestGameRecommendation:
    def test_breakdown_none_serialises_as_none(self) -> None:
        rec = GameRecommendation("g1", "Game", "", 0.5)
        assert rec.to_dict()["score_breakdown"] is None

    def test_to_dict_copies_lists(self) -> None:
        rec = _rec()
        data = rec.to_dict()
        data["genres"].append("other")
        assert rec.genres == ["simulation"]


class TestRecommendationResult:
    def test_omits_exploration_key_when_none(self) -> None:
        data = RecommendationResult(emotional=[_rec()]).to_dict()
        assert list(data) == ["recomendaciones_emocionales"]
        assert data["recomendaciones_emocionales"][0]["id"] == "g1"

    def test_includes_exploration_when_present(self) -> None:
        data = RecommendationResult(emotional=[], exploration=[_rec("g2")]).to_dict()
        assert data["recomendaciones_exploracion"][0]["id"] == "g2"

    def test_empty_exploration_list_is_kept(self) -> None:
        data = RecommendationResult(emotional=[], exploration=[]).to_dict()
        assert data["recomendaciones_exploracion"] == []
