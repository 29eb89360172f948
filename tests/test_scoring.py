"""Tests for ScoringEngine and the composite score."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from gamesoul.errors import DatabaseError
from gamesoul.models import GameCandidate, Relation, ScoringRequest
from gamesoul.scoring import (
    ScoringEngine,
    ScoringWeights,
    composite_score,
    hits_dealbreaker,
    passes_duration,
)


def _candidate(game_id: str, intensity: float = 0.5, **kwargs) -> GameCandidate:
    kwargs.setdefault("max_minutes", 180)
    return GameCandidate(
        game_id=game_id,
        name=game_id.upper(),
        description="",
        intensities=kwargs.pop("intensities", {"relaxing": intensity}),
        **kwargs,
    )


def _mock_port(**results) -> MagicMock:
    port = MagicMock()
    port.get_played_game_ids.return_value = results.pop("played", set())
    port.find_games_by_profile.return_value = results.pop("profile", [])
    port.find_games_by_emotion.return_value = results.pop("emotion", [])
    port.find_direct_matches.return_value = results.pop("direct", [])
    return port


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestCompositeScore:
    def test_reference_value(self) -> None:
        assert composite_score(0.8, 0.6, 0.4) == pytest.approx(1.22)

    def test_zero_signals(self) -> None:
        assert composite_score(0.0, 0.0, 0.0) == 0.0

    def test_custom_weights(self) -> None:
        weights = ScoringWeights(direct=2.0, genre=0.0, characteristic=0.0)
        assert composite_score(0.5, 1.0, 1.0, weights) == pytest.approx(1.0)


class TestFilters:
    @pytest.mark.parametrize(
        "max_minutes, requested, expected",
        [(60, 60, True), (60, 61, False), (None, 0, True), (None, 5, False), (9999, 1440, True)],
    )
    def test_passes_duration(self, max_minutes, requested, expected) -> None:
        assert passes_duration(max_minutes, requested) is expected

    def test_hits_dealbreaker(self) -> None:
        assert hits_dealbreaker(["story", "combat"], ["combat"])
        assert not hits_dealbreaker(["story"], ["combat"])
        assert not hits_dealbreaker(["combat"], [])


# ---------------------------------------------------------------------------
# Weighted path
# ---------------------------------------------------------------------------


class TestWeightedPath:
    def test_dealbreaker_excludes_combat_game(self, store, calm_game, combat_game) -> None:
        store.add_game(calm_game)
        store.add_game(combat_game)
        request = ScoringRequest(
            "relaxing",
            emotions={"relaxing": 0.9, "contemplative": 0.1},
            dealbreakers=["combat"],
        )
        result = ScoringEngine(store).score(request)
        assert [r.id for r in result] == ["g_calm"]

    def test_composite_on_demo_game(self, demo_store) -> None:
        request = ScoringRequest("relaxing", emotions={"relaxing": 1.0}, min_minutes=30)
        result = ScoringEngine(demo_store).score(request)
        stardew = next(r for r in result if r.id == "game1")
        # direct 0.95, simulation 0.8 * 0.5, collectible 0.4 * 0.3
        assert stardew.score_breakdown.direct == pytest.approx(0.95)
        assert stardew.score_breakdown.via_genre == pytest.approx(0.4)
        assert stardew.score_breakdown.via_characteristic == pytest.approx(0.12)
        assert stardew.score == pytest.approx(0.95 + 0.4 * 0.5 + 0.12 * 0.3)

    def test_matched_emotions_follow_profile(self) -> None:
        candidate = _candidate("g1", intensities={"relaxing": 0.5, "creative": 0.4})
        port = _mock_port(profile=[candidate])
        request = ScoringRequest(
            "relaxing", emotions={"relaxing": 0.6, "contemplative": 0.2, "creative": 0.2}
        )
        result = ScoringEngine(port).score(request)
        assert result[0].matched_emotions == ["relaxing", "creative"]
        assert result[0].score_breakdown.direct == pytest.approx(0.9)

    def test_relations_outside_profile_ignored(self) -> None:
        candidate = _candidate(
            "g1",
            genres=["simulation"],
            genre_relations=[
                Relation("simulation", "relaxing", 0.8),
                Relation("simulation", "social", 1.0),
            ],
        )
        port = _mock_port(profile=[candidate])
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0})
        )
        assert result[0].score_breakdown.via_genre == pytest.approx(0.4)

    def test_sorted_descending_and_truncated(self) -> None:
        candidates = [_candidate(f"g{i}", intensity=i / 10) for i in range(1, 8)]
        port = _mock_port(profile=candidates)
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0}, limit=5)
        )
        assert [r.id for r in result] == ["g7", "g6", "g5", "g4", "g3"]

    def test_ties_keep_store_order(self) -> None:
        candidates = [_candidate("b"), _candidate("a"), _candidate("c")]
        port = _mock_port(profile=candidates)
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0})
        )
        assert [r.id for r in result] == ["b", "a", "c"]


# ---------------------------------------------------------------------------
# Filters applied by the engine
# ---------------------------------------------------------------------------


class TestExclusionFilters:
    def test_played_games_removed(self) -> None:
        port = _mock_port(profile=[_candidate("g1"), _candidate("g2")], played={"g1"})
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0}, user_id="u1")
        )
        assert [r.id for r in result] == ["g2"]
        port.get_played_game_ids.assert_called_once_with("u1")

    def test_no_user_skips_played_lookup(self) -> None:
        port = _mock_port(profile=[_candidate("g1")])
        ScoringEngine(port).score(ScoringRequest("relaxing", emotions={"relaxing": 1.0}))
        port.get_played_game_ids.assert_not_called()

    def test_short_games_removed(self) -> None:
        port = _mock_port(
            profile=[_candidate("short", max_minutes=30), _candidate("long", max_minutes=480)]
        )
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0}, min_minutes=60)
        )
        assert [r.id for r in result] == ["long"]

    def test_unbanded_game_only_for_zero_minutes(self) -> None:
        port = _mock_port(direct=[_candidate("g1", max_minutes=None)])
        engine = ScoringEngine(port)
        assert engine.score(ScoringRequest("relaxing", min_minutes=0))[0].id == "g1"
        assert engine.score(ScoringRequest("relaxing", min_minutes=5)) == []

    def test_dealbreakers_reapplied_on_relaxed_tier(self) -> None:
        port = _mock_port(
            direct=[_candidate("g1", characteristics=["combat"]), _candidate("g2")]
        )
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", dealbreakers=["combat"])
        )
        assert [r.id for r in result] == ["g2"]


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------


class TestCascade:
    def test_empty_weighted_relaxes_to_dominant(self) -> None:
        port = _mock_port(profile=[], emotion=[_candidate("g1", intensity=0.7)])
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0})
        )
        assert [r.id for r in result] == ["g1"]
        assert result[0].score == pytest.approx(0.7)
        assert result[0].score_breakdown.via_genre == 0.0
        assert result[0].matched_emotions == ["relaxing"]

    def test_failing_tiers_skipped(self) -> None:
        port = _mock_port(direct=[_candidate("g1")])
        port.find_games_by_profile.side_effect = DatabaseError("boom", "profile")
        port.find_games_by_emotion.side_effect = DatabaseError("boom", "emotion")
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0})
        )
        assert [r.id for r in result] == ["g1"]

    def test_all_failing_raises(self) -> None:
        port = _mock_port()
        port.find_games_by_emotion.side_effect = DatabaseError("boom")
        port.find_direct_matches.side_effect = DatabaseError("boom")
        with pytest.raises(DatabaseError, match="dominant_emotion, direct_match"):
            ScoringEngine(port).score(ScoringRequest("relaxing"))

    def test_all_empty_returns_empty(self) -> None:
        port = _mock_port()
        assert ScoringEngine(port).score(ScoringRequest("relaxing")) == []

    def test_mixed_failure_and_empty_returns_empty(self) -> None:
        port = _mock_port()
        port.find_games_by_emotion.side_effect = DatabaseError("boom")
        assert ScoringEngine(port).score(ScoringRequest("relaxing")) == []

    def test_single_emotion_path_skips_weighted_query(self) -> None:
        port = _mock_port(emotion=[_candidate("g1")])
        ScoringEngine(port).score(ScoringRequest("relaxing", dealbreakers=["combat"]))
        port.find_games_by_profile.assert_not_called()
        port.find_games_by_emotion.assert_called_once_with("relaxing", ["combat"])

    def test_played_lookup_failure_spares_weighted_query(self) -> None:
        port = _mock_port(profile=[_candidate("g1")])
        port.get_played_game_ids.side_effect = DatabaseError("down")
        result = ScoringEngine(port).score(
            ScoringRequest("relaxing", emotions={"relaxing": 1.0}, user_id="u1")
        )
        assert [r.id for r in result] == ["g1"]
        port.get_played_game_ids.assert_not_called()

    def test_played_lookup_failure_fails_that_tier_only(self) -> None:
        port = _mock_port(emotion=[_candidate("g1")], direct=[_candidate("g2")])
        port.get_played_game_ids.side_effect = [DatabaseError("down"), {"g9"}]
        result = ScoringEngine(port).score(ScoringRequest("relaxing", user_id="u1"))
        assert [r.id for r in result] == ["g2"]

    def test_played_lookup_failing_everywhere_raises(self) -> None:
        port = _mock_port(emotion=[_candidate("g1")], direct=[_candidate("g2")])
        port.get_played_game_ids.side_effect = DatabaseError("down")
        with pytest.raises(DatabaseError, match="dominant_emotion, direct_match"):
            ScoringEngine(port).score(ScoringRequest("relaxing", user_id="u1"))

    def test_played_games_filtered_on_relaxed_tier(self) -> None:
        port = _mock_port(emotion=[_candidate("g1"), _candidate("g2")], played={"g1"})
        result = ScoringEngine(port).score(ScoringRequest("relaxing", user_id="u1"))
        assert [r.id for r in result] == ["g2"]

    def test_custom_strategy_list(self) -> None:
        strategy = MagicMock(name="only", composite=False)
        strategy.name = "only"
        strategy.applies.return_value = True
        strategy.fetch.return_value = [_candidate("g9")]
        port = _mock_port()
        result = ScoringEngine(port, strategies=[strategy]).score(ScoringRequest("relaxing"))
        assert [r.id for r in result] == ["g9"]
        strategy.fetch.assert_called_once()
