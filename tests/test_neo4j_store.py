"""Tests for Neo4jGraphStore against a mocked driver."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from gamesoul.errors import DatabaseError
from gamesoul.graph.neo4j_store import Neo4jGraphStore
from gamesoul.models import DurationBand, EmotionalProfile, ResonanceOwner


class _Record:
    """Minimal stand-in for ``neo4j.Record``."""

    def __init__(self, data: dict) -> None:
        self._data = data

    def data(self) -> dict:
        return dict(self._data)


def _make_store(*results: list[dict]) -> tuple[Neo4jGraphStore, MagicMock, MagicMock]:
    """Return a store whose successive ``session.run`` calls yield *results*."""
    driver = MagicMock()
    session = driver.session.return_value.__enter__.return_value
    session.run.side_effect = [[_Record(row) for row in rows] for rows in results]
    tx = MagicMock()
    session.execute_write.side_effect = lambda work: work(tx)
    return Neo4jGraphStore(driver, database="games"), session, tx


def _game_row(**overrides) -> dict:
    row = {
        "id": "game1",
        "name": "Stardew Valley",
        "description": "Farming.",
        "intensity": 0.95,
        "characteristics": ["collectible"],
        "genres": ["simulation"],
        "max_minutes": 180,
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# Candidate queries
# ---------------------------------------------------------------------------


class TestFindGamesByEmotion:
    def test_parses_rows(self) -> None:
        store, session, _ = _make_store([_game_row()])
        rows = store.find_games_by_emotion("relaxing", ["combat"])
        assert rows[0].game_id == "game1"
        assert rows[0].intensities == {"relaxing": 0.95}
        assert rows[0].max_minutes == 180
        params = session.run.call_args.args[1]
        assert params == {"emotion": "relaxing", "dealbreakers": ["combat"]}

    def test_uses_configured_database(self) -> None:
        store, _, _ = _make_store([])
        store.find_games_by_emotion("relaxing", [])
        store._driver.session.assert_called_with(database="games")

    def test_row_without_id_skipped(self) -> None:
        store, _, _ = _make_store([_game_row(id=None), _game_row(id="game4")])
        assert [c.game_id for c in store.find_games_by_emotion("relaxing", [])] == ["game4"]

    def test_bad_intensity_defaults(self) -> None:
        store, _, _ = _make_store([_game_row(intensity="lots")])
        assert store.find_games_by_emotion("relaxing", [])[0].intensities == {"relaxing": 0.5}

    def test_missing_name_and_band(self) -> None:
        store, _, _ = _make_store([_game_row(name=None, max_minutes=None, genres=None)])
        candidate = store.find_games_by_emotion("relaxing", [])[0]
        assert candidate.name == "Untitled game"
        assert candidate.max_minutes is None
        assert candidate.genres == []

    def test_driver_error_wrapped(self) -> None:
        store, session, _ = _make_store()
        session.run.side_effect = ServiceUnavailable("down")
        with pytest.raises(DatabaseError) as excinfo:
            store.find_games_by_emotion("relaxing", [])
        assert excinfo.value.variant == "find_games_by_emotion"


class TestFindGamesByProfile:
    def test_parses_matched_and_relations(self) -> None:
        row = _game_row(
            matched=[{"emotion": "relaxing", "intensity": 0.95},
                     {"emotion": "creative", "intensity": 0.5}],
            genre_relations=[{"source": "simulation", "emotion": "relaxing", "intensity": 0.8}],
            characteristic_relations=[{"source": None, "emotion": None, "intensity": None}],
        )
        store, session, _ = _make_store([row])
        rows = store.find_games_by_profile({"relaxing": 0.7, "creative": 0.3}, "u1", 30, [])
        candidate = rows[0]
        assert candidate.intensities == {"relaxing": 0.95, "creative": 0.5}
        assert [(r.source, r.emotion, r.intensity) for r in candidate.genre_relations] == [
            ("simulation", "relaxing", 0.8)
        ]
        assert candidate.characteristic_relations == []
        params = session.run.call_args.args[1]
        assert params["emotions"] == ["relaxing", "creative"]
        assert params["user_id"] == "u1"
        assert params["min_minutes"] == 30


class TestFindUnplayedGenreGames:
    def test_excluded_genres_sent_sorted(self) -> None:
        store, session, _ = _make_store([_game_row()])
        store.find_unplayed_genre_games("u1", {"rpg", "action"}, 60)
        params = session.run.call_args.args[1]
        assert params["excluded_genres"] == ["action", "rpg"]
        assert params["min_minutes"] == 60


# ---------------------------------------------------------------------------
# User history
# ---------------------------------------------------------------------------


class TestHistory:
    def test_played_game_ids(self) -> None:
        store, _, _ = _make_store([{"id": "game1"}, {"id": "game4"}])
        assert store.get_played_game_ids("u1") == {"game1", "game4"}

    def test_recent_genres_passes_since(self) -> None:
        since = datetime(2024, 5, 1, tzinfo=timezone.utc)
        store, session, _ = _make_store([{"genre": "simulation"}])
        assert store.get_recent_genres("u1", since) == {"simulation"}
        assert session.run.call_args.args[1]["since"] == since

    def test_user_resonance(self) -> None:
        store, _, _ = _make_store([{"intensity": 0.6}], [])
        assert store.get_user_resonance("u1", "joyful") == 0.6
        assert store.get_user_resonance("u1", "social") is None

    def test_user_profile(self) -> None:
        store, _, _ = _make_store(
            [{"dominant_emotion": "relaxing", "band_name": "long"}],
            [{"emotion": "creative", "intensity": 0.2}, {"emotion": "relaxing", "intensity": 0.8}],
        )
        profile = store.get_user_profile("u1")
        assert profile.dominant_emotion == "relaxing"
        assert profile.duration_band.name == "long"
        assert list(profile.emotions) == ["relaxing", "creative"]

    def test_user_profile_missing(self) -> None:
        store, _, _ = _make_store([{"dominant_emotion": None, "band_name": None}])
        assert store.get_user_profile("u1") is None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


class TestWrites:
    def test_upsert_played(self) -> None:
        store, session, tx = _make_store()
        store.upsert_played("u1", "game1", 4)
        session.execute_write.assert_called_once()
        assert tx.run.call_args.args[1] == {
            "user_id": "u1", "game_id": "game1", "satisfaction": 4,
        }

    def test_upsert_resonance_clamps(self) -> None:
        store, _, tx = _make_store()
        store.upsert_resonance("u1", "joyful", 1.4)
        assert tx.run.call_args.args[1]["intensity"] == 1.0
        assert "(o:User {id: $owner_id})" in tx.run.call_args.args[0]

    def test_upsert_resonance_game_owner(self) -> None:
        store, _, tx = _make_store()
        store.upsert_resonance("game1", "joyful", 0.4, owner=ResonanceOwner.GAME)
        query = tx.run.call_args.args[0]
        assert "(o:Game {id: $owner_id})" in query
        assert ":User" not in query

    def test_record_experienced(self) -> None:
        store, session, tx = _make_store()
        store.record_experienced("u1", "game1", ("joyful", "relaxing"))
        session.execute_write.assert_called_once()
        assert tx.run.call_args.args[1] == {
            "user_id": "u1", "game_id": "game1", "emotions": ["joyful", "relaxing"],
        }

    def test_replace_profile_single_transaction(self) -> None:
        store, session, tx = _make_store()
        profile = EmotionalProfile(
            "u1",
            {"relaxing": 0.8, "contemplative": 0.15, "creative": 0.05},
            "relaxing",
            DurationBand("short", 30, 60, ""),
        )
        store.replace_profile(profile, min_weight=0.1)
        session.execute_write.assert_called_once()
        resonance_params = [
            c.args[1] for c in tx.run.call_args_list if "owner_id" in c.args[1]
        ]
        assert [p["emotion"] for p in resonance_params] == ["relaxing", "contemplative"]
        band_params = [c.args[1] for c in tx.run.call_args_list if "band_name" in c.args[1]]
        assert band_params == [{"user_id": "u1", "band_name": "short"}]

    def test_write_error_wrapped(self) -> None:
        store, session, _ = _make_store()
        session.execute_write.side_effect = ServiceUnavailable("down")
        with pytest.raises(DatabaseError) as excinfo:
            store.set_preferred_duration("u1", "short")
        assert excinfo.value.variant == "set_preferred_duration"


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class TestReferenceData:
    def test_list_emotions(self) -> None:
        store, _, _ = _make_store([{"value": "joyful"}, {"value": None}])
        assert store.list_emotions() == ["joyful"]

    def test_ensure_reference_data(self, catalog) -> None:
        store, session, tx = _make_store()
        store.ensure_reference_data(catalog)
        session.execute_write.assert_called_once()
        row_counts = [len(c.args[1]["rows"]) for c in tx.run.call_args_list]
        assert row_counts == [9, 18, 5]

    def test_verify_connectivity_wrapped(self) -> None:
        store, _, _ = _make_store()
        store._driver.verify_connectivity.side_effect = ServiceUnavailable("down")
        with pytest.raises(DatabaseError):
            store.verify_connectivity()
