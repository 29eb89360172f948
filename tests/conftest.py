"""Shared pytest fixtures for all GameSoul tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from gamesoul.catalog import DEFAULT_CATALOG, EmotionCatalog
from gamesoul.graph.memory_store import GameNode, InMemoryGraphStore, seed_demo_catalog


TS = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Catalog and answers
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog() -> EmotionCatalog:
    return DEFAULT_CATALOG


@pytest.fixture
def relaxing_answers() -> dict[str, str]:
    """A complete submission whose dominant emotion is ``relaxing``.

    Totals: relaxing 3.0, contemplative 1.6, creative 0.9; band ``short``.
    """
    return {
        "experience_type": "relax",
        "available_time": "short",
        "mood": "calm",
        "preferred_activity": "build",
        "emotional_goal": "calm",
    }


# ---------------------------------------------------------------------------
# Graph stores
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryGraphStore:
    """An empty in-memory graph whose clock is frozen at ``TS``."""
    return InMemoryGraphStore(clock=lambda: TS)


@pytest.fixture
def demo_store(store) -> InMemoryGraphStore:
    """The in-memory graph seeded with the ten demo games."""
    seed_demo_catalog(store)
    return store


@pytest.fixture
def calm_game() -> GameNode:
    return GameNode(
        "g_calm", "Quiet Garden", "Tend a garden.",
        {"relaxing": 0.8}, ["simulation"], ["atmosphere"], ["medium"],
    )


@pytest.fixture
def combat_game() -> GameNode:
    return GameNode(
        "g_fight", "Arena", "Fight everyone.",
        {"relaxing": 0.9}, ["action"], ["combat"], ["medium"],
    )


# ---------------------------------------------------------------------------
# gRPC
# ---------------------------------------------------------------------------


@pytest.fixture
def context() -> MagicMock:
    """A mock gRPC service context."""
    ctx = MagicMock()
    ctx.set_code = MagicMock()
    ctx.set_details = MagicMock()
    return ctx
