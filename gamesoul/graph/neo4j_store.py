"""Neo4j implementation of :class:`~gamesoul.graph.port.GraphQueryPort`."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from neo4j import Driver, GraphDatabase, ManagedTransaction
from neo4j.exceptions import DriverError, Neo4jError

import config
from gamesoul.catalog import DEFAULT_CATALOG, EmotionCatalog
from gamesoul.errors import DatabaseError
from gamesoul.graph.port import GraphQueryPort, clamp_intensity
from gamesoul.models import EmotionalProfile, GameCandidate, Relation, ResonanceOwner

logger = logging.getLogger(__name__)

_DEFAULT_INTENSITY = 0.5

# ---------------------------------------------------------------------------
# Candidate queries
# ---------------------------------------------------------------------------

_GAMES_BY_EMOTION = """
MATCH (g:Game)-[r:RESONATES_WITH]->(:Emotion {type: $emotion})
OPTIONAL MATCH (g)-[:HAS_CHARACTERISTIC]->(c:Characteristic)
WITH g, r, collect(DISTINCT c.name) AS characteristics
WHERE size($dealbreakers) = 0
   OR NONE(d IN $dealbreakers WHERE d IN characteristics)
OPTIONAL MATCH (g)-[:HAS_GENRE]->(ge:Genre)
WITH g, r, characteristics, collect(DISTINCT ge.name) AS genres
OPTIONAL MATCH (g)-[:HAS_DURATION]->(band:DurationBand)
WITH g, r, characteristics, genres, max(band.max_minutes) AS max_minutes
RETURN g.id AS id,
       g.name AS name,
       coalesce(g.description, '') AS description,
       r.intensity AS intensity,
       characteristics,
       genres,
       max_minutes
ORDER BY id
"""

_GAMES_BY_PROFILE = """
MATCH (g:Game)-[r:RESONATES_WITH]->(e:Emotion)
WHERE e.type IN $emotions
  AND ($user_id IS NULL
       OR NOT EXISTS { MATCH (:User {id: $user_id})-[:PLAYED]->(g) })
WITH g, collect({emotion: e.type, intensity: r.intensity}) AS matched
OPTIONAL MATCH (g)-[:HAS_CHARACTERISTIC]->(c:Characteristic)
WITH g, matched, collect(DISTINCT c.name) AS characteristics
WHERE NONE(d IN $dealbreakers WHERE d IN characteristics)
OPTIONAL MATCH (g)-[:HAS_DURATION]->(band:DurationBand)
WITH g, matched, characteristics, max(band.max_minutes) AS max_minutes
WHERE (max_minutes IS NULL AND $min_minutes <= 0) OR max_minutes >= $min_minutes
OPTIONAL MATCH (g)-[:HAS_GENRE]->(ge:Genre)
WITH g, matched, characteristics, max_minutes, collect(DISTINCT ge.name) AS genres
OPTIONAL MATCH (g)-[:HAS_GENRE]->(rg:Genre)-[gr:RELATED_TO]->(gre:Emotion)
WHERE gre.type IN $emotions
WITH g, matched, characteristics, max_minutes, genres,
     collect(DISTINCT {source: rg.name, emotion: gre.type, intensity: gr.intensity})
       AS genre_relations
OPTIONAL MATCH (g)-[:HAS_CHARACTERISTIC]->(rc:Characteristic)-[cr:RELATED_TO]->(cre:Emotion)
WHERE cre.type IN $emotions
WITH g, matched, characteristics, max_minutes, genres, genre_relations,
     collect(DISTINCT {source: rc.name, emotion: cre.type, intensity: cr.intensity})
       AS characteristic_relations
RETURN g.id AS id,
       g.name AS name,
       coalesce(g.description, '') AS description,
       matched,
       characteristics,
       genres,
       max_minutes,
       genre_relations,
       characteristic_relations
ORDER BY id
"""

_DIRECT_MATCHES = """
MATCH (g:Game)-[r:RESONATES_WITH]->(:Emotion {type: $emotion})
OPTIONAL MATCH (g)-[:HAS_CHARACTERISTIC]->(c:Characteristic)
WITH g, r, collect(DISTINCT c.name) AS characteristics
OPTIONAL MATCH (g)-[:HAS_DURATION]->(band:DurationBand)
RETURN g.id AS id,
       g.name AS name,
       coalesce(g.description, '') AS description,
       r.intensity AS intensity,
       characteristics,
       max(band.max_minutes) AS max_minutes
ORDER BY id
"""

_UNPLAYED_GENRE_GAMES = """
MATCH (g:Game)-[:HAS_GENRE]->(ge:Genre)
WHERE NOT EXISTS { MATCH (:User {id: $user_id})-[:PLAYED]->(g) }
WITH g, collect(DISTINCT ge.name) AS genres
WHERE any(name IN genres WHERE NOT name IN $excluded_genres)
OPTIONAL MATCH (g)-[:HAS_CHARACTERISTIC]->(c:Characteristic)
WITH g, genres, collect(DISTINCT c.name) AS characteristics
OPTIONAL MATCH (g)-[:HAS_DURATION]->(band:DurationBand)
WITH g, genres, characteristics, max(band.max_minutes) AS max_minutes
WHERE (max_minutes IS NULL AND $min_minutes <= 0) OR max_minutes >= $min_minutes
RETURN g.id AS id,
       g.name AS name,
       coalesce(g.description, '') AS description,
       characteristics,
       genres,
       max_minutes
ORDER BY id
"""

# ---------------------------------------------------------------------------
# User history
# ---------------------------------------------------------------------------

_PLAYED_GAME_IDS = """
MATCH (:User {id: $user_id})-[:PLAYED]->(g:Game)
RETURN g.id AS id
"""

_RECENT_GENRES = """
MATCH (:User {id: $user_id})-[p:PLAYED]->(:Game)-[:HAS_GENRE]->(ge:Genre)
WHERE p.played_at >= $since
RETURN DISTINCT ge.name AS genre
"""

_USER_RESONANCE = """
MATCH (:User {id: $user_id})-[r:RESONATES_WITH]->(:Emotion {type: $emotion})
RETURN r.intensity AS intensity
"""

_USER_STATE = """
MATCH (u:User {id: $user_id})
OPTIONAL MATCH (u)-[:EMOTIONAL_STATE]->(e:Emotion)
OPTIONAL MATCH (u)-[:PREFERS_DURATION]->(band:DurationBand)
RETURN e.type AS dominant_emotion, band.name AS band_name
"""

_USER_RESONANCES = """
MATCH (:User {id: $user_id})-[r:RESONATES_WITH]->(e:Emotion)
RETURN e.type AS emotion, r.intensity AS intensity
"""

# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

_UPSERT_PLAYED = """
MERGE (u:User {id: $user_id})
MERGE (g:Game {id: $game_id})
MERGE (u)-[p:PLAYED]->(g)
SET p.satisfaction = $satisfaction, p.played_at = datetime()
"""

_UPSERT_RESONANCE = {
    ResonanceOwner.USER: """
MERGE (o:User {id: $owner_id})
MERGE (e:Emotion {type: $emotion})
MERGE (o)-[r:RESONATES_WITH]->(e)
SET r.intensity = $intensity, r.updated_at = datetime()
""",
    ResonanceOwner.GAME: """
MATCH (o:Game {id: $owner_id})
MERGE (e:Emotion {type: $emotion})
MERGE (o)-[r:RESONATES_WITH]->(e)
SET r.intensity = $intensity, r.updated_at = datetime()
""",
}

_RECORD_EXPERIENCED = """
MATCH (u:User {id: $user_id})
UNWIND $emotions AS emotion
MATCH (e:Emotion {type: emotion})
MERGE (u)-[x:EXPERIENCED {game_id: $game_id}]->(e)
SET x.recorded_at = datetime()
"""

_ENSURE_USER = """
MERGE (u:User {id: $user_id})
ON CREATE SET u.created_at = datetime()
ON MATCH SET u.last_seen = datetime()
"""

_CLEAR_EMOTIONAL_STATE = """
MATCH (:User {id: $user_id})-[old:EMOTIONAL_STATE]->()
DELETE old
"""

_CREATE_EMOTIONAL_STATE = """
MATCH (u:User {id: $user_id})
MERGE (e:Emotion {type: $emotion})
CREATE (u)-[s:EMOTIONAL_STATE]->(e)
SET s.intensity = $intensity, s.recorded_at = datetime()
"""

_CLEAR_PREFERRED_DURATION = """
MATCH (:User {id: $user_id})-[old:PREFERS_DURATION]->()
DELETE old
"""

_CREATE_PREFERRED_DURATION = """
MATCH (u:User {id: $user_id})
MATCH (band:DurationBand {name: $band_name})
CREATE (u)-[p:PREFERS_DURATION]->(band)
SET p.recorded_at = datetime()
"""

# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

_LIST_EMOTIONS = "MATCH (e:Emotion) RETURN e.type AS value ORDER BY value"
_LIST_CHARACTERISTICS = "MATCH (c:Characteristic) RETURN c.name AS value ORDER BY value"

_ENSURE_EMOTIONS = """
UNWIND $rows AS row
MERGE (e:Emotion {type: row.type})
SET e.description = row.description
"""

_ENSURE_CHARACTERISTICS = """
UNWIND $rows AS row
MERGE (c:Characteristic {name: row.name})
SET c.description = row.description
"""

_ENSURE_DURATION_BANDS = """
UNWIND $rows AS row
MERGE (b:DurationBand {name: row.name})
SET b.min_minutes = row.min_minutes,
    b.max_minutes = row.max_minutes,
    b.description = row.description
"""


class Neo4jGraphStore(GraphQueryPort):
    """Graph port backed by a Neo4j database through the official driver.

    The driver is a thread-safe connection pool shared by all requests; each
    call opens its own session.  Driver and server errors are wrapped in
    :class:`~gamesoul.errors.DatabaseError` naming the failing operation.

    Args:
        driver: A connected :class:`neo4j.Driver` (or compatible mock).
        database: Target database name.
        catalog: Resolves duration band names when reading profiles.
    """

    def __init__(
        self,
        driver: Driver,
        database: str = "neo4j",
        catalog: EmotionCatalog = DEFAULT_CATALOG,
    ) -> None:
        self._driver = driver
        self._database = database
        self._catalog = catalog

    @classmethod
    def connect(
        cls,
        uri: str,
        user: str,
        password: str,
        database: str = "neo4j",
        max_pool_size: int = 50,
    ) -> Neo4jGraphStore:
        """Create a driver for *uri* and wrap it in a store."""
        driver = GraphDatabase.driver(
            uri,
            auth=(user, password),
            max_connection_pool_size=max_pool_size,
            keep_alive=True,
        )
        return cls(driver, database=database)

    def verify_connectivity(self) -> None:
        try:
            self._driver.verify_connectivity()
        except (Neo4jError, DriverError) as exc:
            raise DatabaseError(f"Neo4j is unreachable: {exc}", variant="connect") from exc

    def close(self) -> None:
        self._driver.close()

    def ensure_reference_data(self, catalog: EmotionCatalog) -> None:
        """Merge emotion, characteristic and duration band nodes.

        Run once at startup; never part of per-request work.
        """
        emotions = [{"type": e.type, "description": e.description} for e in catalog.emotions]
        characteristics = [
            {"name": c.name, "description": c.description} for c in catalog.characteristics
        ]
        bands = [b.to_dict() for b in catalog.duration_bands]

        def work(tx: ManagedTransaction) -> None:
            tx.run(_ENSURE_EMOTIONS, {"rows": emotions}).consume()
            tx.run(_ENSURE_CHARACTERISTICS, {"rows": characteristics}).consume()
            tx.run(_ENSURE_DURATION_BANDS, {"rows": bands}).consume()

        self._write("ensure_reference_data", work)
        logger.info(
            "Reference data ensured: %d emotions, %d characteristics, %d bands.",
            len(emotions),
            len(characteristics),
            len(bands),
        )

    # ------------------------------------------------------------------
    # Candidate queries
    # ------------------------------------------------------------------

    def find_games_by_emotion(
        self, emotion: str, dealbreakers: Sequence[str]
    ) -> list[GameCandidate]:
        rows = self._read(
            "find_games_by_emotion",
            _GAMES_BY_EMOTION,
            emotion=emotion,
            dealbreakers=list(dealbreakers),
        )
        candidates = []
        for row in rows:
            candidate = _parse_candidate(row, "find_games_by_emotion")
            if candidate is None:
                continue
            candidate.intensities = {
                emotion: _parse_intensity(row, "intensity", candidate.game_id)
            }
            candidates.append(candidate)
        return candidates

    def find_games_by_profile(
        self,
        emotions: Mapping[str, float],
        user_id: str | None,
        min_minutes: int,
        dealbreakers: Sequence[str],
    ) -> list[GameCandidate]:
        rows = self._read(
            "find_games_by_profile",
            _GAMES_BY_PROFILE,
            emotions=list(emotions),
            user_id=user_id,
            min_minutes=min_minutes,
            dealbreakers=list(dealbreakers),
        )
        candidates = []
        for row in rows:
            candidate = _parse_candidate(row, "find_games_by_profile")
            if candidate is None:
                continue
            for entry in row.get("matched") or []:
                emotion = entry.get("emotion")
                if emotion is None:
                    continue
                candidate.intensities[emotion] = _parse_intensity(
                    entry, "intensity", candidate.game_id
                )
            candidate.genre_relations = _parse_relations(row.get("genre_relations"))
            candidate.characteristic_relations = _parse_relations(
                row.get("characteristic_relations")
            )
            candidates.append(candidate)
        return candidates

    def find_direct_matches(self, emotion: str) -> list[GameCandidate]:
        rows = self._read("find_direct_matches", _DIRECT_MATCHES, emotion=emotion)
        candidates = []
        for row in rows:
            candidate = _parse_candidate(row, "find_direct_matches")
            if candidate is None:
                continue
            candidate.intensities = {
                emotion: _parse_intensity(row, "intensity", candidate.game_id)
            }
            candidates.append(candidate)
        return candidates

    def find_unplayed_genre_games(
        self, user_id: str, excluded_genres: set[str], min_minutes: int
    ) -> list[GameCandidate]:
        rows = self._read(
            "find_unplayed_genre_games",
            _UNPLAYED_GENRE_GAMES,
            user_id=user_id,
            excluded_genres=sorted(excluded_genres),
            min_minutes=min_minutes,
        )
        candidates = []
        for row in rows:
            candidate = _parse_candidate(row, "find_unplayed_genre_games")
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    # ------------------------------------------------------------------
    # User history
    # ------------------------------------------------------------------

    def get_played_game_ids(self, user_id: str) -> set[str]:
        rows = self._read("get_played_game_ids", _PLAYED_GAME_IDS, user_id=user_id)
        return {row["id"] for row in rows if row.get("id")}

    def get_recent_genres(self, user_id: str, since: datetime) -> set[str]:
        rows = self._read("get_recent_genres", _RECENT_GENRES, user_id=user_id, since=since)
        return {row["genre"] for row in rows if row.get("genre")}

    def get_user_resonance(self, user_id: str, emotion: str) -> float | None:
        rows = self._read(
            "get_user_resonance", _USER_RESONANCE, user_id=user_id, emotion=emotion
        )
        if not rows or rows[0].get("intensity") is None:
            return None
        return float(rows[0]["intensity"])

    def get_user_profile(self, user_id: str) -> EmotionalProfile | None:
        rows = self._read("get_user_profile", _USER_STATE, user_id=user_id)
        if not rows or not rows[0].get("dominant_emotion"):
            logger.info("No emotional profile stored for user %r.", user_id)
            return None
        state = rows[0]

        resonance_rows = self._read(
            "get_user_profile.resonances", _USER_RESONANCES, user_id=user_id
        )
        weights: dict[str, float] = {}
        for row in resonance_rows:
            if row.get("emotion") is None:
                continue
            weights[row["emotion"]] = _parse_intensity(row, "intensity", user_id)
        ordered = sorted(weights, key=self._catalog.emotion_rank)

        band = self._catalog.get_band(
            state.get("band_name") or config.DEFAULT_DURATION_BAND
        ) or self._catalog.get_band(config.DEFAULT_DURATION_BAND)
        return EmotionalProfile(
            user_id=user_id,
            emotions={e: weights[e] for e in ordered},
            dominant_emotion=state["dominant_emotion"],
            duration_band=band,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_played(self, user_id: str, game_id: str, satisfaction: int) -> None:
        params = {"user_id": user_id, "game_id": game_id, "satisfaction": satisfaction}
        self._write(
            "upsert_played", lambda tx: tx.run(_UPSERT_PLAYED, params).consume()
        )

    def record_experienced(
        self, user_id: str, game_id: str, emotions: Sequence[str]
    ) -> None:
        params = {"user_id": user_id, "game_id": game_id, "emotions": list(emotions)}
        self._write(
            "record_experienced",
            lambda tx: tx.run(_RECORD_EXPERIENCED, params).consume(),
        )

    def upsert_resonance(
        self,
        owner_id: str,
        emotion: str,
        intensity: float,
        owner: ResonanceOwner = ResonanceOwner.USER,
    ) -> None:
        query = _UPSERT_RESONANCE[ResonanceOwner(owner)]
        params = {
            "owner_id": owner_id,
            "emotion": emotion,
            "intensity": clamp_intensity(intensity),
        }
        self._write("upsert_resonance", lambda tx: tx.run(query, params).consume())

    def replace_emotional_state(
        self, user_id: str, emotion: str, intensity: float = 1.0
    ) -> None:
        self._write(
            "replace_emotional_state",
            lambda tx: _replace_state(tx, user_id, emotion, intensity),
        )

    def set_preferred_duration(self, user_id: str, band_name: str) -> None:
        self._write(
            "set_preferred_duration",
            lambda tx: _replace_duration(tx, user_id, band_name),
        )

    def replace_profile(self, profile: EmotionalProfile, min_weight: float) -> None:
        intensity = profile.emotions.get(profile.dominant_emotion, 1.0)

        def work(tx: ManagedTransaction) -> None:
            _replace_state(tx, profile.user_id, profile.dominant_emotion, intensity)
            _replace_duration(tx, profile.user_id, profile.duration_band.name)
            for emotion, weight in profile.emotions.items():
                if weight > min_weight:
                    tx.run(
                        _UPSERT_RESONANCE[ResonanceOwner.USER],
                        {
                            "owner_id": profile.user_id,
                            "emotion": emotion,
                            "intensity": clamp_intensity(weight),
                        },
                    ).consume()

        self._write("replace_profile", work)

    # ------------------------------------------------------------------
    # Reference lists
    # ------------------------------------------------------------------

    def list_emotions(self) -> list[str]:
        rows = self._read("list_emotions", _LIST_EMOTIONS)
        return [row["value"] for row in rows if row.get("value")]

    def list_characteristics(self) -> list[str]:
        rows = self._read("list_characteristics", _LIST_CHARACTERISTICS)
        return [row["value"] for row in rows if row.get("value")]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _read(self, variant: str, query: str, **params: Any) -> list[dict[str, Any]]:
        """Run a read query and materialise its rows as dicts."""
        try:
            with self._driver.session(database=self._database) as session:
                result = session.run(query, params)
                return [record.data() for record in result]
        except (Neo4jError, DriverError) as exc:
            logger.error("Query %s failed: %s", variant, exc)
            raise DatabaseError(f"Query {variant} failed: {exc}", variant=variant) from exc

    def _write(self, variant: str, work: Callable[[ManagedTransaction], Any]) -> None:
        """Run *work* inside a single managed write transaction."""
        try:
            with self._driver.session(database=self._database) as session:
                session.execute_write(work)
        except (Neo4jError, DriverError) as exc:
            logger.error("Write %s failed: %s", variant, exc)
            raise DatabaseError(f"Write {variant} failed: {exc}", variant=variant) from exc


# ---------------------------------------------------------------------------
# Transaction steps
# ---------------------------------------------------------------------------


def _replace_state(tx: ManagedTransaction, user_id: str, emotion: str, intensity: float) -> None:
    tx.run(_ENSURE_USER, {"user_id": user_id}).consume()
    tx.run(_CLEAR_EMOTIONAL_STATE, {"user_id": user_id}).consume()
    tx.run(
        _CREATE_EMOTIONAL_STATE,
        {"user_id": user_id, "emotion": emotion, "intensity": intensity},
    ).consume()


def _replace_duration(tx: ManagedTransaction, user_id: str, band_name: str) -> None:
    tx.run(_ENSURE_USER, {"user_id": user_id}).consume()
    tx.run(_CLEAR_PREFERRED_DURATION, {"user_id": user_id}).consume()
    tx.run(
        _CREATE_PREFERRED_DURATION, {"user_id": user_id, "band_name": band_name}
    ).consume()


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


def _parse_candidate(row: Mapping[str, Any], variant: str) -> GameCandidate | None:
    """Build a candidate from *row*; ``None`` (logged) when the id is missing."""
    game_id = row.get("id")
    if not game_id:
        logger.error("Skipping %s row without a game id: %r", variant, row)
        return None

    name = row.get("name")
    if not name:
        logger.error("Row from %s has no name for game %r.", variant, game_id)
        name = "Untitled game"

    max_minutes = row.get("max_minutes")
    if max_minutes is not None:
        try:
            max_minutes = int(max_minutes)
        except (TypeError, ValueError):
            logger.error(
                "Row from %s has unreadable max_minutes %r for game %r.",
                variant,
                max_minutes,
                game_id,
            )
            max_minutes = None

    return GameCandidate(
        game_id=str(game_id),
        name=str(name),
        description=str(row.get("description") or ""),
        genres=[g for g in (row.get("genres") or []) if g],
        characteristics=[c for c in (row.get("characteristics") or []) if c],
        max_minutes=max_minutes,
    )


def _parse_intensity(row: Mapping[str, Any], key: str, owner: str) -> float:
    value = row.get(key)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.error(
            "Unreadable %s %r for %r; using %.1f.", key, value, owner, _DEFAULT_INTENSITY
        )
        return _DEFAULT_INTENSITY


def _parse_relations(entries: Any) -> list[Relation]:
    """Parse collected ``RELATED_TO`` maps, dropping the all-null placeholder."""
    relations = []
    for entry in entries or []:
        source, emotion = entry.get("source"), entry.get("emotion")
        if source is None or emotion is None or entry.get("intensity") is None:
            continue
        try:
            intensity = float(entry["intensity"])
        except (TypeError, ValueError):
            logger.error("Unreadable RELATED_TO intensity in %r; skipped.", entry)
            continue
        relations.append(Relation(source, emotion, intensity))
    return relations
