"""Entry point: wires all components and starts the gRPC server."""

from __future__ import annotations

import logging
import signal
import sys
from concurrent import futures

import grpc

import config
from gamesoul.catalog import DEFAULT_CATALOG
from gamesoul.engine import RecommendationEngine
from gamesoul.graph.memory_store import InMemoryGraphStore, seed_demo_catalog
from gamesoul.graph.neo4j_store import Neo4jGraphStore
from gamesoul.graph.port import GraphQueryPort
from gamesoul.service import GameSoulServicer, build_handler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_store() -> GraphQueryPort:
    """Create the graph store selected by ``GAMESOUL_STORE``.

    Raises:
        ValueError: If ``GAMESOUL_STORE`` names an unknown backend.
        DatabaseError: If Neo4j is unreachable or bootstrap fails.
    """
    if config.GAMESOUL_STORE == "memory":
        store = InMemoryGraphStore(catalog=DEFAULT_CATALOG)
        seed_demo_catalog(store)
        logger.info("Using the in-memory demo graph.")
        return store

    if config.GAMESOUL_STORE != "neo4j":
        raise ValueError(f"Unknown GAMESOUL_STORE {config.GAMESOUL_STORE!r}")

    logger.info("Connecting to Neo4j at %s", config.NEO4J_URI)
    store = Neo4jGraphStore.connect(
        config.NEO4J_URI,
        config.NEO4J_USER,
        config.NEO4J_PASSWORD,
        database=config.NEO4J_DATABASE,
        max_pool_size=config.NEO4J_MAX_POOL_SIZE,
    )
    store.verify_connectivity()
    store.ensure_reference_data(DEFAULT_CATALOG)
    return store


def build_server(store: GraphQueryPort) -> grpc.Server:
    """Construct and configure the gRPC server with all dependencies wired.

    Args:
        store: The graph datastore every component reads and writes.

    Returns:
        A configured but not-yet-started :class:`grpc.Server`.
    """
    engine = RecommendationEngine(port=store, catalog=DEFAULT_CATALOG)
    servicer = GameSoulServicer(engine=engine)

    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=config.GRPC_MAX_WORKERS)
    )
    server.add_generic_rpc_handlers((build_handler(servicer),))
    server.add_insecure_port(
        f"{config.GRPC_SERVER_HOST}:{config.GRPC_SERVER_PORT}"
    )
    return server


def main() -> None:
    """Initialise all components and start the gRPC server.

    Startup sequence:
    1. Open the graph store (bootstrapping Neo4j reference nodes).
    2. Build the gRPC server.
    3. Register ``SIGTERM``/``SIGINT`` shutdown handlers.
    4. Start serving.
    """
    store = build_store()
    server = build_server(store)

    def handle_shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down...", sig_name)
        server.stop(grace=5)
        if isinstance(store, Neo4jGraphStore):
            store.close()
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    server.start()
    logger.info(
        "GameSoul gRPC server listening on %s:%d",
        config.GRPC_SERVER_HOST,
        config.GRPC_SERVER_PORT,
    )
    server.wait_for_termination()


if __name__ == "__main__":
    main()
