"""Application configuration driven by environment variables.

All settings have sensible defaults for local development.
Copy ``.env.example`` to ``.env`` and adjust values for your environment.
"""

import os

# ---------------------------------------------------------------------------
# gRPC server
# ---------------------------------------------------------------------------

GRPC_SERVER_HOST: str = os.getenv("GRPC_SERVER_HOST", "0.0.0.0")
GRPC_SERVER_PORT: int = int(os.getenv("GRPC_SERVER_PORT", "50051"))

# Thread pool size for the gRPC server.  Each concurrent RPC occupies one
# thread, so this caps concurrent request handling.
GRPC_MAX_WORKERS: int = int(os.getenv("GRPC_MAX_WORKERS", "10"))

# Recommendation RPCs slower than this are logged at WARNING.
SLOW_RECOMMENDATION_MS: float = float(os.getenv("SLOW_RECOMMENDATION_MS", "450"))

# ---------------------------------------------------------------------------
# Graph datastore
# ---------------------------------------------------------------------------

# "neo4j" for the real graph, "memory" for the seeded in-process demo graph.
GAMESOUL_STORE: str = os.getenv("GAMESOUL_STORE", "neo4j")

NEO4J_URI: str = os.getenv("NEO4J_URI", "bolt://localhost:7687")
NEO4J_USER: str = os.getenv("NEO4J_USER", "neo4j")
NEO4J_PASSWORD: str = os.getenv("NEO4J_PASSWORD", "password")
NEO4J_DATABASE: str = os.getenv("NEO4J_DATABASE", "neo4j")
NEO4J_MAX_POOL_SIZE: int = int(os.getenv("NEO4J_MAX_POOL_SIZE", "50"))

# ---------------------------------------------------------------------------
# Scoring policy
# ---------------------------------------------------------------------------

# Outer weights applied to each signal when composing the total score.
DIRECT_WEIGHT: float = 1.0
GENRE_WEIGHT: float = 0.5
CHARACTERISTIC_WEIGHT: float = 0.3

# Inner weights applied to each RELATED_TO intensity before summing.
GENRE_RELATION_WEIGHT: float = 0.5
CHARACTERISTIC_RELATION_WEIGHT: float = 0.3

DEFAULT_RESULT_LIMIT: int = 5

# Emotion used when a profile carries no signal, and the default emotion
# recorded for feedback that names no experienced emotions.
NEUTRAL_EMOTION: str = "neutral"

# Duration band assumed when no answer selects one.
DEFAULT_DURATION_BAND: str = "medium"

# ---------------------------------------------------------------------------
# Direct recommendation requests
# ---------------------------------------------------------------------------

DEFAULT_AVAILABLE_MINUTES: int = 60
MIN_AVAILABLE_MINUTES: int = 5
MAX_AVAILABLE_MINUTES: int = 1440

# ---------------------------------------------------------------------------
# Exploration
# ---------------------------------------------------------------------------

EXPLORATION_WINDOW_DAYS: int = 30
EXPLORATION_THRESHOLD: int = 3     # invoke when primary list is shorter
EXPLORATION_LIMIT: int = 3
EXPLORATION_SCORE_OFFSET: float = 0.01

# Optional fixed seed for the exploration random source (unset = entropy).
EXPLORATION_SEED: int | None = (
    int(os.environ["EXPLORATION_SEED"]) if os.getenv("EXPLORATION_SEED") else None
)

# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

FEEDBACK_INITIAL_INTENSITY: float = 0.5
FEEDBACK_DELTA_DIVISOR: float = 10.0   # delta = (satisfaction - 3) / divisor

# Profile emotions below this weight are not persisted as user resonance.
PROFILE_RESONANCE_MIN_WEIGHT: float = 0.1
