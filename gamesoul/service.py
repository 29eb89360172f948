"""gRPC servicer: the entry point for all inbound GameSoul calls.

Every method takes and returns a ``google.protobuf.Struct`` so the service
needs no generated stubs; payloads are the JSON shapes the web client sends.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from typing import Any

import grpc
from google.protobuf import json_format, struct_pb2

import config
from gamesoul.engine import RecommendationEngine
from gamesoul.errors import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SERVICE_NAME = "gamesoul.GameSoulService"

_METHODS = (
    "GetQuestionnaire",
    "SubmitQuestionnaire",
    "GetRecommendations",
    "SubmitFeedback",
    "GetUserProfile",
)


class GameSoulServicer:
    """Implements the ``gamesoul.GameSoulService`` gRPC service.

    Registered with the server through :func:`build_handler`.  Domain errors
    map onto status codes:

    ====================  ====================
    Error                 Status
    ====================  ====================
    ValidationError       INVALID_ARGUMENT
    NotFoundError         NOT_FOUND
    DatabaseError         UNAVAILABLE
    anything else         INTERNAL
    ====================  ====================

    Args:
        engine: The :class:`~gamesoul.engine.RecommendationEngine`.
    """

    def __init__(self, engine: RecommendationEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Questionnaire
    # ------------------------------------------------------------------

    def GetQuestionnaire(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return the questionnaire and the selectable reference lists."""
        return self._invoke("GetQuestionnaire", context, self._engine.get_questionnaire)

    def SubmitQuestionnaire(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Store the user's profile and return emotional (and exploration) picks.

        Request: ``{user_id, answers: {question_id: option_id}, dealbreakers?}``.
        """

        def call() -> dict[str, Any]:
            payload = _payload(request)
            user_id = _required_str(payload, "user_id")
            answers = _answers(payload)
            dealbreakers = _str_list(payload, "dealbreakers")
            return self._engine.submit_questionnaire(user_id, answers, dealbreakers).to_dict()

        return self._timed("SubmitQuestionnaire", context, call)

    # ------------------------------------------------------------------
    # Direct recommendations
    # ------------------------------------------------------------------

    def GetRecommendations(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Recommend games for a stated emotion.

        Request: ``{estado_emocional, tiempo_disponible?, dealbreakers?,
        incluir_exploracion?, user_id?}``.
        """

        def call() -> dict[str, Any]:
            payload = _payload(request)
            result = self._engine.recommend_for_emotion(
                emotion=_required_str(payload, "estado_emocional"),
                minutes=_optional_int(
                    payload, "tiempo_disponible", config.DEFAULT_AVAILABLE_MINUTES
                ),
                dealbreakers=_str_list(payload, "dealbreakers"),
                user_id=_optional_str(payload, "user_id"),
                include_exploration=_optional_bool(payload, "incluir_exploracion", True),
            )
            return result.to_dict()

        return self._timed("GetRecommendations", context, call)

    # ------------------------------------------------------------------
    # Feedback and profile
    # ------------------------------------------------------------------

    def SubmitFeedback(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Record a rating and update resonance.

        Always answers ``{status, message}``; failures also set the status
        code so callers cannot mistake them for success.
        """
        try:
            payload = _payload(request)
            result = self._engine.submit_feedback(
                user_id=_required_str(payload, "user_id"),
                game_id=_required_str(payload, "game_id"),
                satisfaction=_required_int(payload, "satisfaction"),
                emotions=_str_list(payload, "emotions_experienced") or None,
            )
        except ValidationError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
            return _to_struct({"status": "error", "message": str(exc)})
        except DatabaseError as exc:
            logger.error("SubmitFeedback failed in the datastore: %s", exc)
            context.set_code(grpc.StatusCode.UNAVAILABLE)
            context.set_details("Datastore unavailable; feedback not recorded.")
            return _to_struct({"status": "error", "message": "Feedback not recorded."})
        except Exception:
            logger.exception("Unexpected error recording feedback")
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details("Internal error recording feedback.")
            return _to_struct({"status": "error", "message": "Internal error."})

        return _to_struct(
            {
                "status": "success",
                "message": (
                    f"Feedback recorded for game {result.game_id} "
                    f"({len(result.intensities)} emotions updated)."
                ),
            }
        )

    def GetUserProfile(self, request: struct_pb2.Struct, context: Any) -> struct_pb2.Struct:
        """Return the stored emotional profile of ``user_id``."""

        def call() -> dict[str, Any]:
            payload = _payload(request)
            return self._engine.get_user_profile(_required_str(payload, "user_id")).to_dict()

        return self._invoke("GetUserProfile", context, call)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _timed(
        self, method: str, context: Any, call: Callable[[], dict[str, Any]]
    ) -> struct_pb2.Struct:
        start_ms = time.monotonic() * 1000
        try:
            return self._invoke(method, context, call)
        finally:
            elapsed_ms = time.monotonic() * 1000 - start_ms
            if elapsed_ms > config.SLOW_RECOMMENDATION_MS:
                logger.warning(
                    "%s took %.1fms (slow threshold: %.0fms)",
                    method,
                    elapsed_ms,
                    config.SLOW_RECOMMENDATION_MS,
                )
            else:
                logger.debug("%s took %.1fms", method, elapsed_ms)

    @staticmethod
    def _invoke(
        method: str, context: Any, call: Callable[[], dict[str, Any]]
    ) -> struct_pb2.Struct:
        try:
            return _to_struct(call())
        except ValidationError as exc:
            context.set_code(grpc.StatusCode.INVALID_ARGUMENT)
            context.set_details(str(exc))
        except NotFoundError as exc:
            context.set_code(grpc.StatusCode.NOT_FOUND)
            context.set_details(str(exc))
        except DatabaseError as exc:
            logger.error("%s failed in the datastore: %s", method, exc)
            context.set_code(grpc.StatusCode.UNAVAILABLE)
            context.set_details("Datastore unavailable.")
        except Exception:
            logger.exception("Unexpected error in %s", method)
            context.set_code(grpc.StatusCode.INTERNAL)
            context.set_details(f"Internal error in {method}.")
        return struct_pb2.Struct()


def build_handler(servicer: GameSoulServicer) -> grpc.GenericRpcHandler:
    """Return a generic handler exposing *servicer* as ``gamesoul.GameSoulService``."""
    handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=struct_pb2.Struct.FromString,
            response_serializer=struct_pb2.Struct.SerializeToString,
        )
        for name in _METHODS
    }
    return grpc.method_handlers_generic_handler(SERVICE_NAME, handlers)


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _payload(request: struct_pb2.Struct) -> dict[str, Any]:
    return json_format.MessageToDict(request)


def _to_struct(data: dict[str, Any]) -> struct_pb2.Struct:
    return json_format.ParseDict(data, struct_pb2.Struct())


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} must be a non-empty string")
    return value.strip()


def _optional_str(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _as_int(key: str, value: Any) -> int:
    # Struct numbers always arrive as floats.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        raise ValidationError(f"{key} must be an integer, got {value!r}")
    return int(value)


def _required_int(payload: dict[str, Any], key: str) -> int:
    if payload.get(key) is None:
        raise ValidationError(f"{key} is required")
    return _as_int(key, payload[key])


def _optional_int(payload: dict[str, Any], key: str, default: int) -> int:
    if payload.get(key) is None:
        return default
    return _as_int(key, payload[key])


def _optional_bool(payload: dict[str, Any], key: str, default: bool) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value


def _str_list(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{key} must be a list of strings")
    return value


def _answers(payload: dict[str, Any]) -> dict[str, str]:
    value = payload.get("answers")
    if not isinstance(value, dict) or not value:
        raise ValidationError("answers must be a non-empty object")
    for question_id, option_id in value.items():
        if not isinstance(option_id, str):
            raise ValidationError(f"Answer to {question_id!r} must be an option id string")
    return value
