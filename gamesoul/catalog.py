"""Static reference data: emotions, characteristics, duration bands, questionnaire."""

from __future__ import annotations

from dataclasses import dataclass

from gamesoul.models import (
    Characteristic,
    DurationBand,
    Emotion,
    OptionKind,
    Question,
    QuestionOption,
)


@dataclass(frozen=True)
class EmotionCatalog:
    """Immutable reference data, built once at import and injected by reference.

    Emotion order is canonical: it breaks ties when choosing a dominant
    emotion and fixes the iteration order of normalized profiles.

    Attributes:
        emotions: All emotion tags, in canonical order.
        characteristics: All characteristic tags.
        dealbreakers: Characteristics users are offered to exclude.
        duration_bands: The five ordered, contiguous duration bands.
        questions: The canonical questionnaire.
    """

    emotions: tuple[Emotion, ...]
    characteristics: tuple[Characteristic, ...]
    dealbreakers: tuple[str, ...]
    duration_bands: tuple[DurationBand, ...]
    questions: tuple[Question, ...]

    def emotion_types(self) -> list[str]:
        return [e.type for e in self.emotions]

    def characteristic_names(self) -> list[str]:
        return [c.name for c in self.characteristics]

    def emotion_rank(self, emotion: str) -> int:
        """Return the canonical position of *emotion*.

        Unknown emotions rank after every catalog emotion.
        """
        for i, e in enumerate(self.emotions):
            if e.type == emotion:
                return i
        return len(self.emotions)

    def is_emotion(self, emotion: str) -> bool:
        return any(e.type == emotion for e in self.emotions)

    def get_band(self, name: str) -> DurationBand | None:
        for band in self.duration_bands:
            if band.name == name:
                return band
        return None

    def get_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


def _mapping(option_id: str, text: str, *emotions: tuple[str, float]) -> QuestionOption:
    return QuestionOption(
        id=option_id, text=text, kind=OptionKind.EMOTION_MAPPING, emotions=emotions
    )


def _duration(option_id: str, text: str) -> QuestionOption:
    return QuestionOption(
        id=option_id, text=text, kind=OptionKind.DURATION, duration_band=option_id
    )


EMOTIONS: tuple[Emotion, ...] = (
    Emotion("joyful", "Fun, upbeat experiences"),
    Emotion("relaxing", "Calm, stress-free experiences"),
    Emotion("melancholic", "Moving, nostalgic experiences"),
    Emotion("exploration", "Discovery and curiosity"),
    Emotion("challenging", "Experiences that test your skills"),
    Emotion("contemplative", "Reflective, thoughtful experiences"),
    Emotion("social", "Connecting with other people"),
    Emotion("competitive", "Competing and outdoing others"),
    Emotion("creative", "Expression and making things"),
)

CHARACTERISTICS: tuple[Characteristic, ...] = (
    Characteristic("social", "Focus on social interaction"),
    Characteristic("exploration", "Rewards discovering the world"),
    Characteristic("challenging", "Tests your abilities"),
    Characteristic("story", "Developed narrative"),
    Characteristic("puzzles", "Puzzles and riddles"),
    Characteristic("collectible", "Things to collect"),
    Characteristic("difficult", "High difficulty"),
    Characteristic("combat", "Combat systems"),
    Characteristic("atmosphere", "Immersive ambience"),
    Characteristic("immersive", "Pulls you fully into its world"),
    Characteristic("choices", "Your decisions matter"),
    Characteristic("artistic", "Standout art direction"),
    Characteristic("teamwork", "Requires group coordination"),
    Characteristic("skill", "Rewards developing specific skills"),
    Characteristic("strategy", "Requires planning"),
    Characteristic("fast-paced", "High tempo"),
    Characteristic("characters", "Strong character development"),
    Characteristic("stylized", "Distinctive visual style"),
)

DEALBREAKERS: tuple[str, ...] = ("combat", "difficult", "social", "fast-paced")

# 9999 stands in for "unbounded"; request time is capped well below it.
DURATION_BANDS: tuple[DurationBand, ...] = (
    DurationBand("very_short", 0, 30, "Less than 30 minutes"),
    DurationBand("short", 30, 60, "Between 30 minutes and 1 hour"),
    DurationBand("medium", 60, 180, "Between 1 and 3 hours"),
    DurationBand("long", 180, 480, "Between 3 and 8 hours"),
    DurationBand("very_long", 480, 9999, "More than 8 hours"),
)

QUESTIONS: tuple[Question, ...] = (
    Question(
        id="experience_type",
        text="What kind of experience are you looking for right now?",
        question_type="emotional_state",
        options=(
            _mapping("relax", "Unwind", ("relaxing", 0.9), ("contemplative", 0.4)),
            _mapping("thrill", "Feel excitement", ("challenging", 0.7), ("joyful", 0.6)),
            _mapping("challenge", "Challenge myself", ("challenging", 0.9), ("competitive", 0.5)),
            _mapping("explore", "Explore something new", ("exploration", 0.9), ("creative", 0.4)),
            _mapping("connect", "Connect with others", ("social", 0.9), ("joyful", 0.3)),
        ),
    ),
    Question(
        id="available_time",
        text="How much time do you have to play?",
        question_type="time_available",
        options=(
            _duration("very_short", "Very little (less than 30 minutes)"),
            _duration("short", "A little (30 minutes to 1 hour)"),
            _duration("medium", "Some (1 to 3 hours)"),
            _duration("long", "Plenty (3 to 8 hours)"),
            _duration("very_long", "Lots (more than 8 hours)"),
        ),
    ),
    Question(
        id="mood",
        text="How would you describe your current mood?",
        question_type="mood_state",
        options=(
            _mapping("energetic", "Energetic", ("joyful", 0.7), ("challenging", 0.6), ("competitive", 0.5)),
            _mapping("calm", "Calm", ("relaxing", 0.8), ("contemplative", 0.6)),
            _mapping("bored", "Bored", ("exploration", 0.7), ("challenging", 0.5)),
            _mapping("nostalgic", "Nostalgic", ("melancholic", 0.8), ("contemplative", 0.6)),
            _mapping("curious", "Curious", ("exploration", 0.9), ("creative", 0.5)),
            _mapping("stressed", "Stressed", ("relaxing", 0.8), ("social", 0.4)),
        ),
    ),
    Question(
        id="preferred_activity",
        text="If you had to pick an activity right now, what would it be?",
        question_type="activity_preference",
        options=(
            _mapping("puzzle", "Solve a puzzle", ("challenging", 0.7), ("contemplative", 0.5)),
            _mapping("storytelling", "Tell a story", ("creative", 0.8), ("social", 0.6)),
            _mapping("build", "Build something", ("creative", 0.9), ("relaxing", 0.4)),
            _mapping("compete", "Compete", ("competitive", 0.9), ("challenging", 0.7)),
            _mapping("discover", "Discover a new place", ("exploration", 0.9), ("joyful", 0.4)),
        ),
    ),
    Question(
        id="emotional_goal",
        text="How would you like to feel after playing?",
        question_type="goal_state",
        options=(
            _mapping("accomplished", "Satisfied at beating a challenge", ("challenging", 0.9), ("competitive", 0.6)),
            _mapping("calm", "Calm and at peace", ("relaxing", 0.9), ("contemplative", 0.6)),
            _mapping("awe", "Amazed and curious", ("exploration", 0.8), ("contemplative", 0.5)),
            _mapping("fun", "Happy and entertained", ("joyful", 0.9), ("social", 0.6)),
            _mapping("connected", "Connected to a story or its characters", ("melancholic", 0.6), ("contemplative", 0.8)),
        ),
    ),
)

DEFAULT_CATALOG = EmotionCatalog(
    emotions=EMOTIONS,
    characteristics=CHARACTERISTICS,
    dealbreakers=DEALBREAKERS,
    duration_bands=DURATION_BANDS,
    questions=QUESTIONS,
)
