"""Pydantic schemas for generation requests, quizzes and validation reports.

Python attributes are snake_case; the wire format is camelCase
(``model_dump(by_alias=True)``). Both spellings are accepted on input.
"""

import logging
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from quizgen.core.config import SUPPORTED_LANGUAGES, settings

logger = logging.getLogger(__name__)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    ESSAY = "essay"
    SHORT_ANSWER = "short_answer"
    FILL_IN_BLANK = "fill_in_blank"
    MATCHING = "matching"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


QUESTION_TYPES = tuple(t.value for t in QuestionType)
DIFFICULTIES = tuple(d.value for d in Difficulty)
QUIZ_CATEGORIES = ("general", "mathematics", "science", "language", "history", "technology", "other")
QUIZ_STATUSES = ("draft", "published", "archived")

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_choice(value: Any, allowed: tuple, fallback: str, field: str) -> str:
    """Map *value* onto one of *allowed*, falling back with a warning."""
    text = str(value.value if isinstance(value, Enum) else (value or "")).strip().lower()
    text = text.replace("-", "_").replace(" ", "_")
    if text in allowed:
        return text
    if text:
        logger.warning("Unsupported %s %r, falling back to %r", field, value, fallback)
    return fallback


# ── Generation request ────────────────────────────────────


class GenerationParameters(BaseModel):
    """Immutable description of one generation request.

    Bad values never raise: unknown enumerations fall back to defaults and the
    question count is clamped to 1-100.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore"
    )

    content: str = ""
    topic: str = ""
    context: str = ""
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    number_of_questions: int = 10
    difficulty: Difficulty = Difficulty.MEDIUM
    language: str = Field(default_factory=lambda: settings.DEFAULT_LANGUAGE)
    category: str = ""
    instructions: str = ""
    include_explanations: bool = True

    @field_validator("content", "topic", "context", "category", "instructions", mode="before")
    @classmethod
    def _text_or_empty(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("question_type", mode="before")
    @classmethod
    def _fallback_type(cls, v):
        return _coerce_choice(v, QUESTION_TYPES, QuestionType.MULTIPLE_CHOICE.value, "question type")

    @field_validator("difficulty", mode="before")
    @classmethod
    def _fallback_difficulty(cls, v):
        return _coerce_choice(v, DIFFICULTIES, Difficulty.MEDIUM.value, "difficulty")

    @field_validator("language", mode="before")
    @classmethod
    def _fallback_language(cls, v):
        return _coerce_choice(v, SUPPORTED_LANGUAGES, settings.DEFAULT_LANGUAGE, "language")

    @field_validator("number_of_questions", mode="before")
    @classmethod
    def _clamp_count(cls, v):
        try:
            count = int(v)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Invalid question count %r, using 10", v)
            return 10
        if count < 1 or count > 100:
            logger.warning("Question count %d out of range, clamping to 1-100", count)
        return max(1, min(count, 100))

    @field_validator("include_explanations", mode="before")
    @classmethod
    def _fallback_explanations(cls, v):
        if v is None or isinstance(v, bool):
            return True if v is None else v
        text = str(v).strip().lower()
        if text in ("true", "yes", "1"):
            return True
        if text in ("false", "no", "0"):
            return False
        logger.warning("Invalid includeExplanations %r, using True", v)
        return True


# ── Questions (tagged union on ``type``) ──────────────────


class _QuestionBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    question: str = Field(min_length=1)
    explanation: Optional[str] = None
    points: Optional[int] = None
    difficulty: Optional[str] = None


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str] = Field(min_length=2)
    correct_answer: int

    @model_validator(mode="after")
    def _answer_resolves(self) -> "MultipleChoiceQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(
                f"correctAnswer index {self.correct_answer} is outside 0-{len(self.options) - 1}"
            )
        return self

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_answer]


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true_false"] = "true_false"
    correct_answer: bool


class EssayQuestion(_QuestionBase):
    type: Literal["essay"] = "essay"
    rubric: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short_answer"] = "short_answer"
    correct_answers: List[str] = Field(default_factory=list)


class FillInBlankQuestion(_QuestionBase):
    type: Literal["fill_in_blank"] = "fill_in_blank"
    correct_answers: List[str] = Field(min_length=1)


class MatchingPair(BaseModel):
    left: str = Field(min_length=1)
    right: str = Field(min_length=1)


class MatchingQuestion(_QuestionBase):
    type: Literal["matching"] = "matching"
    pairs: List[MatchingPair] = Field(min_length=2)


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        EssayQuestion,
        ShortAnswerQuestion,
        FillInBlankQuestion,
        MatchingQuestion,
    ],
    Field(discriminator="type"),
]


# ── Quiz ──────────────────────────────────────────────────


class QuizMetadata(BaseModel):
    model_config = _CAMEL

    total_questions: int
    question_types: Dict[str, int]
    ai_generated: bool = True
    generated_at: str


class Quiz(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    description: str = ""
    questions: List[Question] = Field(min_length=1)
    metadata: Optional[QuizMetadata] = None


# ── Validation reports ────────────────────────────────────


class ValidationResult(BaseModel):
    model_config = _CAMEL

    is_valid: bool
    errors: List[str] = Field(default_factory=list)


class TypeVarietyAnalysis(BaseModel):
    model_config = _CAMEL

    variety: float = 0.0
    distribution: Dict[str, int] = Field(default_factory=dict)
    unique_types: int = 0


class DifficultyAnalysis(BaseModel):
    model_config = _CAMEL

    imbalance: float = 0.0
    distribution: Dict[str, int] = Field(default_factory=dict)


class LengthAnalysis(BaseModel):
    model_config = _CAMEL

    inconsistency: float = 0.0
    average: float = 0.0
    variance: float = 0.0
    standard_deviation: float = 0.0


class AnswerDistributionAnalysis(BaseModel):
    model_config = _CAMEL

    bias: float = 0.0
    distribution: Dict[int, int] = Field(default_factory=dict)
    multiple_choice_count: int = 0


class QualityAnalytics(BaseModel):
    model_config = _CAMEL

    question_types: TypeVarietyAnalysis
    difficulty_distribution: DifficultyAnalysis
    length_analysis: LengthAnalysis
    answer_distribution: AnswerDistributionAnalysis


class QualityReport(BaseModel):
    model_config = _CAMEL

    is_valid: bool
    quality_score: float
    quality_level: Literal["excellent", "good", "fair", "poor"]
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    analytics: QualityAnalytics


class PublicationRequirements(BaseModel):
    model_config = _CAMEL

    title_length: int
    description_length: int
    question_count: int
    has_time_limit: bool
    explanation_ratio: float


class PublicationReport(BaseModel):
    model_config = _CAMEL

    is_ready_for_publication: bool
    errors: List[str] = Field(default_factory=list)
    requirements: PublicationRequirements


# ── Generation estimate ───────────────────────────────────


class TokenEstimate(BaseModel):
    input: int
    output: int
    total: int


class GenerationEstimate(BaseModel):
    model_config = _CAMEL

    estimated_time_seconds: int
    estimated_tokens: TokenEstimate
    complexity: int = Field(ge=1, le=5)
    recommendations: List[str] = Field(default_factory=list)


class GenerationResult(BaseModel):
    model_config = _CAMEL

    quiz: Quiz
    quality: QualityReport
    validation: ValidationResult
