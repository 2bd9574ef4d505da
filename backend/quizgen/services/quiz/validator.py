"""Quiz validation: structural rules, business rules, quality and publication checks.

``validate_quiz_data`` runs all four rule groups and raises once with the
complete error list. Quality and publication reports never raise.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from quizgen.core.config import Settings, settings
from quizgen.core.errors import BusinessRuleError, QuizValidationError
from quizgen.core.utils import normalize_text
from quizgen.services.quiz.messages import get_catalog
from quizgen.services.quiz.question_rules import (
    SHAPE_CHECKS,
    AnswerResolutionError,
    first_present,
    resolve_choice_index,
    resolve_question_type,
)
from quizgen.services.quiz.schemas import (
    DIFFICULTIES,
    QUESTION_TYPES,
    QUIZ_CATEGORIES,
    QUIZ_STATUSES,
    AnswerDistributionAnalysis,
    DifficultyAnalysis,
    LengthAnalysis,
    PublicationReport,
    PublicationRequirements,
    QualityAnalytics,
    QualityReport,
    QuestionType,
    TypeVarietyAnalysis,
    ValidationResult,
)

logger = logging.getLogger(__name__)

# Thai script, Latin letters, digits and common punctuation
_MEANINGFUL_TEXT_RE = re.compile(r"^[\u0E00-\u0E7Fa-zA-Z0-9\s\-_.,!?()'\":;/%&+=*<>\[\]]+$")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<!^)(?=[A-Z])")


class ValidatorConfig(BaseModel):
    """Immutable limits and thresholds used by ``QuizValidator``."""

    model_config = ConfigDict(frozen=True)

    min_title_length: int = 3
    max_title_length: int = 255
    max_description_length: int = 1000
    max_question_length: int = 1000
    max_option_length: int = 200
    max_explanation_length: int = 500
    min_questions: int = 1
    max_questions: int = 100
    min_options: int = 2
    max_options: int = 6
    max_tags: int = 10
    max_tag_length: int = 50
    min_points: int = 1
    max_points: int = 10
    min_time_limit: int = 1
    max_time_limit: int = 480
    require_user_id: bool = True

    # Quality heuristics
    variety_threshold: float = 0.3
    variety_min_questions: int = 5
    difficulty_imbalance_threshold: float = 0.8
    length_inconsistency_threshold: float = 0.7
    answer_bias_threshold: float = 0.6
    issue_penalty: float = 10
    practice_bonus: float = 5
    explanation_bonus: float = 10
    description_bonus_length: int = 50
    question_count_bonus: int = 5

    # Publication gate
    publication_min_title_length: int = 5
    publication_min_description_length: int = 20
    publication_min_questions: int = 3
    publication_min_explanation_ratio: float = 0.5

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "ValidatorConfig":
        s = s or settings
        return cls(
            max_title_length=s.QUIZ_MAX_TITLE_LENGTH,
            max_description_length=s.QUIZ_MAX_DESCRIPTION_LENGTH,
            max_question_length=s.QUIZ_MAX_QUESTION_LENGTH,
            max_option_length=s.QUIZ_MAX_OPTION_LENGTH,
            max_explanation_length=s.QUIZ_MAX_EXPLANATION_LENGTH,
            min_questions=s.QUIZ_MIN_QUESTIONS,
            max_questions=s.QUIZ_MAX_QUESTIONS,
            max_time_limit=s.QUIZ_MAX_TIME_LIMIT,
        )


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def _get(data: Dict[str, Any], name: str, *aliases: str) -> Any:
    """Read a camelCase field, accepting its snake_case spelling and *aliases*."""
    return first_present(data, name, _snake(name), *aliases)


def _dict_items(values: Any) -> List[Dict[str, Any]]:
    return [v for v in values if isinstance(v, dict)] if isinstance(values, list) else []


def _has(data: Dict[str, Any], name: str, *aliases: str) -> bool:
    return any(key in data for key in (name, _snake(name), *aliases))


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class QuizValidator:
    """Validates quiz payloads (dicts or ``Quiz`` models) against ``ValidatorConfig``."""

    def __init__(self, config: Optional[ValidatorConfig] = None, language: Optional[str] = None):
        self.config = config or ValidatorConfig.from_settings()
        self.msg = get_catalog(language)

    # ── Full validation ───────────────────────────────────

    def validate_quiz_data(self, quiz: Any) -> ValidationResult:
        data = self._payload(quiz)

        business_errors = self.validate_business_rules(data)
        errors = (
            self.validate_basic_info(data)
            + self.validate_questions(_get(data, "questions") or [], _get(data, "questionType"))
            + self.validate_advanced_properties(data)
            + business_errors
        )

        if errors:
            result = ValidationResult(is_valid=False, errors=errors)
            logger.info("Quiz validation failed: %d error(s) for title=%r", len(errors), data.get("title"))
            error_cls = BusinessRuleError if len(business_errors) == len(errors) else QuizValidationError
            raise error_cls(self.msg("validation.failed"), errors=errors, result=result)

        logger.debug("Quiz validation passed: title=%r", data.get("title"))
        return ValidationResult(is_valid=True)

    def validate_update_data(self, partial: Any) -> ValidationResult:
        """Validate only the fields present in a partial update payload."""
        data = self._payload(partial)
        errors: List[str] = []

        if _has(data, "title"):
            errors += self._title_errors(_get(data, "title"))
        for name in ("topic", "description", "category", "questionType", "status", "timeLimit"):
            if _has(data, name):
                errors += self._field_errors(name, _get(data, name))
        if _has(data, "difficulty", "difficultyLevel"):
            errors += self._field_errors("difficulty", _get(data, "difficulty", "difficultyLevel"))
        if _has(data, "questions"):
            errors += self.validate_questions(_get(data, "questions"), _get(data, "questionType"))
        errors += self.validate_advanced_properties(data)

        if errors:
            result = ValidationResult(is_valid=False, errors=errors)
            logger.info("Update validation failed: %d error(s)", len(errors))
            raise QuizValidationError(self.msg("validation.update_failed"), errors=errors, result=result)
        return ValidationResult(is_valid=True)

    # ── Rule groups ───────────────────────────────────────

    def validate_basic_info(self, quiz: Any) -> List[str]:
        data = self._payload(quiz)
        errors = self._title_errors(_get(data, "title"))
        for name in ("topic", "description", "category", "questionType", "status", "timeLimit"):
            errors += self._field_errors(name, _get(data, name))
        errors += self._field_errors("difficulty", _get(data, "difficulty", "difficultyLevel"))

        if self.config.require_user_id and not _get(data, "userId"):
            errors.append(self.msg("user_id.required"))
        return errors

    def validate_questions(self, questions: Any, default_type: Any = None) -> List[str]:
        msg = self.msg
        cfg = self.config
        if not isinstance(questions, list):
            return [msg("questions.not_list")]

        errors = []
        if len(questions) < cfg.min_questions:
            errors.append(msg("questions.too_few", min=cfg.min_questions))
        if len(questions) > cfg.max_questions:
            errors.append(msg("questions.too_many", max=cfg.max_questions))

        for index, question in enumerate(questions):
            errors += self._single_question_errors(question, index + 1, default_type)

        errors += self._duplicate_errors(questions)
        return errors

    def validate_advanced_properties(self, quiz: Any) -> List[str]:
        data = self._payload(quiz)
        msg = self.msg
        cfg = self.config
        errors = []

        tags = _get(data, "tags")
        if tags is not None:
            if not isinstance(tags, list):
                errors.append(msg("tags.not_list"))
            else:
                if len(tags) > cfg.max_tags:
                    errors.append(msg("tags.too_many", max=cfg.max_tags))
                for i, tag in enumerate(tags, start=1):
                    if not _is_text(tag):
                        errors.append(msg("tag.not_string", number=i))
                    elif len(tag) > cfg.max_tag_length:
                        errors.append(msg("tag.too_long", number=i, max=cfg.max_tag_length))

        quiz_settings = _get(data, "settings")
        if quiz_settings is not None and not isinstance(quiz_settings, dict):
            errors.append(msg("settings.not_object"))

        if _has(data, "isPublic") and not isinstance(_get(data, "isPublic"), bool):
            errors.append(msg("is_public.not_bool"))

        folder_id = _get(data, "folderId")
        if folder_id is not None:
            value = _as_int(folder_id)
            if value is None or value < 1:
                errors.append(msg("folder_id.invalid"))

        return errors

    def validate_business_rules(self, quiz: Any) -> List[str]:
        data = self._payload(quiz)
        msg = self.msg
        errors = []
        questions = _get(data, "questions")
        questions = questions if isinstance(questions, list) else []
        status = _get(data, "status")

        if status == "published":
            if not questions:
                errors.append(msg("business.published_no_questions"))
            if not _get(data, "timeLimit"):
                logger.warning("Published quiz without time limit: title=%r", data.get("title"))

        if _get(data, "isPublic") is True:
            if not _is_text(_get(data, "description")):
                errors.append(msg("business.public_no_description"))
            if status == "draft":
                errors.append(msg("business.public_draft"))

        quiz_type = resolve_question_type(_get(data, "questionType"))
        for number, question in enumerate(questions, start=1):
            options = question.get("options") if isinstance(question, dict) else None
            if not isinstance(options, list):
                continue
            if quiz_type is QuestionType.MULTIPLE_CHOICE and len(options) < self.config.min_options:
                errors.append(msg("business.mc_min_options", number=number))
            elif quiz_type is QuestionType.TRUE_FALSE and len(options) != 2:
                errors.append(msg("business.tf_two_options", number=number))

        return errors

    # ── Quality ───────────────────────────────────────────

    def validate_quiz_quality(self, quiz: Any) -> QualityReport:
        """Advisory quality report; never raises."""
        data = self._payload(quiz)
        questions = _dict_items(_get(data, "questions"))
        default_type = _get(data, "questionType")
        cfg = self.config
        msg = self.msg
        issues: List[str] = []
        suggestions: List[str] = []

        variety = self.analyze_question_types(questions, default_type)
        if variety.variety < cfg.variety_threshold and len(questions) > cfg.variety_min_questions:
            issues.append(msg("quality.low_variety"))
            suggestions.append(msg("quality.low_variety.fix"))

        difficulty = self.analyze_difficulty_distribution(questions)
        if difficulty.imbalance > cfg.difficulty_imbalance_threshold:
            issues.append(msg("quality.difficulty_imbalance"))
            suggestions.append(msg("quality.difficulty_imbalance.fix"))

        lengths = self.analyze_question_lengths(questions)
        if lengths.inconsistency > cfg.length_inconsistency_threshold:
            issues.append(msg("quality.length_inconsistent"))
            suggestions.append(msg("quality.length_inconsistent.fix"))

        answers = self.analyze_answer_distribution(questions, default_type)
        if answers.bias > cfg.answer_bias_threshold:
            issues.append(msg("quality.answer_bias"))
            suggestions.append(msg("quality.answer_bias.fix"))

        score = self.calculate_quality_score(data, questions, len(issues))
        logger.debug("Quiz quality: score=%.2f issues=%d", score, len(issues))

        return QualityReport(
            is_valid=not issues,
            quality_score=score,
            quality_level=self.quality_level(score),
            issues=issues,
            suggestions=suggestions,
            analytics=QualityAnalytics(
                question_types=variety,
                difficulty_distribution=difficulty,
                length_analysis=lengths,
                answer_distribution=answers,
            ),
        )

    def analyze_question_types(self, questions: List[Dict[str, Any]], default_type: Any = None) -> TypeVarietyAnalysis:
        questions = _dict_items(questions)
        if not questions:
            return TypeVarietyAnalysis()
        fallback = resolve_question_type(default_type) or QuestionType.MULTIPLE_CHOICE
        distribution = Counter(
            (resolve_question_type(q.get("type")) or fallback).value for q in questions
        )
        return TypeVarietyAnalysis(
            variety=len(distribution) / len(QUESTION_TYPES),
            distribution=dict(distribution),
            unique_types=len(distribution),
        )

    def analyze_difficulty_distribution(self, questions: List[Dict[str, Any]]) -> DifficultyAnalysis:
        questions = _dict_items(questions)
        if not questions:
            return DifficultyAnalysis()
        distribution = Counter(
            q["difficulty"] if isinstance(q.get("difficulty"), str) and q["difficulty"] else "medium"
            for q in questions
        )
        total = len(questions)
        expected = total / len(distribution)
        imbalance = sum(abs(count - expected) for count in distribution.values()) / total
        return DifficultyAnalysis(imbalance=imbalance, distribution=dict(distribution))

    def analyze_question_lengths(self, questions: List[Dict[str, Any]]) -> LengthAnalysis:
        if not questions:
            return LengthAnalysis()
        lengths = [len(q["question"]) if isinstance(q.get("question"), str) else 0 for q in questions]
        average = sum(lengths) / len(lengths)
        variance = sum((n - average) ** 2 for n in lengths) / len(lengths)
        std = math.sqrt(variance)
        inconsistency = min(std / average, 1.0) if average else 0.0
        return LengthAnalysis(
            inconsistency=inconsistency, average=average, variance=variance, standard_deviation=std
        )

    def analyze_answer_distribution(
        self, questions: List[Dict[str, Any]], default_type: Any = None
    ) -> AnswerDistributionAnalysis:
        fallback = resolve_question_type(default_type) or QuestionType.MULTIPLE_CHOICE
        positions: Counter = Counter()
        for q in questions:
            if (resolve_question_type(q.get("type")) or fallback) is not QuestionType.MULTIPLE_CHOICE:
                continue
            options = q.get("options")
            if not isinstance(options, list):
                continue
            try:
                positions[resolve_choice_index(q, options)] += 1
            except AnswerResolutionError:
                continue

        count = sum(positions.values())
        if not count:
            return AnswerDistributionAnalysis()
        expected = count / len(positions)
        bias = sum(abs(n - expected) for n in positions.values()) / count
        return AnswerDistributionAnalysis(
            bias=bias, distribution=dict(sorted(positions.items())), multiple_choice_count=count
        )

    def calculate_quality_score(self, data: Dict[str, Any], questions: List[Dict[str, Any]], issue_count: int) -> float:
        cfg = self.config
        score = 100 - issue_count * cfg.issue_penalty

        description = _get(data, "description")
        if isinstance(description, str) and len(description) > cfg.description_bonus_length:
            score += cfg.practice_bonus
        if _get(data, "timeLimit"):
            score += cfg.practice_bonus
        if len(questions) >= cfg.question_count_bonus:
            score += cfg.practice_bonus
        if questions:
            score += self._explanation_ratio(questions) * cfg.explanation_bonus

        return round(max(0.0, min(100.0, float(score))), 2)

    @staticmethod
    def quality_level(score: float) -> str:
        if score >= 90:
            return "excellent"
        if score >= 75:
            return "good"
        if score >= 60:
            return "fair"
        return "poor"

    # ── Publication ───────────────────────────────────────

    def validate_for_publication(self, quiz: Any) -> PublicationReport:
        data = self._payload(quiz)
        cfg = self.config
        msg = self.msg
        errors = []

        title = _get(data, "title")
        title = title.strip() if isinstance(title, str) else ""
        description = _get(data, "description")
        description = description.strip() if isinstance(description, str) else ""
        questions = _get(data, "questions")
        questions = questions if isinstance(questions, list) else []
        has_time_limit = bool(_get(data, "timeLimit"))
        ratio = self._explanation_ratio(questions) if questions else 0.0

        if len(title) < cfg.publication_min_title_length:
            errors.append(msg("publication.title_short", min=cfg.publication_min_title_length))
        if len(description) < cfg.publication_min_description_length:
            errors.append(msg("publication.description_short", min=cfg.publication_min_description_length))
        if len(questions) < cfg.publication_min_questions:
            errors.append(msg("publication.too_few_questions", min=cfg.publication_min_questions))
        if not has_time_limit:
            errors.append(msg("publication.no_time_limit"))
        if questions and ratio < cfg.publication_min_explanation_ratio:
            errors.append(
                msg("publication.explanations", percent=round(cfg.publication_min_explanation_ratio * 100))
            )

        return PublicationReport(
            is_ready_for_publication=not errors,
            errors=errors,
            requirements=PublicationRequirements(
                title_length=len(title),
                description_length=len(description),
                question_count=len(questions),
                has_time_limit=has_time_limit,
                explanation_ratio=ratio,
            ),
        )

    # ── Helpers ───────────────────────────────────────────

    @staticmethod
    def _payload(quiz: Any) -> Dict[str, Any]:
        if isinstance(quiz, BaseModel):
            return quiz.model_dump(by_alias=True, mode="json")
        if isinstance(quiz, dict):
            return quiz
        return {}

    @staticmethod
    def _explanation_ratio(questions: List[Any]) -> float:
        explained = sum(1 for q in questions if isinstance(q, dict) and _is_text(q.get("explanation")))
        return explained / len(questions)

    def _title_errors(self, title: Any) -> List[str]:
        msg = self.msg
        cfg = self.config
        if not _is_text(title):
            return [msg("title.required")]
        title = title.strip()
        if len(title) < cfg.min_title_length:
            return [msg("title.too_short")]
        if len(title) > cfg.max_title_length:
            return [msg("title.too_long", max=cfg.max_title_length)]
        if not _MEANINGFUL_TEXT_RE.match(title):
            return [msg("title.charset")]
        return []

    def _field_errors(self, name: str, value: Any) -> List[str]:
        """Checks for a single optional quiz-level field; ``None`` always passes."""
        msg = self.msg
        cfg = self.config
        if value is None:
            return []

        if name == "topic":
            if isinstance(value, str) and len(value) > cfg.max_title_length:
                return [msg("topic.too_long", max=cfg.max_title_length)]
        elif name == "description":
            if isinstance(value, str) and len(value) > cfg.max_description_length:
                return [msg("description.too_long", max=cfg.max_description_length)]
        elif name == "category":
            if value and value not in QUIZ_CATEGORIES:
                return [msg("category.invalid", value=value)]
        elif name == "questionType":
            if value and resolve_question_type(value) is None:
                return [msg("question_type.invalid", value=value)]
        elif name == "difficulty":
            if value and value not in DIFFICULTIES:
                return [msg("difficulty.invalid", value=value)]
        elif name == "status":
            if value and value not in QUIZ_STATUSES:
                return [msg("status.invalid", value=value)]
        elif name == "timeLimit":
            minutes = _as_int(value)
            if minutes is None or not cfg.min_time_limit <= minutes <= cfg.max_time_limit:
                return [msg("time_limit.range", min=cfg.min_time_limit, max=cfg.max_time_limit)]
        return []

    def _single_question_errors(self, question: Any, number: int, default_type: Any) -> List[str]:
        msg = self.msg
        cfg = self.config

        def prefixed(details: str) -> str:
            return msg("question.prefix", number=number, details=details)

        if not isinstance(question, dict):
            return [prefixed(msg("question.not_object"))]

        errors = []
        text = question.get("question")
        if not isinstance(text, str):
            errors.append(msg("v.text_invalid", number=number))
        elif not text.strip():
            errors.append(msg("v.text_empty", number=number))
        elif len(text.strip()) > cfg.max_question_length:
            errors.append(msg("v.text_too_long", number=number, max=cfg.max_question_length))
        elif not _MEANINGFUL_TEXT_RE.match(text.strip()):
            errors.append(msg("v.text_charset", number=number))

        qtype = resolve_question_type(question.get("type") or default_type or QuestionType.MULTIPLE_CHOICE)
        if qtype is None:
            errors.append(msg("v.type_invalid", number=number))

        if "options" in question:
            errors += self._option_errors(question["options"], number)

        if qtype is QuestionType.MULTIPLE_CHOICE:
            options = question.get("options")
            if options is None:
                errors.append(prefixed(msg("mc.options_required")))
            options = options if isinstance(options, list) else []
            try:
                resolve_choice_index(question, options)
            except AnswerResolutionError as exc:
                if options or exc.key != "mc.answer_out_of_range":
                    errors.append(prefixed(exc.render(msg)))
        elif qtype is not None:
            errors += [prefixed(e) for e in SHAPE_CHECKS[qtype](question, msg)]

        explanation = question.get("explanation")
        if isinstance(explanation, str) and len(explanation) > cfg.max_explanation_length:
            errors.append(msg("v.explanation_too_long", number=number, max=cfg.max_explanation_length))

        if question.get("points") is not None:
            points = _as_int(question["points"])
            if points is None or not cfg.min_points <= points <= cfg.max_points:
                errors.append(msg("v.points_range", number=number, min=cfg.min_points, max=cfg.max_points))

        difficulty = question.get("difficulty")
        if difficulty and difficulty not in DIFFICULTIES:
            errors.append(msg("v.difficulty_invalid", number=number))

        return errors

    def _option_errors(self, options: Any, number: int) -> List[str]:
        msg = self.msg
        cfg = self.config
        if not isinstance(options, list):
            return [msg("options.not_list", number=number)]

        errors = []
        if len(options) < cfg.min_options:
            errors.append(msg("options.too_few", number=number, min=cfg.min_options))
        if len(options) > cfg.max_options:
            errors.append(msg("options.too_many", number=number, max=cfg.max_options))

        for i, option in enumerate(options, start=1):
            if not _is_text(option):
                errors.append(msg("option.invalid", number=number, option=i))
            elif len(option.strip()) > cfg.max_option_length:
                errors.append(msg("option.too_long", number=number, option=i, max=cfg.max_option_length))

        texts = [normalize_text(o) for o in options if isinstance(o, str)]
        if len(set(texts)) != len(texts):
            errors.append(msg("options.duplicate", number=number))
        return errors

    def _duplicate_errors(self, questions: List[Any]) -> List[str]:
        seen = set()
        errors = []
        for number, question in enumerate(questions, start=1):
            if not isinstance(question, dict) or not isinstance(question.get("question"), str):
                continue
            key = normalize_text(question["question"])
            if not key:
                continue
            if key in seen:
                errors.append(self.msg("v.duplicate", number=number))
            else:
                seen.add(key)
        return errors
