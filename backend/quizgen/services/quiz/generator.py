"""Quiz generation: prompt, AI call, parse and validate in one pass.

The AI call is the caller-supplied ``invoke(prompt) -> str``. Nothing is
retried here; any failure propagates so the caller can decide to re-invoke.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from quizgen.core.errors import QuizValidationError
from quizgen.core.utils import normalize_text
from quizgen.services.quiz.messages import get_catalog
from quizgen.services.quiz.prompt_builder import PromptBuilder
from quizgen.services.quiz.response_parser import ResponseParser
from quizgen.services.quiz.schemas import (
    QUIZ_CATEGORIES,
    GenerationParameters,
    GenerationResult,
    Question,
    Quiz,
)
from quizgen.services.quiz.validator import QuizValidator, ValidatorConfig

logger = logging.getLogger(__name__)

Invoke = Callable[[str], str]


def _coerce_params(params: Union[GenerationParameters, Dict[str, Any]]) -> GenerationParameters:
    if isinstance(params, GenerationParameters):
        return params
    return GenerationParameters.model_validate(params or {})


def generate_quiz(
    params: Union[GenerationParameters, Dict[str, Any]],
    invoke: Invoke,
    user_id: Optional[str] = None,
    validator: Optional[QuizValidator] = None,
    parser: Optional[ResponseParser] = None,
) -> GenerationResult:
    """Generate a quiz from *params* using *invoke* for the AI call.

    Args:
        params: Generation request
        invoke: Callable that sends a prompt to the AI service and returns its reply
        user_id: Owner of the quiz; the userId rule is skipped when omitted
        validator: Validator to use (default: configured from settings)
        parser: Parser to use (default: one in the request language)

    Returns:
        GenerationResult: accepted quiz, quality report and validation result

    Raises:
        QuizValidationError: reply could not be parsed or the quiz was rejected
    """
    params = _coerce_params(params)
    parser = parser or ResponseParser(language=params.language)
    if validator is None:
        config = ValidatorConfig.from_settings()
        if user_id is None:
            config = config.model_copy(update={"require_user_id": False})
        validator = QuizValidator(config, language=params.language)

    prompt = PromptBuilder().build_quiz_prompt(params)
    logger.info(
        "Generating quiz: type=%s count=%d difficulty=%s",
        params.question_type.value, params.number_of_questions, params.difficulty.value,
    )
    raw = invoke(prompt)

    quiz = parser.parse_quiz_response(raw)
    payload = quiz.model_dump(by_alias=True, mode="json")
    payload.update({
        "userId": user_id,
        "topic": params.topic or None,
        "difficulty": params.difficulty.value,
        "questionType": params.question_type.value,
        "language": params.language,
    })
    if params.category in QUIZ_CATEGORIES:
        payload["category"] = params.category
    elif params.category:
        logger.debug("Category %r is not a stored category; leaving it unset", params.category)

    validation = validator.validate_quiz_data(payload)
    quality = validator.validate_quiz_quality(payload)
    logger.info(
        "Quiz generated: title=%r questions=%d quality=%.1f (%s)",
        quiz.title, len(quiz.questions), quality.quality_score, quality.quality_level,
    )
    return GenerationResult(quiz=quiz, quality=quality, validation=validation)


def regenerate_questions(
    quiz: Union[Quiz, Dict[str, Any]],
    indices: Sequence[int],
    params: Union[GenerationParameters, Dict[str, Any]],
    invoke: Invoke,
    reason: Optional[str] = None,
    parser: Optional[ResponseParser] = None,
) -> List[Question]:
    """Replace the questions at *indices* with freshly generated ones.

    Returns the full question list with the replacements applied; *quiz* is
    not modified.
    """
    params = _coerce_params(params)
    if not isinstance(quiz, Quiz):
        quiz = Quiz.model_validate(quiz)
    msg = get_catalog(params.language)
    parser = parser or ResponseParser(language=params.language)
    questions = list(quiz.questions)

    if not validate_question_indices(indices, len(questions)):
        raise QuizValidationError(msg("regen.invalid_indices", indices=list(indices)))

    replaced = [questions[i] for i in indices]
    prompt = PromptBuilder().build_regeneration_prompt(quiz, replaced, params, reason=reason)
    logger.info("Regenerating %d question(s) at %s", len(indices), list(indices))
    new_questions = parser.parse_questions_response(invoke(prompt))

    if len(new_questions) != len(indices):
        raise QuizValidationError(
            msg("regen.count_mismatch", expected=len(indices), received=len(new_questions))
        )

    seen = {normalize_text(q.question) for q in questions}
    errors = []
    for number, question in enumerate(new_questions, start=1):
        key = normalize_text(question.question)
        if key in seen:
            errors.append(msg("regen.duplicate", number=number))
        seen.add(key)
    if errors:
        raise QuizValidationError(msg("validation.failed"), errors=errors)

    for index, question in zip(indices, new_questions):
        questions[index] = question
    return questions


def validate_question_indices(indices: Sequence[Any], question_count: int) -> bool:
    """Indices must be a non-empty set of distinct in-range integers."""
    if not indices:
        return False
    if any(isinstance(i, bool) or not isinstance(i, int) for i in indices):
        return False
    if len(set(indices)) != len(indices):
        return False
    return all(0 <= i < question_count for i in indices)
