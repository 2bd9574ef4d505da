"""Generation cost estimate: tokens, time, content complexity and recommendations."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Union

from quizgen.services.quiz.messages import get_catalog
from quizgen.services.quiz.prompt_builder import PromptBuilder
from quizgen.services.quiz.schemas import (
    Difficulty,
    GenerationEstimate,
    GenerationParameters,
    QuestionType,
    TokenEstimate,
)
from quizgen.services.token_counter import estimate_token_count

logger = logging.getLogger(__name__)

MAX_ESTIMATED_SECONDS = 180
MAX_COMPLEXITY = 5

TECHNICAL_KEYWORDS = ("algorithm", "function", "class", "database", "network", "security", "api", "framework")

TOKENS_PER_QUESTION = {
    QuestionType.MULTIPLE_CHOICE: 150,
    QuestionType.TRUE_FALSE: 80,
    QuestionType.SHORT_ANSWER: 100,
    QuestionType.ESSAY: 200,
}
DEFAULT_TOKENS_PER_QUESTION = 120

TYPE_COMPLEXITY = {
    QuestionType.MULTIPLE_CHOICE: 1.0,
    QuestionType.TRUE_FALSE: 0.5,
    QuestionType.SHORT_ANSWER: 1.5,
    QuestionType.ESSAY: 2.0,
}

DIFFICULTY_MULTIPLIER = {
    Difficulty.EASY: 0.8,
    Difficulty.MEDIUM: 1.0,
    Difficulty.HARD: 1.3,
    Difficulty.EXPERT: 1.5,
}

# Extra seconds per request
DIFFICULTY_TIME_BONUS = {
    Difficulty.EASY: 0,
    Difficulty.MEDIUM: 2,
    Difficulty.HARD: 5,
    Difficulty.EXPERT: 5,
}


def tokens_per_question(question_type: QuestionType) -> int:
    return TOKENS_PER_QUESTION.get(question_type, DEFAULT_TOKENS_PER_QUESTION)


def calculate_content_complexity(
    content: Optional[str], question_type: QuestionType, difficulty: Difficulty
) -> int:
    """Complexity score 1-5 from length, technical vocabulary, type and difficulty."""
    if not content:
        return 1

    complexity = 1.0
    if len(content) > 5000:
        complexity += 2
    elif len(content) > 1000:
        complexity += 1

    lowered = content.lower()
    technical = sum(1 for keyword in TECHNICAL_KEYWORDS if keyword in lowered)
    complexity += min(technical * 0.3, 1.5)

    complexity += TYPE_COMPLEXITY.get(question_type, 1.0)
    complexity *= DIFFICULTY_MULTIPLIER[difficulty]

    return max(1, min(math.ceil(complexity), MAX_COMPLEXITY))


def generation_recommendations(params: GenerationParameters) -> List[str]:
    msg = get_catalog(params.language)
    recommendations = []
    if params.number_of_questions > 20:
        recommendations.append(msg("estimate.large_quiz"))
    if len(params.content) > 5000:
        recommendations.append(msg("estimate.large_content"))
    if params.question_type is QuestionType.ESSAY:
        recommendations.append(msg("estimate.essay"))
    if params.difficulty in (Difficulty.HARD, Difficulty.EXPERT):
        recommendations.append(msg("estimate.hard"))
    return recommendations


def estimate_generation(
    params: Union[GenerationParameters, Dict[str, Any]], prompt: Optional[str] = None
) -> GenerationEstimate:
    """Estimate tokens, duration and complexity for one generation request.

    Input tokens are counted on *prompt*, or on the rendered quiz prompt when
    no prompt is given.
    """
    if not isinstance(params, GenerationParameters):
        params = GenerationParameters.model_validate(params or {})
    if prompt is None:
        prompt = PromptBuilder().build_quiz_prompt(params)

    complexity = calculate_content_complexity(params.content, params.question_type, params.difficulty)
    seconds = (
        5
        + params.number_of_questions * 2
        + complexity * 3
        + DIFFICULTY_TIME_BONUS[params.difficulty]
    )

    input_tokens = estimate_token_count(prompt)
    output_tokens = params.number_of_questions * tokens_per_question(params.question_type)

    estimate = GenerationEstimate(
        estimated_time_seconds=min(seconds, MAX_ESTIMATED_SECONDS),
        estimated_tokens=TokenEstimate(
            input=input_tokens, output=output_tokens, total=input_tokens + output_tokens
        ),
        complexity=complexity,
        recommendations=generation_recommendations(params),
    )
    logger.debug(
        "Generation estimate: %ds, %d tokens, complexity %d",
        estimate.estimated_time_seconds, estimate.estimated_tokens.total, complexity,
    )
    return estimate
