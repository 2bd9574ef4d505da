from quizgen.services.quiz.estimator import estimate_generation
from quizgen.services.quiz.generator import (
    generate_quiz,
    regenerate_questions,
    validate_question_indices,
)
from quizgen.services.quiz.prompt_builder import PromptBuilder
from quizgen.services.quiz.response_parser import ResponseParser, fix_common_issues
from quizgen.services.quiz.validator import QuizValidator, ValidatorConfig
