"""
Unit tests for backend/quizgen/services/quiz/prompt_builder.py and quizgen/prompts
Tests: quiz / regeneration / improvement prompt rendering, determinism,
per-type JSON skeletons, content truncation, parameter fallbacks
No AI calls are made.
"""

import sys
import os
import json
import pytest

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

from quizgen.prompts import get_quiz_prompt, load_all_templates
from quizgen.services.quiz.prompt_builder import IMPROVEMENT_TYPES, PromptBuilder
from quizgen.services.quiz.schemas import Difficulty, GenerationParameters, QuestionType

_CONTENT = (
    "A queue is a linear data structure that removes items in the order they were added. "
    "A stack removes the most recently added item first."
)


@pytest.fixture
def builder():
    return PromptBuilder()


def _params(**overrides):
    base = {
        "content": _CONTENT,
        "topic": "Data structures",
        "questionType": "multiple_choice",
        "numberOfQuestions": 5,
        "difficulty": "medium",
        "language": "en",
    }
    base.update(overrides)
    return GenerationParameters.model_validate(base)


class TestTemplates:

    def test_all_templates_load(self):
        assert load_all_templates() == 6

    def test_placeholders_substituted(self):
        prompt = get_quiz_prompt("en", "CTX", "REQ", "{}", "EX", "RULES")
        assert "{{" not in prompt
        assert "CTX" in prompt and "RULES" in prompt

    def test_unknown_language_falls_back_to_thai(self):
        assert get_quiz_prompt("xx", "", "", "", "", "") == get_quiz_prompt("th", "", "", "", "", "")


class TestGenerationParameters:
    """Bad values fall back instead of raising."""

    def test_unknown_type_falls_back(self):
        assert _params(questionType="ranking").question_type is QuestionType.MULTIPLE_CHOICE

    def test_unknown_difficulty_falls_back(self):
        assert _params(difficulty="impossible").difficulty is Difficulty.MEDIUM

    def test_count_clamped(self):
        assert _params(numberOfQuestions=500).number_of_questions == 100
        assert _params(numberOfQuestions=0).number_of_questions == 1

    def test_bad_count_defaults(self):
        assert _params(numberOfQuestions="many").number_of_questions == 10

    def test_snake_case_accepted(self):
        params = GenerationParameters(question_type="true_false", number_of_questions=3)
        assert params.question_type is QuestionType.TRUE_FALSE
        assert params.number_of_questions == 3

    def test_unsupported_language_uses_default(self):
        from quizgen.core.config import settings
        assert _params(language="fr").language == settings.DEFAULT_LANGUAGE

    def test_bad_include_explanations_defaults(self):
        assert _params(includeExplanations="maybe").include_explanations is True
        assert _params(includeExplanations=None).include_explanations is True

    def test_include_explanations_strings(self):
        assert _params(includeExplanations="false").include_explanations is False
        assert _params(includeExplanations="yes").include_explanations is True

    def test_infinite_count_defaults(self):
        assert _params(numberOfQuestions=float("inf")).number_of_questions == 10


class TestBuildQuizPrompt:

    def test_contains_context_and_requirements(self, builder):
        prompt = builder.build_quiz_prompt(_params())
        assert "Subject/topic: Data structures" in prompt
        assert _CONTENT in prompt
        assert "Number of questions: 5 questions" in prompt
        assert "Multiple choice (4 options)" in prompt

    def test_deterministic(self, builder):
        assert builder.build_quiz_prompt(_params()) == builder.build_quiz_prompt(_params())

    def test_dict_params_accepted(self, builder):
        raw = {"content": _CONTENT, "topic": "Data structures", "numberOfQuestions": 5, "language": "en"}
        assert builder.build_quiz_prompt(raw) == builder.build_quiz_prompt(_params())

    def test_missing_optional_values_render_placeholder(self, builder):
        prompt = builder.build_quiz_prompt(GenerationParameters(language="en"))
        assert "Not specified" in prompt

    def test_thai_prompt(self, builder):
        prompt = builder.build_quiz_prompt(_params(language="th"))
        assert "ภาษาไทย" in prompt
        assert "Not specified" not in prompt

    @pytest.mark.parametrize("qtype,field", [
        ("multiple_choice", '"options"'),
        ("true_false", '"correctAnswer": true'),
        ("essay", '"rubric"'),
        ("short_answer", '"correctAnswers"'),
        ("fill_in_blank", '"correctAnswers"'),
        ("matching", '"pairs"'),
    ])
    def test_skeleton_per_type(self, builder, qtype, field):
        prompt = builder.build_quiz_prompt(_params(questionType=qtype))
        assert f'"type": "{qtype}"' in prompt
        assert field in prompt

    def test_explanations_optional(self, builder):
        with_expl = builder.build_quiz_prompt(_params())
        without = builder.build_quiz_prompt(_params(includeExplanations=False))
        assert '"explanation"' in with_expl
        assert '"explanation"' not in without

    def test_instructions_included(self, builder):
        prompt = builder.build_quiz_prompt(_params(instructions="Focus on queues"))
        assert "Focus on queues" in prompt

    def test_bad_include_explanations_still_renders(self, builder):
        prompt = builder.build_quiz_prompt({"topic": "Queues", "includeExplanations": "maybe", "language": "en"})
        assert '"explanation"' in prompt


class TestTruncateContent:

    def test_short_content_unchanged(self):
        assert PromptBuilder(max_content_length=100).truncate_content("Short.") == "Short."

    def test_empty_content(self):
        assert PromptBuilder().truncate_content(None) == ""

    def test_cuts_at_sentence_boundary(self):
        content = "a" * 90 + ". " + "b" * 50
        assert PromptBuilder(max_content_length=100).truncate_content(content) == "a" * 90 + "."

    def test_ellipsis_without_late_boundary(self):
        content = "Hi. " + "b" * 200
        result = PromptBuilder(max_content_length=100).truncate_content(content)
        assert result.endswith("...")
        assert len(result) == 103

    def test_long_content_truncated_in_prompt(self):
        content = "word " * 100
        prompt = PromptBuilder(max_content_length=50).build_quiz_prompt(_params(content=content))
        assert content not in prompt


class TestBuildRegenerationPrompt:

    QUIZ = {"title": "Data Structures Basics", "questions": []}
    REPLACED = [
        {"question": "Which data structure is first-in first-out?", "type": "multiple_choice",
         "options": ["Stack", "Queue"], "correctAnswer": 1},
    ]

    def test_lists_replaced_questions(self, builder):
        prompt = builder.build_regeneration_prompt(self.QUIZ, self.REPLACED, _params())
        assert "Which data structure is first-in first-out?" in prompt
        assert "Data Structures Basics" in prompt

    def test_count_matches_replaced(self, builder):
        prompt = builder.build_regeneration_prompt(self.QUIZ, self.REPLACED, _params(numberOfQuestions=9))
        assert "Number of questions: 1 questions" in prompt

    def test_reason_rendered(self, builder):
        prompt = builder.build_regeneration_prompt(self.QUIZ, self.REPLACED, _params(), reason="Too easy")
        assert "Reason for replacement: Too easy" in prompt

    def test_default_reason(self, builder):
        prompt = builder.build_regeneration_prompt(self.QUIZ, self.REPLACED, _params())
        assert "Improve question quality" in prompt

    def test_question_models_accepted(self, builder):
        from quizgen.services.quiz.question_rules import QUESTION_ADAPTER
        model = QUESTION_ADAPTER.validate_python(self.REPLACED[0])
        assert builder.build_regeneration_prompt(self.QUIZ, [model], _params()) == \
            builder.build_regeneration_prompt(self.QUIZ, self.REPLACED, _params())


class TestBuildImprovementPrompt:

    QUESTIONS = [{"question": "What is a stack?", "type": "short_answer", "correctAnswers": ["LIFO list"]}]

    def test_questions_serialized(self, builder):
        prompt = builder.build_improvement_prompt(self.QUESTIONS, _params())
        assert json.dumps(self.QUESTIONS[0]["question"]) in prompt

    def test_all_improvement_types_by_default(self, builder):
        prompt = builder.build_improvement_prompt(self.QUESTIONS, _params())
        assert prompt.count("\n- ") >= len(IMPROVEMENT_TYPES)

    def test_selected_types_only(self, builder):
        full = builder.build_improvement_prompt(self.QUESTIONS, _params())
        selected = builder.build_improvement_prompt(self.QUESTIONS, _params(), improvement_types=["grammar", "bogus"])
        assert len(selected) < len(full)

    def test_issues_listed(self, builder):
        prompt = builder.build_improvement_prompt(self.QUESTIONS, _params(), issues=["Ambiguous wording"])
        assert "- Ambiguous wording" in prompt


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
