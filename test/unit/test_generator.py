"""
Unit tests for backend/quizgen/services/quiz/generator.py
Tests: generate_quiz end to end with a fake AI call, metadata merge, failure
propagation, regenerate_questions (index checks, count mismatch, duplicates)
The AI call is a plain function returning canned replies.
"""

import sys
import os
import json
import pytest

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

from quizgen.core.errors import QuizValidationError, ResponseParseError
from quizgen.services.quiz import generate_quiz, regenerate_questions, validate_question_indices
from quizgen.services.quiz.schemas import GenerationResult, Quiz, TrueFalseQuestion
from quizgen.services.quiz.validator import QuizValidator, ValidatorConfig

_PARAMS = {
    "content": "A queue is first-in first-out. A stack is last-in first-out.",
    "topic": "Data structures",
    "questionType": "multiple_choice",
    "numberOfQuestions": 2,
    "difficulty": "easy",
    "category": "technology",
    "language": "en",
}


class FakeInvoke:
    """Records prompts and returns canned replies in order."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.replies.pop(0)


@pytest.fixture
def existing_quiz(quiz_reply):
    data = json.loads(quiz_reply)
    return Quiz.model_validate(data)


class TestGenerateQuiz:

    def test_returns_result(self, quiz_reply):
        invoke = FakeInvoke(f"```json\n{quiz_reply}\n```")
        result = generate_quiz(_PARAMS, invoke)
        assert isinstance(result, GenerationResult)
        assert result.quiz.title == "Data Structures Basics"
        assert result.validation.is_valid is True
        assert 0 <= result.quality.quality_score <= 100

    def test_prompt_built_from_params(self, quiz_reply):
        invoke = FakeInvoke(quiz_reply)
        generate_quiz(_PARAMS, invoke)
        assert len(invoke.prompts) == 1
        assert "Subject/topic: Data structures" in invoke.prompts[0]

    def test_user_id_rule_applies_when_given(self, quiz_reply):
        result = generate_quiz(_PARAMS, FakeInvoke(quiz_reply), user_id="user-1")
        assert result.validation.is_valid

    def test_validator_sees_merged_fields(self, quiz_reply):
        seen = {}

        class RecordingValidator(QuizValidator):
            def validate_quiz_data(self, quiz):
                seen.update(quiz)
                return super().validate_quiz_data(quiz)

        validator = RecordingValidator(ValidatorConfig(require_user_id=False), language="en")
        generate_quiz(_PARAMS, FakeInvoke(quiz_reply), validator=validator)
        assert seen["topic"] == "Data structures"
        assert seen["difficulty"] == "easy"
        assert seen["questionType"] == "multiple_choice"
        assert seen["category"] == "technology"

    def test_unknown_category_left_unset(self, quiz_reply):
        seen = {}

        class RecordingValidator(QuizValidator):
            def validate_quiz_data(self, quiz):
                seen.update(quiz)
                return super().validate_quiz_data(quiz)

        params = dict(_PARAMS, category="Computer Science")
        validator = RecordingValidator(ValidatorConfig(require_user_id=False), language="en")
        result = generate_quiz(params, FakeInvoke(quiz_reply), validator=validator)
        assert "category" not in seen
        assert result.validation.is_valid

    def test_unparseable_reply_propagates(self):
        with pytest.raises(ResponseParseError):
            generate_quiz(_PARAMS, FakeInvoke("Sorry, I can't help with that."))

    def test_invalid_quiz_propagates(self):
        reply = ('{"title":"Queues","questions":[{"question":"Pick one","type":"multiple_choice",'
                 '"options":["Yes","yes"],"correctAnswer":0}]}')
        with pytest.raises(QuizValidationError) as exc:
            generate_quiz(_PARAMS, FakeInvoke(reply))
        assert exc.value.errors == ["Question 1: options must be unique"]

    def test_invoke_errors_propagate(self):
        def failing(prompt):
            raise TimeoutError("AI service timed out")

        with pytest.raises(TimeoutError):
            generate_quiz(_PARAMS, failing)


class TestValidateQuestionIndices:

    @pytest.mark.parametrize("indices,count,expected", [
        ([0], 1, True),
        ([1, 0], 2, True),
        ([], 2, False),
        ([2], 2, False),
        ([-1], 2, False),
        ([0, 0], 2, False),
        ([True], 2, False),
        (["0"], 2, False),
    ])
    def test_indices(self, indices, count, expected):
        assert validate_question_indices(indices, count) is expected


class TestRegenerateQuestions:

    NEW_TF = '[{"question":"A stack is last-in first-out.","type":"true_false","correctAnswer":true}]'

    def test_replaces_question(self, existing_quiz):
        invoke = FakeInvoke(self.NEW_TF)
        questions = regenerate_questions(existing_quiz, [1], _PARAMS, invoke, reason="Too easy")
        assert len(questions) == 2
        assert isinstance(questions[1], TrueFalseQuestion)
        assert questions[1].question == "A stack is last-in first-out."
        assert questions[0] == existing_quiz.questions[0]
        assert "Too easy" in invoke.prompts[0]

    def test_original_quiz_unchanged(self, existing_quiz):
        before = existing_quiz.model_dump()
        regenerate_questions(existing_quiz, [1], _PARAMS, FakeInvoke(self.NEW_TF))
        assert existing_quiz.model_dump() == before

    def test_dict_quiz_accepted(self, quiz_reply):
        questions = regenerate_questions(json.loads(quiz_reply), [0], _PARAMS, FakeInvoke(self.NEW_TF))
        assert questions[0].question == "A stack is last-in first-out."

    def test_invalid_indices(self, existing_quiz):
        invoke = FakeInvoke(self.NEW_TF)
        with pytest.raises(QuizValidationError) as exc:
            regenerate_questions(existing_quiz, [5], _PARAMS, invoke)
        assert str(exc.value) == "Invalid question indices: [5]"
        assert invoke.prompts == []

    def test_count_mismatch(self, existing_quiz):
        with pytest.raises(QuizValidationError) as exc:
            regenerate_questions(existing_quiz, [0, 1], _PARAMS, FakeInvoke(self.NEW_TF))
        assert str(exc.value) == "Expected 2 regenerated questions, received 1"

    def test_duplicate_of_existing(self, existing_quiz):
        reply = '[{"question":"  binary SEARCH requires sorted input. ","type":"true_false","correctAnswer":false}]'
        with pytest.raises(QuizValidationError) as exc:
            regenerate_questions(existing_quiz, [0], _PARAMS, FakeInvoke(reply))
        assert exc.value.errors == ["Regenerated question 1 duplicates an existing question"]

    def test_duplicates_among_new(self, existing_quiz):
        reply = ('[{"question":"Is a heap a tree?","type":"true_false","correctAnswer":true},'
                 '{"question":"is a heap a tree?","type":"true_false","correctAnswer":true}]')
        with pytest.raises(QuizValidationError) as exc:
            regenerate_questions(existing_quiz, [0, 1], _PARAMS, FakeInvoke(reply))
        assert exc.value.errors == ["Regenerated question 2 duplicates an existing question"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
