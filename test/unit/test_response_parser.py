"""
Unit tests for backend/quizgen/services/quiz/response_parser.py
Tests: reply cleaning, JSON extraction, named repair strategies, structural
validation, normalization into Quiz / Question models, parse diagnostics
No AI calls are made: replies are literal strings.
"""

import sys
import os
import logging
import pytest

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

from quizgen.core.errors import QuizValidationError, ResponseParseError
from quizgen.services.quiz.response_parser import (
    REPAIR_STRATEGIES,
    ResponseParser,
    fix_common_issues,
)
from quizgen.services.quiz.schemas import (
    MatchingQuestion,
    MultipleChoiceQuestion,
    Quiz,
    TrueFalseQuestion,
)


@pytest.fixture
def parser():
    return ResponseParser(language="en")


class TestCleanResponse:

    def test_strips_code_fence(self, parser):
        assert parser.clean_response('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_think_tags(self, parser):
        raw = '<think>the user wants {json}</think>\n{"a": 1}'
        assert parser.clean_response(raw) == '{"a": 1}'

    def test_trims_surrounding_prose(self, parser):
        assert parser.clean_response('Here you go: {"a": [1]} Enjoy!') == '{"a": [1]}'

    def test_array_reply(self, parser):
        assert parser.clean_response('Result: [{"a": 1}]') == '[{"a": 1}]'

    def test_empty(self, parser):
        assert parser.clean_response("") == ""
        assert parser.clean_response(None) == ""

    @pytest.mark.parametrize("raw", [
        '```json\n{"title": "T"}\n```',
        'Sure! {"title": "T"} bye',
        '<think>x</think>[1, 2]',
        "no json at all",
    ])
    def test_idempotent(self, parser, raw):
        once = parser.clean_response(raw)
        assert parser.clean_response(once) == once


class TestExtractJson:

    def test_object_span(self, parser):
        assert parser.extract_json_from_text('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'

    def test_array_span(self, parser):
        assert parser.extract_json_from_text("x [1, 2] y") == "[1, 2]"

    def test_no_json(self, parser):
        assert parser.extract_json_from_text("nothing here") is None


class TestRepairStrategies:

    def test_strategy_order(self):
        assert [name for name, _ in REPAIR_STRATEGIES] == ["trailing_commas", "single_quotes", "bare_keys"]

    def test_trailing_commas(self):
        assert fix_common_issues('{"a": [1, 2,], }') == '{"a": [1, 2] }'

    def test_single_quotes(self):
        assert fix_common_issues("{'a': 'b'}") == '{"a": "b"}'

    def test_bare_keys(self):
        assert fix_common_issues('{title: "T", count: 2}') == '{"title": "T", "count": 2}'


class TestParseQuizResponse:

    def test_fenced_reply(self, parser):
        raw = (
            '```json\n{"title":"Algorithms 101","questions":[{"question":"What is Big-O?",'
            '"type":"multiple_choice","options":["A","B","C","D"],"correctAnswer":1}]}\n```'
        )
        quiz = parser.parse_quiz_response(raw)
        assert isinstance(quiz, Quiz)
        assert quiz.title == "Algorithms 101"
        assert len(quiz.questions) == 1
        question = quiz.questions[0]
        assert isinstance(question, MultipleChoiceQuestion)
        assert question.correct_answer == 1
        assert question.correct_option == "B"

    def test_metadata_attached(self, parser, quiz_reply):
        quiz = parser.parse_quiz_response(quiz_reply)
        assert quiz.metadata.total_questions == 2
        assert quiz.metadata.question_types == {"multiple_choice": 1, "true_false": 1}
        assert quiz.metadata.ai_generated is True
        assert quiz.metadata.generated_at

    def test_empty_questions_rejected(self, parser):
        with pytest.raises(QuizValidationError) as exc:
            parser.parse_quiz_response('Here is your quiz: {"title":"T","questions":[]}')
        assert "Quiz must have at least one question" in exc.value.errors
        assert exc.value.result.is_valid is False

    def test_trailing_commas_repaired(self, parser, caplog):
        raw = '{"title":"T","questions":[{"question":"Q?","type":"true_false","correctAnswer":true,},]}'
        with caplog.at_level(logging.WARNING, logger="quizgen.services.quiz.response_parser"):
            quiz = parser.parse_quiz_response(raw)
        assert isinstance(quiz.questions[0], TrueFalseQuestion)
        assert quiz.questions[0].correct_answer is True
        assert "direct_parse, trailing_commas" in caplog.text

    def test_single_quotes_repaired(self, parser):
        raw = "{'title': 'T', 'questions': [{'question': 'Q?', 'type': 'true_false', 'correctAnswer': 'false'}]}"
        quiz = parser.parse_quiz_response(raw)
        assert quiz.questions[0].correct_answer is False

    def test_string_answer_converted_to_index(self, parser):
        raw = ('{"title":"T","questions":[{"question":"Q?","type":"multiple_choice",'
               '"options":["Stack","Queue"],"correctAnswer":"Queue"}]}')
        assert parser.parse_quiz_response(raw).questions[0].correct_answer == 1

    def test_all_question_errors_collected(self, parser):
        raw = ('{"questions":[{"question":"Q1?","type":"multiple_choice","options":["A","B"],"correctAnswer":5},'
               '{"question":"Q2?","type":"ranking"}]}')
        with pytest.raises(QuizValidationError) as exc:
            parser.parse_quiz_response(raw)
        assert exc.value.errors == [
            "Quiz must have a valid title",
            "Question 1: Correct answer index 5 is out of range (valid: 0-1)",
            "Question 2: Unknown question type: ranking",
        ]

    def test_round_trip(self, parser, quiz_reply):
        quiz = parser.parse_quiz_response(quiz_reply)
        again = parser.parse_quiz_response(quiz.model_dump_json(by_alias=True))
        assert again.model_dump(exclude={"metadata"}) == quiz.model_dump(exclude={"metadata"})

    def test_matching_question(self, parser):
        raw = ('{"title":"Capitals","questions":[{"question":"Match countries","type":"matching",'
               '"pairs":[{"left":"Japan","right":"Tokyo"},{"left":"France","right":"Paris"}]}]}')
        question = parser.parse_quiz_response(raw).questions[0]
        assert isinstance(question, MatchingQuestion)
        assert question.pairs[1].right == "Paris"

    def test_null_bytes_removed(self, parser):
        raw = '{"title":"T\x00","questions":[{"question":"Q?","type":"true_false","correctAnswer":true}]}'
        assert parser.parse_quiz_response(raw).title == "T"

    def test_infinite_points_dropped(self, parser):
        raw = '{"title":"T","questions":[{"question":"Q?","type":"true_false","correctAnswer":true,"points":Infinity}]}'
        assert parser.parse_quiz_response(raw).questions[0].points is None

    def test_stray_bracket_before_object(self, parser, caplog):
        raw = ("Answer [draft]: {'title': 'T', 'questions': "
               "[{'question': 'Q?', 'type': 'true_false', 'correctAnswer': 'true'}]}")
        with caplog.at_level(logging.WARNING, logger="quizgen.services.quiz.response_parser"):
            quiz = parser.parse_quiz_response(raw)
        assert quiz.title == "T"
        assert quiz.questions[0].correct_answer is True
        assert "regex_extract, trailing_commas, single_quotes" in caplog.text


class TestParseFailures:

    def test_empty_reply(self, parser):
        with pytest.raises(ResponseParseError) as exc:
            parser.parse_quiz_response("   ")
        assert str(exc.value) == "Empty AI response received"

    def test_non_string_reply(self, parser):
        with pytest.raises(ResponseParseError):
            parser.parse_quiz_response(None)

    def test_no_json_reports_diagnostics(self, parser):
        with pytest.raises(ResponseParseError) as exc:
            parser.parse_quiz_response("I cannot create a quiz from this material.")
        assert exc.value.attempted_strategies == ["direct_parse"]
        assert exc.value.raw_excerpt.startswith("I cannot create")
        assert str(exc.value).startswith("Invalid JSON format:")

    def test_raw_excerpt_is_bounded(self):
        parser = ResponseParser(language="en", raw_excerpt_chars=10)
        with pytest.raises(ResponseParseError) as exc:
            parser.parse_quiz_response("x" * 100)
        assert exc.value.raw_excerpt == "x" * 10

    def test_to_dict(self, parser):
        with pytest.raises(ResponseParseError) as exc:
            parser.parse_quiz_response("no json")
        data = exc.value.to_dict()
        assert data["error"] == "PARSE_FAILURE"
        assert data["attempted_strategies"] == ["direct_parse"]

    def test_non_object_reply(self, parser):
        with pytest.raises(QuizValidationError) as exc:
            parser.parse_quiz_response("[1, 2, 3]")
        assert exc.value.errors == ["Quiz data must be an object"]

    def test_repaired_junk_rejected(self, parser):
        with pytest.raises(ResponseParseError) as exc:
            parser.parse_quiz_response("Notes [first draft, not ready] sorry")
        assert exc.value.attempted_strategies == [
            "direct_parse", "trailing_commas", "single_quotes", "bare_keys", "json_repair",
        ]
        assert exc.value.raw_excerpt == "Notes [first draft, not ready] sorry"

    def test_thai_messages(self):
        with pytest.raises(QuizValidationError) as exc:
            ResponseParser(language="th").parse_quiz_response('{"title":"T","questions":[]}')
        assert exc.value.errors == ["ข้อสอบต้องมีคำถามอย่างน้อยหนึ่งข้อ"]


class TestParseQuestionsResponse:

    def test_bare_array(self, parser):
        raw = '[{"question":"Q?","type":"true_false","correctAnswer":"true"}]'
        questions = parser.parse_questions_response(raw)
        assert len(questions) == 1
        assert questions[0].correct_answer is True

    def test_wrapped_array(self, parser):
        raw = ('{"questions":[{"question":"Capital of Japan is ____","type":"fill_in_blank",'
               '"correctAnswers":["Tokyo"]}]}')
        assert parser.parse_questions_response(raw)[0].correct_answers == ["Tokyo"]

    def test_no_array(self, parser):
        with pytest.raises(QuizValidationError) as exc:
            parser.parse_questions_response('{"title": "T"}')
        assert str(exc.value) == "Response does not contain valid questions array"

    def test_first_bad_question_reported(self, parser):
        raw = '[{"question":"Q?","type":"true_false","correctAnswer":true},{"question":"","type":"essay"}]'
        with pytest.raises(QuizValidationError) as exc:
            parser.parse_questions_response(raw)
        assert str(exc.value) == "Question 2 validation failed"
        assert exc.value.errors == ["Question 2: Question must have valid question text"]


class TestValidateQuizStructure:

    def test_valid(self, parser, quiz_reply):
        import json
        assert parser.validate_quiz_structure(json.loads(quiz_reply)).is_valid

    def test_missing_questions(self, parser):
        result = parser.validate_quiz_structure({"title": "T"})
        assert result.errors == ["Quiz must have a questions array"]

    def test_analyze_question_types(self, parser):
        counts = parser.analyze_question_types([{"type": "essay"}, {"type": "essay"}, {}])
        assert counts == {"essay": 2, "unknown": 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
