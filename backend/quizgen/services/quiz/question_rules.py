"""Per-type question rules shared by the response parser and the validator.

Raw questions arrive as plain dicts (AI replies, API payloads). The tables at
the bottom map every ``QuestionType`` to its shape check and its normalizer;
import fails if a type is missing from either table.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter

from quizgen.services.quiz.messages import MessageCatalog
from quizgen.services.quiz.schemas import QUESTION_TYPES, Question, QuestionType

logger = logging.getLogger(__name__)

QUESTION_ADAPTER: TypeAdapter = TypeAdapter(Question)

MIN_CHOICE_OPTIONS = 2
MIN_MATCHING_PAIRS = 2

_TRUE_WORDS = {"true", "ถูก", "จริง"}
_FALSE_WORDS = {"false", "ผิด", "เท็จ"}


class AnswerResolutionError(ValueError):
    """A correct answer that cannot be mapped onto its canonical form."""

    def __init__(self, key: str, **params):
        super().__init__(key)
        self.key = key
        self.params = params

    def render(self, msg: MessageCatalog) -> str:
        return msg(self.key, **self.params)


def first_present(data: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key in *keys* present in *data* (``None`` if none)."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def resolve_question_type(value: Any) -> Optional[QuestionType]:
    """Parse a type tag such as ``"Multiple-Choice"``; ``None`` when unknown."""
    if isinstance(value, QuestionType):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip().lower().replace("-", "_").replace(" ", "_")
    if text in QUESTION_TYPES:
        return QuestionType(text)
    return None


def resolve_choice_index(question: Dict[str, Any], options: List[Any]) -> int:
    """Canonical index of a multiple-choice answer.

    Integers are indices. Strings are matched against the trimmed options and
    resolve to the first equal option. Booleans are rejected.
    """
    value = first_present(question, "correctAnswer", "correct_answer")
    if value is None or isinstance(value, bool):
        raise AnswerResolutionError("mc.answer_required")

    if isinstance(value, float) and value.is_integer():
        value = int(value)

    if isinstance(value, int):
        index = value
    elif isinstance(value, str):
        wanted = value.strip()
        if not wanted:
            raise AnswerResolutionError("mc.answer_required")
        matches = [
            i for i, option in enumerate(options)
            if isinstance(option, str) and option.strip() == wanted
        ]
        if not matches:
            raise AnswerResolutionError("mc.answer_not_in_options")
        index = matches[0]
    else:
        raise AnswerResolutionError("mc.answer_required")

    if not 0 <= index < len(options):
        raise AnswerResolutionError(
            "mc.answer_out_of_range", index=index, max=max(len(options) - 1, 0)
        )
    return index


def resolve_boolean_answer(question: Dict[str, Any]) -> bool:
    """Canonical true/false answer; accepts bools and true/false words."""
    value = first_present(question, "correctAnswer", "correct_answer")
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise AnswerResolutionError("tf.answer_bool")


def collect_answers(question: Dict[str, Any]) -> Optional[List[Any]]:
    """Accepted answers list, or ``None`` when the question carries none.

    A single string ``correctAnswer`` is treated as a one-element list.
    """
    answers = first_present(question, "correctAnswers", "correct_answers")
    if answers is None:
        single = first_present(question, "correctAnswer", "correct_answer")
        if isinstance(single, str) and single.strip():
            return [single]
    return answers


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


# ── Shape checks ──────────────────────────────────────────


def _check_multiple_choice(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    errors = []
    options = question.get("options")
    if not isinstance(options, list):
        errors.append(msg("mc.options_required"))
        options = []
    elif len(options) < MIN_CHOICE_OPTIONS:
        errors.append(msg("mc.options_min", min=MIN_CHOICE_OPTIONS))
    elif not all(_is_text(option) for option in options):
        errors.append(msg("mc.options_non_empty"))

    try:
        resolve_choice_index(question, options)
    except AnswerResolutionError as exc:
        # An out-of-range index is only meaningful when options exist
        if options or exc.key != "mc.answer_out_of_range":
            errors.append(exc.render(msg))
    return errors


def _check_true_false(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    try:
        resolve_boolean_answer(question)
    except AnswerResolutionError as exc:
        return [exc.render(msg)]
    return []


def _check_essay(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    errors = []
    rubric = question.get("rubric")
    if rubric is not None and not isinstance(rubric, str):
        errors.append(msg("essay.rubric_str"))
    keywords = question.get("keywords")
    if keywords is not None and not _is_string_list(keywords):
        errors.append(msg("essay.keywords_list"))
    return errors


def _check_short_answer(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    answers = collect_answers(question)
    if answers is not None and not _is_string_list(answers):
        return [msg("answers.list")]
    return []


def _check_fill_in_blank(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    answers = collect_answers(question)
    if answers is None:
        return [msg("fib.answers_required")]
    if not _is_string_list(answers):
        return [msg("answers.list")]
    if not any(a.strip() for a in answers):
        return [msg("fib.answers_required")]
    return []


def _check_matching(question: Dict[str, Any], msg: MessageCatalog) -> List[str]:
    pairs = question.get("pairs")
    if not isinstance(pairs, list) or len(pairs) < MIN_MATCHING_PAIRS:
        return [msg("matching.pairs_required")]
    errors = []
    for i, pair in enumerate(pairs):
        if not (isinstance(pair, dict) and _is_text(pair.get("left")) and _is_text(pair.get("right"))):
            errors.append(msg("matching.pair_invalid", number=i + 1))
    return errors


ShapeCheck = Callable[[Dict[str, Any], MessageCatalog], List[str]]

SHAPE_CHECKS: Dict[QuestionType, ShapeCheck] = {
    QuestionType.MULTIPLE_CHOICE: _check_multiple_choice,
    QuestionType.TRUE_FALSE: _check_true_false,
    QuestionType.ESSAY: _check_essay,
    QuestionType.SHORT_ANSWER: _check_short_answer,
    QuestionType.FILL_IN_BLANK: _check_fill_in_blank,
    QuestionType.MATCHING: _check_matching,
}


def check_question_shape(question: Any, msg: MessageCatalog) -> List[str]:
    """Structural errors of a single raw question, in discovery order."""
    if not isinstance(question, dict):
        return [msg("question.not_object")]

    errors = []
    if not _is_text(question.get("question")):
        errors.append(msg("question.text_required"))

    raw_type = question.get("type")
    if not isinstance(raw_type, str) or not raw_type.strip():
        errors.append(msg("question.type_required"))
        return errors

    qtype = resolve_question_type(raw_type)
    if qtype is None:
        errors.append(msg("question.type_unknown", type=raw_type))
        return errors

    errors.extend(SHAPE_CHECKS[qtype](question, msg))
    return errors


# ── Normalization ─────────────────────────────────────────


def _strip_list(values: Optional[List[Any]]) -> List[str]:
    return [v.strip() for v in values or [] if isinstance(v, str) and v.strip()]


def _coerce_points(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Ignoring non-numeric points value %r", value)
        return None


def _normalize_multiple_choice(question: Dict[str, Any]) -> Dict[str, Any]:
    options = question["options"]
    return {
        "options": [option.strip() for option in options],
        "correctAnswer": resolve_choice_index(question, options),
    }


def _normalize_true_false(question: Dict[str, Any]) -> Dict[str, Any]:
    return {"correctAnswer": resolve_boolean_answer(question)}


def _normalize_essay(question: Dict[str, Any]) -> Dict[str, Any]:
    rubric = question.get("rubric")
    return {
        "rubric": rubric.strip() if isinstance(rubric, str) and rubric.strip() else None,
        "keywords": _strip_list(question.get("keywords")),
    }


def _normalize_answers(question: Dict[str, Any]) -> Dict[str, Any]:
    return {"correctAnswers": _strip_list(collect_answers(question))}


def _normalize_matching(question: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "pairs": [
            {"left": pair["left"].strip(), "right": pair["right"].strip()}
            for pair in question["pairs"]
        ]
    }


Normalizer = Callable[[Dict[str, Any]], Dict[str, Any]]

NORMALIZERS: Dict[QuestionType, Normalizer] = {
    QuestionType.MULTIPLE_CHOICE: _normalize_multiple_choice,
    QuestionType.TRUE_FALSE: _normalize_true_false,
    QuestionType.ESSAY: _normalize_essay,
    QuestionType.SHORT_ANSWER: _normalize_answers,
    QuestionType.FILL_IN_BLANK: _normalize_answers,
    QuestionType.MATCHING: _normalize_matching,
}

for _table in (SHAPE_CHECKS, NORMALIZERS):
    _missing = set(QuestionType) - set(_table)
    if _missing:
        raise RuntimeError(f"Question rules missing for: {sorted(t.value for t in _missing)}")


def normalize_question(question: Dict[str, Any]) -> Dict[str, Any]:
    """Canonical camelCase dict for a question that passed ``check_question_shape``."""
    qtype = resolve_question_type(question["type"])
    normalized: Dict[str, Any] = {
        "type": qtype.value,
        "question": question["question"].strip(),
    }

    explanation = question.get("explanation")
    if isinstance(explanation, str) and explanation.strip():
        normalized["explanation"] = explanation.strip()

    points = _coerce_points(question.get("points"))
    if points is not None:
        normalized["points"] = points

    difficulty = question.get("difficulty")
    if isinstance(difficulty, str) and difficulty.strip():
        normalized["difficulty"] = difficulty.strip().lower()

    normalized.update(NORMALIZERS[qtype](question))
    return normalized
