"""AI reply parsing with JSON extraction, auto-repair and structural validation.

Pipeline for a raw reply:
1. Clean: drop reasoning tags and markdown fences, trim to the outer JSON span
2. Direct parse of the cleaned text
3. Greedy ``{...}`` / ``[...]`` extraction over the original text
4. Named repair strategies, applied cumulatively, ``json_repair`` last
5. Structural validation of the decoded quiz (all errors collected)
6. Normalization into the ``Quiz`` / ``Question`` models
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import json_repair
from pydantic import ValidationError

from quizgen.core.config import settings
from quizgen.core.errors import QuizValidationError, ResponseParseError
from quizgen.core.utils import sanitize_null_bytes, truncate
from quizgen.services.quiz.messages import get_catalog
from quizgen.services.quiz.question_rules import (
    QUESTION_ADAPTER,
    AnswerResolutionError,
    check_question_shape,
    normalize_question,
)
from quizgen.services.quiz.schemas import Question, Quiz, ValidationResult

logger = logging.getLogger(__name__)

# ── JSON Extraction Patterns ──────────────────────────────────

_CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?")
_THINK_TAG_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)

# ── JSON Auto-Repair ──────────────────────────────────────────

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_SINGLE_QUOTED_RE = re.compile(r"'([^']*)'(?=\s*[:,\}\]])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")


def _strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _single_to_double_quotes(text: str) -> str:
    return _SINGLE_QUOTED_RE.sub(r'"\1"', text)


def _quote_bare_keys(text: str) -> str:
    return _BARE_KEY_RE.sub(r'\1"\2"\3', text)


REPAIR_STRATEGIES: List[Tuple[str, Callable[[str], str]]] = [
    ("trailing_commas", _strip_trailing_commas),
    ("single_quotes", _single_to_double_quotes),
    ("bare_keys", _quote_bare_keys),
]


def fix_common_issues(text: str) -> str:
    """Apply every regex repair strategy in order."""
    for _name, strategy in REPAIR_STRATEGIES:
        text = strategy(text)
    return text


def _looks_like_quiz_data(data: Any) -> bool:
    """A repaired value must be a quiz object or a list of question objects."""
    if isinstance(data, dict):
        return "questions" in data or "title" in data or "question" in data
    if isinstance(data, list):
        return bool(data) and all(isinstance(item, dict) for item in data)
    return False


class ResponseParser:
    """Turns raw AI reply text into validated ``Quiz`` / ``Question`` models."""

    def __init__(self, language: Optional[str] = None, raw_excerpt_chars: Optional[int] = None):
        self.msg = get_catalog(language)
        self.raw_excerpt_chars = raw_excerpt_chars or settings.PARSER_RAW_EXCERPT_CHARS

    # ── Public API ────────────────────────────────────────

    def parse_quiz_response(self, raw_text: Any) -> Quiz:
        data = self._decode(raw_text)

        result = self.validate_quiz_structure(data)
        if not result.is_valid:
            logger.warning("Quiz structure rejected: %s", "; ".join(result.errors))
            raise QuizValidationError(self.msg("parse.structure_failed"), errors=result.errors, result=result)

        quiz = self.enhance_quiz_data(data)
        logger.debug("Quiz response parsed: title=%r questions=%d", quiz.title, len(quiz.questions))
        return quiz

    def parse_questions_response(self, raw_text: Any) -> List[Question]:
        data = self._decode(raw_text)

        if isinstance(data, list):
            questions = data
        elif isinstance(data, dict) and isinstance(data.get("questions"), list):
            questions = data["questions"]
        else:
            raise QuizValidationError(self.msg("parse.no_questions_array"))

        parsed = []
        for index, question in enumerate(questions):
            errors = check_question_shape(question, self.msg)
            if errors:
                number = index + 1
                logger.warning("Question %d rejected: %s", number, "; ".join(errors))
                raise QuizValidationError(
                    self.msg("parse.question_failed", number=number),
                    errors=[self.msg("question.prefix", number=number, details=", ".join(errors))],
                )
            parsed.append(self._build_question(question))

        logger.debug("Questions response parsed: count=%d", len(parsed))
        return parsed

    def clean_response(self, raw_text: Optional[str]) -> str:
        """Strip reasoning tags and fences, then trim to the outer JSON span."""
        if not raw_text:
            return ""

        cleaned = _THINK_TAG_RE.sub("", raw_text)
        cleaned = _CODE_FENCE_RE.sub("", cleaned).strip()

        starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
        if starts:
            cleaned = cleaned[min(starts):]
        end = max(cleaned.rfind("}"), cleaned.rfind("]"))
        if end != -1:
            cleaned = cleaned[: end + 1]

        return cleaned.strip()

    def extract_json_from_text(self, text: str) -> Optional[str]:
        """Greedy match of the largest object span, else the largest array span."""
        for pattern in (_OBJECT_RE, _ARRAY_RE):
            match = pattern.search(text or "")
            if match:
                return match.group(0)
        return None

    def validate_quiz_structure(self, data: Any) -> ValidationResult:
        msg = self.msg
        if not isinstance(data, dict):
            return ValidationResult(is_valid=False, errors=[msg("quiz.not_object")])

        errors = []
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(msg("quiz.title_required"))

        questions = data.get("questions")
        if not isinstance(questions, list):
            errors.append(msg("quiz.questions_required"))
        elif not questions:
            errors.append(msg("quiz.questions_empty"))
        else:
            for index, question in enumerate(questions):
                question_errors = check_question_shape(question, msg)
                if question_errors:
                    errors.append(
                        msg("question.prefix", number=index + 1, details=", ".join(question_errors))
                    )

        return ValidationResult(is_valid=not errors, errors=errors)

    def enhance_quiz_data(self, data: Dict[str, Any]) -> Quiz:
        """Normalize a structurally valid quiz and attach generation metadata."""
        questions = [normalize_question(q) for q in data["questions"]]
        description = data.get("description")
        payload = {
            "title": data["title"].strip(),
            "description": description.strip() if isinstance(description, str) else "",
            "questions": questions,
            "metadata": {
                "totalQuestions": len(questions),
                "questionTypes": self.analyze_question_types(questions),
                "aiGenerated": True,
                "generatedAt": datetime.now(timezone.utc).isoformat(),
            },
        }
        try:
            return Quiz.model_validate(payload)
        except ValidationError as exc:
            errors = [err["msg"] for err in exc.errors()]
            logger.warning("Normalized quiz failed model validation: %s", errors)
            raise QuizValidationError(self.msg("parse.structure_failed"), errors=errors)

    @staticmethod
    def analyze_question_types(questions: List[Dict[str, Any]]) -> Dict[str, int]:
        return dict(Counter(q.get("type") or "unknown" for q in questions))

    # ── Internals ─────────────────────────────────────────

    def _build_question(self, question: Dict[str, Any]) -> Question:
        try:
            return QUESTION_ADAPTER.validate_python(normalize_question(question))
        except AnswerResolutionError as exc:
            raise QuizValidationError(exc.render(self.msg))
        except ValidationError as exc:
            raise QuizValidationError(
                self.msg("parse.structure_failed"), errors=[err["msg"] for err in exc.errors()]
            )

    def _decode(self, raw_text: Any) -> Any:
        """Decode *raw_text* through the extraction and repair chain."""
        if not isinstance(raw_text, str) or not raw_text.strip():
            raise ResponseParseError(self.msg("parse.empty_response"))

        raw_text = sanitize_null_bytes(raw_text)
        attempted: List[str] = []

        # Quick path: boundary-trimmed text
        cleaned = self.clean_response(raw_text)
        attempted.append("direct_parse")
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as exc:
            first_error = exc

        # Greedy span over the original text
        extracted = self.extract_json_from_text(raw_text)
        if extracted is not None and extracted != cleaned:
            attempted.append("regex_extract")
            try:
                return json.loads(extracted)
            except json.JSONDecodeError:
                pass

        # Repair pass, extracted span first, only on recognizable JSON
        candidates = [extracted] if extracted is not None and extracted != cleaned else []
        if "{" in cleaned or "[" in cleaned:
            candidates.append(cleaned)
        for candidate in candidates:
            data = self._repair(candidate, attempted)
            if data is not None:
                logger.warning("AI response required repair: %s", ", ".join(attempted))
                return data

        excerpt = truncate(raw_text, self.raw_excerpt_chars)
        logger.error(
            "All JSON parsing attempts failed (%s): %s | first %d chars: %r",
            ", ".join(attempted), first_error, self.raw_excerpt_chars, excerpt,
        )
        raise ResponseParseError(
            self.msg("parse.invalid_json", detail=str(first_error)),
            raw_excerpt=excerpt,
            attempted_strategies=attempted,
        )

    @staticmethod
    def _repair(text: str, attempted: List[str]) -> Any:
        for name, strategy in REPAIR_STRATEGIES:
            attempted.append(name)
            text = strategy(text)
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                continue
            if _looks_like_quiz_data(data):
                return data

        # Last resort: use json_repair library
        attempted.append("json_repair")
        try:
            data = json_repair.loads(text)
        except (ValueError, RecursionError) as exc:
            logger.debug("json_repair failed: %s", exc)
            return None
        if _looks_like_quiz_data(data):
            return data
        logger.debug("json_repair result rejected: %r", data)
        return None
