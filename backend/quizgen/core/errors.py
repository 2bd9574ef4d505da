"""Exception types raised across the quiz pipeline.

Every exception carries its violations as a list of display-ready strings so
the HTTP layer can return them as data.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class QuizPipelineError(Exception):
    """Base class for all pipeline errors."""

    code = "QUIZ_PIPELINE_ERROR"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class QuizValidationError(QuizPipelineError):
    """Structural or business-rule violation; carries the full error list."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[str]] = None, result=None):
        super().__init__(message)
        self.errors: List[str] = list(errors) if errors else [message]
        if result is None:
            from quizgen.services.quiz.schemas import ValidationResult
            result = ValidationResult(is_valid=False, errors=self.errors)
        self.result = result

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self), "errors": self.errors}


class ResponseParseError(QuizValidationError):
    """No extraction or repair strategy produced parseable JSON."""

    code = "PARSE_FAILURE"

    def __init__(
        self,
        message: str,
        raw_excerpt: str = "",
        attempted_strategies: Optional[List[str]] = None,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(message, errors=errors)
        self.raw_excerpt = raw_excerpt
        self.attempted_strategies: List[str] = list(attempted_strategies or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["raw_excerpt"] = self.raw_excerpt
        data["attempted_strategies"] = self.attempted_strategies
        return data


class BusinessRuleError(QuizValidationError):
    """Structurally valid quiz that violates a policy invariant."""

    code = "BUSINESS_RULE_VIOLATION"
