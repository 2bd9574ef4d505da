"""
Centralized application configuration.

Uses pydantic BaseSettings for automatic env-var loading and validation.
Import the singleton ``settings`` instance throughout the app.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Resolve project root once; relative paths resolve from here
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

APP_VERSION = "1.0.0"

SUPPORTED_LANGUAGES = ("th", "en")


class Settings(BaseSettings):
    """Application settings, validated from environment variables."""

    # ── Environment ────────────────────────────────────────
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False

    # ── Logging ───────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"

    # ── Language ──────────────────────────────────────────
    DEFAULT_LANGUAGE: str = "th"

    # ── Prompt rendering ──────────────────────────────────
    PROMPT_MAX_CONTENT_LENGTH: int = 30000

    # ── Quiz limits ───────────────────────────────────────
    QUIZ_MIN_QUESTIONS: int = 1
    QUIZ_MAX_QUESTIONS: int = 100
    QUIZ_MAX_TITLE_LENGTH: int = 255
    QUIZ_MAX_DESCRIPTION_LENGTH: int = 1000
    QUIZ_MAX_QUESTION_LENGTH: int = 1000
    QUIZ_MAX_OPTION_LENGTH: int = 200
    QUIZ_MAX_EXPLANATION_LENGTH: int = 500
    QUIZ_MAX_TIME_LIMIT: int = 480  # minutes

    # ── Response parsing ──────────────────────────────────
    PARSER_RAW_EXCERPT_CHARS: int = 500

    # ── CORS ──────────────────────────────────────────────
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v):
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v

    @field_validator("DEFAULT_LANGUAGE", mode="after")
    @classmethod
    def _normalize_language(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUPPORTED_LANGUAGES:
            raise ValueError(f"DEFAULT_LANGUAGE must be one of {SUPPORTED_LANGUAGES}, got {v!r}")
        return v

    @field_validator("LOG_LEVEL", mode="after")
    @classmethod
    def _uppercase_level(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def _resolve_paths_and_cross_validate(self):
        """Resolve relative paths to absolute & cross-validate question bounds."""
        if self.LOG_DIR and not os.path.isabs(self.LOG_DIR):
            object.__setattr__(self, "LOG_DIR", os.path.join(_PROJECT_ROOT, self.LOG_DIR))

        if self.QUIZ_MIN_QUESTIONS < 1:
            raise ValueError("QUIZ_MIN_QUESTIONS must be at least 1")
        if self.QUIZ_MIN_QUESTIONS > self.QUIZ_MAX_QUESTIONS:
            raise ValueError(
                f"QUIZ_MIN_QUESTIONS ({self.QUIZ_MIN_QUESTIONS}) must not exceed "
                f"QUIZ_MAX_QUESTIONS ({self.QUIZ_MAX_QUESTIONS})"
            )

        return self

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
