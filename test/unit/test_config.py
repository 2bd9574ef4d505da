"""
Unit tests for backend/quizgen/core/config.py
Tests: Settings defaults, field validators (CORS parsing, language, log level),
question-bound cross validation, path resolution
No network required.
"""

import sys
import os
import pytest
from pydantic import ValidationError

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend"))
sys.path.insert(0, BACKEND_DIR)

from quizgen.core.config import SUPPORTED_LANGUAGES, Settings, settings


class TmpSettings(Settings):
    model_config = {"env_file": None, "extra": "ignore"}


class TestSettingsDefaults:
    """Verify default values in the Settings singleton."""

    def test_settings_is_settings_instance(self):
        assert isinstance(settings, Settings)

    def test_default_language_supported(self):
        assert settings.DEFAULT_LANGUAGE in SUPPORTED_LANGUAGES

    def test_quiz_question_bounds(self):
        assert 1 <= settings.QUIZ_MIN_QUESTIONS <= settings.QUIZ_MAX_QUESTIONS

    def test_max_title_length_default(self):
        assert TmpSettings().QUIZ_MAX_TITLE_LENGTH == 255

    def test_max_time_limit_default(self):
        assert TmpSettings().QUIZ_MAX_TIME_LIMIT == 480

    def test_prompt_window_positive(self):
        assert settings.PROMPT_MAX_CONTENT_LENGTH > 0

    def test_raw_excerpt_chars_positive(self):
        assert settings.PARSER_RAW_EXCERPT_CHARS > 0

    def test_log_dir_is_absolute(self):
        assert os.path.isabs(settings.LOG_DIR)

    def test_environment_is_valid(self):
        assert settings.ENVIRONMENT in ("development", "staging", "production")


class TestCorsValidator:
    """Test the comma-separated CORS_ORIGINS validator."""

    def test_list_input_preserved(self):
        tmp = TmpSettings(CORS_ORIGINS=["http://localhost:3000", "http://localhost:5173"])
        assert tmp.CORS_ORIGINS == ["http://localhost:3000", "http://localhost:5173"]

    def test_string_input_split(self):
        tmp = TmpSettings(CORS_ORIGINS="http://a.com, http://b.com,")
        assert tmp.CORS_ORIGINS == ["http://a.com", "http://b.com"]


class TestLanguageValidator:

    def test_language_is_normalized(self):
        assert TmpSettings(DEFAULT_LANGUAGE=" EN ").DEFAULT_LANGUAGE == "en"

    def test_unsupported_language_rejected(self):
        with pytest.raises(ValidationError):
            TmpSettings(DEFAULT_LANGUAGE="fr")


class TestCrossValidation:

    def test_log_level_uppercased(self):
        assert TmpSettings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            TmpSettings(QUIZ_MIN_QUESTIONS=20, QUIZ_MAX_QUESTIONS=10)

    def test_zero_min_questions_rejected(self):
        with pytest.raises(ValidationError):
            TmpSettings(QUIZ_MIN_QUESTIONS=0)

    def test_relative_log_dir_resolved(self):
        tmp = TmpSettings(LOG_DIR="./some-logs")
        assert os.path.isabs(tmp.LOG_DIR)
        assert tmp.LOG_DIR.endswith("some-logs")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
