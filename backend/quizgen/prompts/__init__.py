"""Prompt template loader.

Each ``get_*_prompt`` function loads a ``<kind>_prompt_<language>.txt``
template from this package directory and substitutes placeholders.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Dict

logger = logging.getLogger(__name__)

_DIR = os.path.dirname(__file__)
_FALLBACK_LANGUAGE = "th"


@lru_cache(maxsize=32)
def _load(filename: str) -> str:
    """Read a template file, caching the result."""
    with open(os.path.join(_DIR, filename), encoding="utf-8") as f:
        return f.read()


def _template_for(kind: str, language: str) -> str:
    filename = f"{kind}_prompt_{language}.txt"
    if os.path.exists(os.path.join(_DIR, filename)):
        return filename
    logger.warning("No %s template for language %r, using %r", kind, language, _FALLBACK_LANGUAGE)
    return f"{kind}_prompt_{_FALLBACK_LANGUAGE}.txt"


def _render(filename: str, subs: Dict[str, str]) -> str:
    """Load *filename* and apply all substitutions."""
    text = _load(filename)
    for key, val in subs.items():
        text = text.replace(key, val)
    return text


# ── Public helpers ────────────────────────────────────────


def get_quiz_prompt(
    language: str,
    context: str,
    requirements: str,
    json_format: str,
    example: str,
    type_rules: str,
) -> str:
    return _render(_template_for("quiz", language), {
        "{{CONTEXT}}": context,
        "{{REQUIREMENTS}}": requirements,
        "{{JSON_FORMAT}}": json_format,
        "{{EXAMPLE}}": example,
        "{{TYPE_RULES}}": type_rules,
    })


def get_regeneration_prompt(
    language: str,
    context: str,
    requirements: str,
    json_format: str,
    example: str,
    type_rules: str,
) -> str:
    return _render(_template_for("regeneration", language), {
        "{{CONTEXT}}": context,
        "{{REQUIREMENTS}}": requirements,
        "{{JSON_FORMAT}}": json_format,
        "{{EXAMPLE}}": example,
        "{{TYPE_RULES}}": type_rules,
    })


def get_improvement_prompt(
    language: str,
    questions_json: str,
    improvement_types: str,
    issues: str,
    requirements: str,
    json_format: str,
) -> str:
    return _render(_template_for("improvement", language), {
        "{{QUESTIONS_JSON}}": questions_json,
        "{{IMPROVEMENT_TYPES}}": improvement_types,
        "{{ISSUES}}": issues,
        "{{REQUIREMENTS}}": requirements,
        "{{JSON_FORMAT}}": json_format,
    })


def load_all_templates(kinds=("quiz", "regeneration", "improvement"), languages=("th", "en")) -> int:
    """Load every template into the cache; returns the number loaded."""
    count = 0
    for kind in kinds:
        for language in languages:
            _load(_template_for(kind, language))
            count += 1
    return count
