"""Health check endpoint.

Checks pipeline component availability:
- Prompt templates
- Tokenizer (tiktoken encoding, or the length-based fallback)
"""

from __future__ import annotations

import logging
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from quizgen.core.config import APP_VERSION, SUPPORTED_LANGUAGES
from quizgen.prompts import load_all_templates
from quizgen.services.token_counter import tokenizer_available

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint - verify pipeline components.

    Returns:
        JSON with status of each component
    """
    health_status = {
        "templates": "unknown",
        "tokenizer": "unknown",
        "status": "unknown",
        "version": APP_VERSION,
    }

    # Check prompt templates
    try:
        load_all_templates(languages=SUPPORTED_LANGUAGES)
        health_status["templates"] = "ok"
        logger.debug("Template health check: OK")
    except OSError as e:
        health_status["templates"] = "error"
        logger.error(f"Template health check failed: {e}")

    # Check tokenizer
    health_status["tokenizer"] = "ok" if tokenizer_available() else "fallback"

    if health_status["templates"] == "error":
        health_status["status"] = "unhealthy"
        status_code = 503
    elif health_status["tokenizer"] == "ok":
        health_status["status"] = "healthy"
        status_code = 200
    else:
        health_status["status"] = "degraded"
        status_code = 200

    return JSONResponse(content=health_status, status_code=status_code)


@router.get("/health/simple")
async def simple_health_check():
    """Simple health check - just returns 200 OK.

    For basic uptime monitoring without component checks.
    """
    return {"status": "ok"}
