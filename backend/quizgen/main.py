"""FastAPI application entry point."""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import time
import uuid

from quizgen.core.config import APP_VERSION, settings

# ── Logging configuration (done once, before any app imports) ─

os.makedirs(settings.LOG_DIR, exist_ok=True)

_fmt = logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
_stream_handler = logging.StreamHandler(sys.stdout)
_stream_handler.setFormatter(_fmt)
_file_handler = logging.handlers.RotatingFileHandler(
    os.path.join(settings.LOG_DIR, "app.log"), maxBytes=10 * 1024 * 1024, backupCount=3
)
_file_handler.setFormatter(_fmt)

logging.basicConfig(level=settings.LOG_LEVEL, handlers=[_stream_handler, _file_handler])
# Quieten noisy third-party loggers
for _noisy in ("httpx", "httpcore", "uvicorn.access"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quizgen.core.errors import QuizValidationError
from quizgen.routes.health import router as health_router
from quizgen.routes.quiz import router as quiz_router

logger = logging.getLogger("main")


# ── App ───────────────────────────────────────────────────


app = FastAPI(title="Quiz Generation Pipeline API", version=APP_VERSION)


# ── Middleware ────────────────────────────────────────────


@app.middleware("http")
async def log_requests(request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.time()
    try:
        response = await call_next(request)
        dt = time.time() - start
        logger.info("%s %s %s %.2fs [%s]", request.method, request.url.path, response.status_code, dt, request_id)
        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as e:
        dt = time.time() - start
        logger.error("%s %s ERROR %s %.2fs [%s]", request.method, request.url.path, type(e).__name__, dt, request_id)
        raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


# ── Error handlers ────────────────────────────────────────
# CORSMiddleware doesn't add headers to error responses, so we must.


def _cors_headers(origin: str | None = None) -> dict:
    allowed = origin if origin in settings.CORS_ORIGINS else (settings.CORS_ORIGINS[0] if settings.CORS_ORIGINS else "*")
    return {
        "Access-Control-Allow-Origin": allowed,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }


@app.exception_handler(QuizValidationError)
async def quiz_validation_exception_handler(request, exc: QuizValidationError):
    logger.info("%s on %s: %d error(s)", exc.code, request.url.path, len(exc.errors))
    return JSONResponse(
        status_code=422,
        content=exc.to_dict(),
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"error": "REQUEST_INVALID", "message": "Request validation failed", "errors": errors},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    request_id = getattr(request.state, "request_id", "unknown")
    logger.exception("Unhandled %s [request_id=%s]", type(exc).__name__, request_id)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
        headers=_cors_headers(request.headers.get("origin")),
    )


# ── Routes ────────────────────────────────────────────────

app.include_router(health_router, tags=["health"])
app.include_router(quiz_router, tags=["quiz"])
