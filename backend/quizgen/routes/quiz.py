"""Quiz pipeline routes.

Each endpoint wraps one pure pipeline operation. Validation failures are
raised as ``QuizValidationError`` and rendered as 422 by the app's handler.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from quizgen.services.quiz import (
    PromptBuilder,
    QuizValidator,
    ResponseParser,
    estimate_generation,
)
from quizgen.services.quiz.schemas import GenerationParameters

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quiz")


class ParseRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    raw_text: str
    language: Optional[str] = None


def _dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


@router.post("/prompt")
async def render_prompt(params: GenerationParameters):
    prompt = PromptBuilder().build_quiz_prompt(params)
    return JSONResponse(content={"prompt": prompt})


@router.post("/estimate")
async def estimate(params: GenerationParameters):
    return JSONResponse(content=_dump(estimate_generation(params)))


@router.post("/parse")
async def parse_response(request: ParseRequest):
    quiz = ResponseParser(language=request.language).parse_quiz_response(request.raw_text)
    return JSONResponse(content=_dump(quiz))


@router.post("/validate")
async def validate_quiz(
    payload: Dict[str, Any] = Body(...),
    language: Optional[str] = Query(None),
):
    validator = QuizValidator(language=language)
    validation = validator.validate_quiz_data(payload)
    quality = validator.validate_quiz_quality(payload)
    return JSONResponse(content={"validation": _dump(validation), "quality": _dump(quality)})


@router.post("/validate-update")
async def validate_update(
    payload: Dict[str, Any] = Body(...),
    language: Optional[str] = Query(None),
):
    result = QuizValidator(language=language).validate_update_data(payload)
    return JSONResponse(content=_dump(result))


@router.post("/publication-check")
async def publication_check(
    payload: Dict[str, Any] = Body(...),
    language: Optional[str] = Query(None),
):
    report = QuizValidator(language=language).validate_for_publication(payload)
    return JSONResponse(content=_dump(report))
