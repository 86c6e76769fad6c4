from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from pocketverse.config import get_settings
from pocketverse.errors import GenerationFailed, InvalidInput
from pocketverse.retrieval.models import VerseResult
from pocketverse.retrieval.service import VerseRetrievalService

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

app = FastAPI(title="PocketVerse API", version=VERSION)


class VerseRequest(BaseModel):
    """Request body for the /api/get-verse endpoint."""

    userInput: str | None = None


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Every error leaves the API as ``{"error": message}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed verse request: %s", exc.errors())
    return JSONResponse(status_code=400, content={"error": "User input is required"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Failed to get verse"})


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "service": "pocketverse",
        "version": VERSION,
    }


@app.post("/api/get-verse")
async def get_verse(req: VerseRequest) -> VerseResult:
    """Pick a verse for the user's situation; degraded fallbacks are returned as 200."""
    service = VerseRetrievalService.from_settings(get_settings())
    try:
        result = await service.run(req.userInput)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GenerationFailed as exc:
        logger.error("Verse generation failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return result.verse
