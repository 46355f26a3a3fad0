"""
AI endpoints for class notes:
- POST /api/ai/explain — explain note text (anonymous allowed; cached per user when logged in)
- GET /api/ai/explanations — cached explanation history for current user (newest first)
- POST /api/ai/ocr — extract text from a class-note image (login required)
- POST /api/ai/class-notes/analyze — OCR an image, then explain the text (login required; cached)
- GET /api/ai/health — generator configured? store reachable?
"""
import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status, UploadFile, File, Form
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studynotes.auth import get_current_user, get_current_user_optional
from studynotes.config import get_settings
from studynotes.database import get_db
from studynotes.exceptions import GeneratorFailure, InvalidInput, StoreUnavailable
from studynotes.models.user import User
from studynotes.repositories.explanation_repository import ExplanationRepository
from studynotes.schemas.ai import (
    AiExplainRequest,
    AiExplainResponse,
    AiOcrResponse,
    AiClassNoteAnalyzeResponse,
    AiExplanationOut,
    AiExplanationHistoryResponse,
)
from studynotes.services.ai_service import ExplanationGenerator
from studynotes.services.explanation_service import AIExplanation, ExplanationService, ExplanationSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

ALLOWED_IMAGE_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp", "image/gif"}
HISTORY_LIMIT = 100


# ---------- Dependencies: generator (built in lifespan) + ExplanationService ----------


def get_explanation_generator(request: Request) -> ExplanationGenerator | None:
    """Generator from app.state; None when Vertex AI is not configured."""
    return getattr(request.app.state, "explanation_generator", None)


def get_explanation_service(
    db: Session = Depends(get_db),
    generator: ExplanationGenerator | None = Depends(get_explanation_generator),
) -> ExplanationService:
    return ExplanationService(store=ExplanationRepository(db), generator=generator)


def _to_response(result: AIExplanation) -> AiExplainResponse:
    return AiExplainResponse(
        explanation=result.explanation,
        concepts=result.concepts,
        difficulty=result.difficulty,
        source=result.source,
        from_cache=result.source == ExplanationSource.CACHED,
    )


def _require_generator(generator: ExplanationGenerator | None) -> ExplanationGenerator:
    if generator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service is not configured.",
        )
    return generator


async def _read_image(image: UploadFile) -> tuple[bytes, str]:
    ct = (image.content_type or "").split(";")[0].strip().lower()
    if ct not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be an image (png, jpeg, webp, gif).",
        )
    max_bytes = get_settings().max_image_bytes
    image_bytes = await image.read()
    if not image_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is empty.")
    if len(image_bytes) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image too large (max {max_bytes // (1024 * 1024)} MB).",
        )
    return image_bytes, ct


async def _extract_text(generator: ExplanationGenerator, image_bytes: bytes, mime: str) -> str:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, lambda: generator.extract_text(image_bytes, mime))
    except GeneratorFailure as e:
        logger.warning("OCR failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not read text from the image. Please try again later.",
        ) from e


# ---------- Health ----------


@router.get("/health")
def ai_health(
    db: Session = Depends(get_db),
    generator: ExplanationGenerator | None = Depends(get_explanation_generator),
):
    """Generator status (configured or disabled) and store reachability."""
    try:
        db.execute(sql_text("SELECT 1"))
        store = "ok"
    except SQLAlchemyError as e:
        logger.warning("Store health check failed: %s", e)
        store = "unavailable"
    return {"generator": "ok" if generator is not None else "disabled", "store": store}


# ---------- Explain ----------


@router.post("/explain", response_model=AiExplainResponse)
def ai_explain(
    body: AiExplainRequest,
    user: User | None = Depends(get_current_user_optional),
    service: ExplanationService = Depends(get_explanation_service),
):
    """
    Explain note text. Logged-in users get per-user caching (same text after trim/lowercase
    does not call the model again). Always returns an explanation; source="fallback"
    when the AI service is unavailable.
    """
    try:
        result = service.explain(user.id if user else None, body.text, body.subject)
    except InvalidInput as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return _to_response(result)


@router.get("/explanations", response_model=AiExplanationHistoryResponse)
def ai_explanation_history(
    user: User = Depends(get_current_user),
    service: ExplanationService = Depends(get_explanation_service),
):
    """Current user's cached explanations, newest first."""
    try:
        records = service.history(user.id, limit=HISTORY_LIMIT)
    except StoreUnavailable as e:
        logger.warning("Explanation history unavailable for user %s: %s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Explanation history is temporarily unavailable.",
        ) from e
    return AiExplanationHistoryResponse(
        explanations=[
            AiExplanationOut(
                id=r.id,
                text_hash=r.fingerprint,
                original_text=r.original_text,
                explanation=r.explanation,
                created_at=r.created_at,
            )
            for r in records
        ]
    )


# ---------- OCR / class notes ----------


@router.post("/ocr", response_model=AiOcrResponse)
async def ai_ocr(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    generator: ExplanationGenerator | None = Depends(get_explanation_generator),
):
    """Extract text from a photo of class notes."""
    generator = _require_generator(generator)
    image_bytes, mime = await _read_image(image)
    text = await _extract_text(generator, image_bytes, mime)
    return AiOcrResponse(text=text)


@router.post("/class-notes/analyze", response_model=AiClassNoteAnalyzeResponse)
async def ai_analyze_class_note(
    image: UploadFile = File(...),
    subject: str | None = Form(default=None, max_length=100),
    user: User = Depends(get_current_user),
    generator: ExplanationGenerator | None = Depends(get_explanation_generator),
    service: ExplanationService = Depends(get_explanation_service),
):
    """OCR a class-note image and explain the extracted text (cached per user)."""
    generator = _require_generator(generator)
    image_bytes, mime = await _read_image(image)
    extracted = await _extract_text(generator, image_bytes, mime)
    if not extracted.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No text found in the image.",
        )

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, lambda: service.explain(user.id, extracted, subject or None))
    return AiClassNoteAnalyzeResponse(extracted_text=extracted, explanation=_to_response(result))
