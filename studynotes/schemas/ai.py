from datetime import datetime
from pydantic import BaseModel, Field

from studynotes.services.classifiers import Difficulty
from studynotes.services.explanation_service import ExplanationSource


# ---- Explain ----

class AiExplainRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=20000, description="Note text to explain (e.g. OCR output)")
    subject: str | None = Field(None, max_length=100, description="Optional subject hint, e.g. 'Matemáticas'")


class AiExplainResponse(BaseModel):
    explanation: str
    concepts: list[str] = []
    difficulty: Difficulty
    source: ExplanationSource
    from_cache: bool = False


# ---- OCR ----

class AiOcrResponse(BaseModel):
    text: str


class AiClassNoteAnalyzeResponse(BaseModel):
    extracted_text: str
    explanation: AiExplainResponse


# ---- History (GET) ----

class AiExplanationOut(BaseModel):
    id: str | None = None
    text_hash: str
    original_text: str
    explanation: str
    created_at: datetime


class AiExplanationHistoryResponse(BaseModel):
    explanations: list[AiExplanationOut]
