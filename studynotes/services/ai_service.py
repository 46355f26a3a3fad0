"""
Gemini (Vertex AI) collaborator for class notes: explanation text and image OCR.
Uses google-genai client with Vertex AI. Built once in the app lifespan and injected;
every failure (API error, timeout, empty output) is raised as GeneratorFailure.
"""
import logging
from pathlib import Path
from typing import Any

from studynotes.config import Settings
from studynotes.exceptions import GeneratorFailure

logger = logging.getLogger(__name__)


EXPLAIN_SYSTEM_INSTRUCTION = """You are an expert teacher helping students understand their class notes.
You receive text transcribed from a student's notes, sometimes with OCR mistakes.

Your task:
- Explain the content clearly and didactically, step by step.
- List the key concepts involved.
- State the difficulty level (beginner, intermediate or advanced).
- If the text is garbled, explain what you can and say which part was unclear.
- Answer in the same language as the notes (most notes are in Spanish)."""

OCR_INSTRUCTION = """Transcribe all text in this image of class notes exactly as written.
Keep line breaks and mathematical notation (use ^ for exponents).
Return only the transcribed text, with no commentary. If there is no text, return nothing."""


def build_explain_prompt(text: str, subject: str | None) -> str:
    """User prompt: the original note text is sent as-is, not normalized."""
    return (
        f"Como un profesor experto en {subject or 'educación'}, explica de manera clara "
        f"y didáctica el siguiente contenido:\n\n"
        f'"{text}"\n\n'
        "Proporciona:\n"
        "1. Una explicación detallada\n"
        "2. Conceptos clave involucrados\n"
        "3. Nivel de dificultad\n\n"
        "Respuesta:"
    )


def _response_text(response: Any, allow_empty: bool = False) -> str:
    if not response or not response.candidates:
        raise GeneratorFailure("Empty response from model")
    candidate = response.candidates[0]
    if not candidate.content or not candidate.content.parts:
        # Blank images can come back as a candidate with no parts
        if allow_empty:
            return ""
        raise GeneratorFailure("No text in model response")
    text = getattr(response, "text", None) or candidate.content.parts[0].text
    if not text or not text.strip():
        if allow_empty:
            return ""
        raise GeneratorFailure("Model returned empty text")
    return text.strip()


class ExplanationGenerator:
    """Wraps a genai.Client; explain() and extract_text() are blocking calls bounded by the client timeout."""

    def __init__(self, client: Any, model: str, max_output_tokens: int = 1024):
        self._client = client
        self._model = model
        self._max_output_tokens = max_output_tokens

    def explain(self, text: str, subject: str | None = None) -> str:
        from google.genai.types import GenerateContentConfig

        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=build_explain_prompt(text, subject),
                config=GenerateContentConfig(
                    system_instruction=EXPLAIN_SYSTEM_INSTRUCTION,
                    temperature=0.7,
                    max_output_tokens=self._max_output_tokens,
                ),
            )
        except Exception as e:
            raise GeneratorFailure(f"Explanation request failed: {e}") from e
        return _response_text(response)

    def extract_text(self, image_bytes: bytes, mime_type: str = "image/png") -> str:
        """OCR of a class-note image. Returns "" when the image holds no text."""
        from google.genai import types
        from google.genai.types import GenerateContentConfig

        parts = [
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            types.Part.from_text(text=OCR_INSTRUCTION),
        ]
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=[types.Content(role="user", parts=parts)],
                config=GenerateContentConfig(temperature=0.0, max_output_tokens=2048),
            )
        except Exception as e:
            raise GeneratorFailure(f"OCR request failed: {e}") from e
        return _response_text(response, allow_empty=True)


def build_explanation_generator(settings: Settings) -> ExplanationGenerator | None:
    """
    Build the generator from settings, or None when Vertex AI is not configured.
    None is the explicit "AI disabled" mode: explain() serves the fallback text and
    OCR endpoints answer 503. Missing libraries or bad credentials fail at startup.
    """
    if not settings.generator_configured:
        logger.warning("vertex_project_id is not configured; AI explanations disabled")
        return None

    from google import genai
    from google.genai import types
    from google.oauth2 import service_account

    credentials = None
    if settings.vertex_credentials_path:
        path = Path(settings.vertex_credentials_path)
        if not path.is_file():
            raise RuntimeError(f"vertex_credentials_path not found: {path}")
        credentials = service_account.Credentials.from_service_account_file(
            str(path),
            scopes=["https://www.googleapis.com/auth/cloud-platform"],
        )

    client = genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        credentials=credentials,
        http_options=types.HttpOptions(timeout=int(settings.generator_timeout_seconds * 1000)),
    )
    logger.info("AI generator ready: model=%s location=%s", settings.gemini_model, settings.vertex_location)
    return ExplanationGenerator(client, settings.gemini_model, settings.generator_max_output_tokens)
