"""
Cache-aware explanation service: store lookup before the expensive AI call.
- user_id present: fingerprint the text, try the store; on hit return the cached explanation.
- Miss: call the generator with the original text, then insert best-effort.
- Anonymous (no user_id): never touches the store.
- Store and generator failures degrade (miss / fallback text); explain() only raises InvalidInput.
Concurrent misses for the same text may both call the generator and both insert; reads take the newest row.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from studynotes.exceptions import GeneratorFailure, InvalidInput, StoreUnavailable
from studynotes.repositories.explanation_repository import ExplanationRecord
from studynotes.services.classifiers import Difficulty, derive_concepts, derive_difficulty
from studynotes.services.fingerprint import fingerprint_text
from studynotes.utils.markdown import normalize_markdown

logger = logging.getLogger(__name__)

FALLBACK_EXPLANATION = (
    "No se pudo generar una explicación automática. Por favor, intenta nuevamente más tarde."
)


class ExplanationSource(str, enum.Enum):
    GENERATED = "generated"
    CACHED = "cached"
    FALLBACK = "fallback"


@dataclass
class AIExplanation:
    explanation: str
    concepts: list[str] = field(default_factory=list)
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    source: ExplanationSource = ExplanationSource.GENERATED


class ExplanationStore(Protocol):
    def get(self, user_id: str, fingerprint: str) -> ExplanationRecord | None: ...

    def put(self, record: ExplanationRecord) -> ExplanationRecord: ...

    def list_by_user(self, user_id: str, limit: int | None = None) -> list[ExplanationRecord]: ...


class Generator(Protocol):
    def explain(self, text: str, subject: str | None = None) -> str: ...


class ExplanationService:
    """Orchestrates explanations: store as cache, generator as source. Generator may be None (AI disabled)."""

    def __init__(self, store: ExplanationStore, generator: Generator | None):
        self._store = store
        self._generator = generator

    def explain(self, user_id: str | None, text: str, subject: str | None = None) -> AIExplanation:
        if not text or not text.strip():
            raise InvalidInput("Text to explain must not be empty")

        fingerprint = None
        cache_writable = False
        if user_id:
            fingerprint = fingerprint_text(text)
            try:
                record = self._store.get(user_id, fingerprint)
            except StoreUnavailable as e:
                logger.warning("Explanation cache read failed for user %s, treating as miss: %s", user_id, e)
            else:
                cache_writable = True
                if record is not None:
                    logger.info("Using cached explanation for user %s", user_id)
                    return self._result(record.explanation, text, ExplanationSource.CACHED)

        generated = self._generate(text, subject)
        if generated is None:
            return AIExplanation(
                explanation=FALLBACK_EXPLANATION,
                concepts=derive_concepts(text),
                difficulty=Difficulty.INTERMEDIATE,
                source=ExplanationSource.FALLBACK,
            )

        if cache_writable:
            self._save(user_id, fingerprint, text, generated)
        return self._result(generated, text, ExplanationSource.GENERATED)

    def history(self, user_id: str, limit: int | None = None) -> list[ExplanationRecord]:
        """User's cached explanations, newest first. StoreUnavailable propagates."""
        return self._store.list_by_user(user_id, limit)

    def _generate(self, text: str, subject: str | None) -> str | None:
        if self._generator is None:
            logger.info("AI generator disabled; returning fallback explanation")
            return None
        try:
            generated = self._generator.explain(text, subject)
        except GeneratorFailure as e:
            logger.warning("AI explanation failed: %s", e)
            return None
        except Exception:
            logger.exception("Unexpected error from AI generator")
            return None
        generated = normalize_markdown(generated or "")
        if not generated.strip():
            logger.warning("AI explanation was empty")
            return None
        return generated

    def _save(self, user_id: str, fingerprint: str, text: str, explanation: str) -> None:
        record = ExplanationRecord(
            user_id=user_id,
            fingerprint=fingerprint,
            original_text=text,
            explanation=explanation,
            created_at=datetime.utcnow(),
        )
        try:
            self._store.put(record)
            logger.info("Explanation saved to cache for user %s", user_id)
        except StoreUnavailable as e:
            logger.warning("Explanation cache write failed for user %s: %s", user_id, e)

    @staticmethod
    def _result(explanation: str, text: str, source: ExplanationSource) -> AIExplanation:
        return AIExplanation(
            explanation=explanation,
            concepts=derive_concepts(text),
            difficulty=derive_difficulty(text),
            source=source,
        )
