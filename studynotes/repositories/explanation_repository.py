"""
Explanation store: append-only rows of (user_id, text_hash) -> explanation in ai_explanations.
Sync SQLAlchemy, one session per request. A miss is None, never an error; any database
failure is rolled back and raised as StoreUnavailable so the caller decides how to degrade.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studynotes.exceptions import StoreUnavailable
from studynotes.models.ai_explanation import AiExplanation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExplanationRecord:
    user_id: str
    fingerprint: str
    original_text: str
    explanation: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    id: str | None = None


def _to_record(row: AiExplanation) -> ExplanationRecord:
    return ExplanationRecord(
        id=row.id,
        user_id=row.user_id,
        fingerprint=row.text_hash,
        original_text=row.original_text,
        explanation=row.explanation,
        created_at=row.created_at,
    )


def _rollback_quietly(db: Session) -> None:
    try:
        db.rollback()
    except SQLAlchemyError as e:
        logger.warning("Rollback after store failure also failed: %s", e)


class ExplanationRepository:
    """Store over an open Session. Records are never updated or deleted here."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, user_id: str, fingerprint: str) -> ExplanationRecord | None:
        """Newest record for (user_id, fingerprint), or None on miss."""
        try:
            row = (
                self._db.query(AiExplanation)
                .filter(
                    AiExplanation.user_id == user_id,
                    AiExplanation.text_hash == fingerprint,
                )
                .order_by(desc(AiExplanation.created_at))
                .first()
            )
        except SQLAlchemyError as e:
            _rollback_quietly(self._db)
            raise StoreUnavailable(f"Explanation lookup failed: {e}") from e
        return _to_record(row) if row is not None else None

    def put(self, record: ExplanationRecord) -> ExplanationRecord:
        """Insert without a uniqueness check; duplicates for the same pair are tolerated."""
        row = AiExplanation(
            user_id=record.user_id,
            text_hash=record.fingerprint,
            original_text=record.original_text,
            explanation=record.explanation,
            created_at=record.created_at,
        )
        if record.id:
            row.id = record.id
        try:
            self._db.add(row)
            self._db.commit()
            self._db.refresh(row)
        except SQLAlchemyError as e:
            _rollback_quietly(self._db)
            raise StoreUnavailable(f"Explanation insert failed: {e}") from e
        return _to_record(row)

    def list_by_user(self, user_id: str, limit: int | None = None) -> list[ExplanationRecord]:
        """All of the user's records, newest first (history view, not the cache path)."""
        try:
            query = (
                self._db.query(AiExplanation)
                .filter(AiExplanation.user_id == user_id)
                .order_by(desc(AiExplanation.created_at))
            )
            if limit is not None:
                query = query.limit(limit)
            rows = query.all()
        except SQLAlchemyError as e:
            _rollback_quietly(self._db)
            raise StoreUnavailable(f"Explanation history query failed: {e}") from e
        return [_to_record(r) for r in rows]
