"""Per-user cache of AI explanations, keyed by the SHA-256 of the normalized note text."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from studynotes.database import Base


class AiExplanation(Base):
    __tablename__ = "ai_explanations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    text_hash = Column(String(64), nullable=False)  # fingerprint of normalized text
    original_text = Column(Text, nullable=False)
    explanation = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Not unique: concurrent misses may both insert; reads take the newest row.
    __table_args__ = (Index("ix_ai_explanations_user_hash", "user_id", "text_hash"),)
