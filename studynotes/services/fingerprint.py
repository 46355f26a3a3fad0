"""Content fingerprint used as the explanation cache key."""
import hashlib


def normalize_text(text: str) -> str:
    """Trim surrounding whitespace and lowercase, so trivial variants share a cache slot."""
    return text.strip().lower()


def fingerprint_text(text: str) -> str:
    """SHA-256 of the normalized text as 64 lowercase hex characters."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()
