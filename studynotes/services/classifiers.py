"""
Local keyword classifiers for class-note text.
Both run on every explain call (cache hit or miss); they are cheap and deterministic,
so their output is never stored alongside the cached explanation.
"""
import enum


class Difficulty(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# (keyword, category) in reporting order
CONCEPT_KEYWORDS: list[tuple[str, str]] = [
    ("ecuación", "math"),
    ("función", "math"),
    ("derivada", "math"),
    ("integral", "math"),
    ("límite", "math"),
    ("matriz", "math"),
    ("vector", "math"),
    ("fuerza", "physics"),
    ("energía", "physics"),
    ("velocidad", "physics"),
    ("aceleración", "physics"),
    ("masa", "physics"),
    ("momento", "physics"),
    ("átomo", "chemistry"),
    ("molécula", "chemistry"),
    ("reacción", "chemistry"),
    ("enlace", "chemistry"),
    ("ion", "chemistry"),
    ("pH", "chemistry"),
    ("concentración", "chemistry"),
]

# Checked in order; first level with any match wins, else beginner.
DIFFICULTY_KEYWORDS: list[tuple[Difficulty, list[str]]] = [
    (Difficulty.ADVANCED, ["derivada", "integral", "límite", "transformada", "ecuación diferencial"]),
    (Difficulty.INTERMEDIATE, ["función", "ecuación", "sistema", "matriz"]),
]


def _contains(lower_text: str, keyword: str) -> bool:
    return keyword.lower() in lower_text


def derive_concepts(text: str) -> list[str]:
    """Vocabulary keywords present in text (case-insensitive substring match)."""
    lower_text = text.lower()
    return [keyword for keyword, _category in CONCEPT_KEYWORDS if _contains(lower_text, keyword)]


def derive_difficulty(text: str) -> Difficulty:
    lower_text = text.lower()
    for level, keywords in DIFFICULTY_KEYWORDS:
        if any(_contains(lower_text, k) for k in keywords):
            return level
    return Difficulty.BEGINNER
