"""
Markdown cleanup for generated explanations, applied once before the text is cached
and returned. Models often inline lists ("Conceptos clave: - Derivada - Límite"); the
frontend needs one item per line.

Rules:
- After colon: blank line before first bullet.
- Inline " - " → newline + "- " only when followed by an uppercase letter (never a digit,
  so subtraction like "2x - 3" is left alone).
- Inline numbered step " 2. " after sentence end → own line.
- Collapse three or more blank lines into one.
"""
import re

_UPPER = "A-ZÁÉÍÓÚÑÜ"


def _strip_trailing_spaces(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.split("\n"))


def normalize_markdown(text: str) -> str:
    if not text or not text.strip():
        return text
    text = text.replace("\r\n", "\n").strip()
    # Blank line before first "-" bullet after a colon ("resultado: - 3" stays); keep indent
    text = re.sub(r":[ \t]*\n?[ \t]*([ \t]*)-(?=[ \t]+[^\s\d])", r":\n\n\1-", text)
    # Inline " - Item" → own line (don't break "x - 1", "2x - 3" or "cuarto - ligero")
    text = re.sub(rf"(?<!\n)[ \t]+-[ \t]+(?=[{_UPPER}])", "\n- ", text)
    # "... fin. 2. Paso" → numbered step on its own line
    text = re.sub(rf"([.:!?])[ \t]+(\d{{1,2}}\.)[ \t]+(?=[{_UPPER}])", r"\1\n\2 ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return _strip_trailing_spaces(text)
