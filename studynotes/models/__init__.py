from studynotes.models.user import User
from studynotes.models.ai_explanation import AiExplanation

__all__ = ["User", "AiExplanation"]
