"""AI prompt templates."""

from billsync.ai.prompts.recommendations import RECOMMENDATIONS_SYSTEM, RECOMMENDATIONS_USER

__all__ = [
    "RECOMMENDATIONS_SYSTEM",
    "RECOMMENDATIONS_USER",
]
