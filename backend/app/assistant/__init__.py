"""Chat assistant for the venue: live knowledge, prompt, model fallback, markers."""

from .engine import ChatAssistant
from .markers import extract_markers
from .session import ChatSession, SessionBusy

__all__ = ["ChatAssistant", "ChatSession", "SessionBusy", "extract_markers"]
