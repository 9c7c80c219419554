"""Responders used when no journal intent matches."""

__all__ = ["ChatMessage", "ChatResponder", "OpenAICompatResponder", "StaticResponder"]

from .base import ChatMessage, ChatResponder, StaticResponder
from .openai_compat import OpenAICompatResponder
