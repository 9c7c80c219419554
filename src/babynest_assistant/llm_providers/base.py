"""Base interfaces for the free-form chat fallback."""

from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

ChatMessage = Dict[str, str]
"""A chat message with ``role`` and ``content`` fields."""


class ChatResponder(Protocol):
    """Anything able to answer an utterance no journal intent claimed."""

    def reply(self, utterance: str, history: Sequence[ChatMessage]) -> str:
        """Return a reply to ``utterance`` given the prior ``history``."""
        ...


class StaticResponder:
    """Offline responder that always answers with the same help text."""

    DEFAULT_REPLY = (
        "I'm here to help you keep track of your pregnancy journal. "
        'Try "log weight 65kg", "book a checkup tomorrow at 10am" or '
        '"show my weight logs".'
    )

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.DEFAULT_REPLY

    def reply(self, utterance: str, history: Sequence[ChatMessage]) -> str:
        return self.message


def history_messages(history: Sequence[ChatMessage], limit: int) -> List[ChatMessage]:
    """Most recent ``limit`` messages of ``history``."""

    if limit <= 0:
        return []
    return list(history)[-limit:]
