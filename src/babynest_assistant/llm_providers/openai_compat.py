"""Chat fallback backed by an OpenAI compatible completion endpoint."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import requests
from loguru import logger

from .. import config
from .base import ChatMessage, history_messages

SYSTEM_PROMPT = (
    "You are BabyNest, a friendly assistant inside a pregnancy journal app. "
    "Answer briefly and kindly. You are not a doctor: for anything that sounds "
    "urgent tell the user to contact their care provider."
)


class OpenAICompatResponder:
    """Send the conversation to ``/chat/completions`` and return the reply."""

    def __init__(
        self,
        *,
        model: str | None = None,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        history_limit: int = 10,
    ) -> None:
        self.model = model or config.CHAT_MODEL
        self.api_url = api_url or config.CHAT_API_URL
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.timeout = timeout or config.CHAT_TIMEOUT
        self.history_limit = history_limit

    # ------------------------------------------------------------------
    def _chat(self, messages: List[ChatMessage]) -> str:
        """Send ``messages`` to the configured endpoint and return text."""

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": 0.7,
            "messages": messages,
        }
        response = requests.post(
            self.api_url, headers=headers, json=payload, timeout=self.timeout
        )
        response.raise_for_status()
        data = response.json()
        return data["choices"][0]["message"]["content"]

    # ------------------------------------------------------------------
    def reply(self, utterance: str, history: Sequence[ChatMessage]) -> str:
        messages: List[ChatMessage] = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend(history_messages(history, self.history_limit))
        messages.append({"role": "user", "content": utterance})
        logger.debug(f"Requesting chat reply from {self.api_url} ({self.model})")
        return self._chat(messages)
