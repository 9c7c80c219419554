"""One conversation with the journal assistant.

A :class:`ChatSession` owns everything that changes while the user talks:
the pending follow-up, the undo log and the chat history.  Create one per
conversation and feed it utterances through :meth:`ChatSession.handle`.
"""

from __future__ import annotations

import re
from collections import deque
from typing import Deque, Optional

import requests
from loguru import logger

from . import config
from .chatbot_nlu.dialogue import DialogueState
from .chatbot_nlu.dispatcher import Dispatcher
from .chatbot_nlu.io_types import (
    ActionResult,
    ClassificationResult,
    DisambiguationNeeded,
    FailedToParse,
    ReadyToDispatch,
    StillMissing,
    UserContext,
)
from .chatbot_nlu.nlu import IntentClassifier
from .chatbot_nlu.ontology import IntentDefinition, Ontology
from .chatbot_nlu.policy import FALLBACK_PROMPT, Policy
from .chatbot_nlu.slots import SlotFiller
from .chatbot_nlu.undo import UndoLog
from .llm_providers.base import ChatMessage, ChatResponder, StaticResponder
from .records import RecordStore

_CANCEL = re.compile(r"^\s*(?:cancel|never\s*mind|stop|forget it)\b", re.IGNORECASE)


class ChatSession:
    """Route utterances through classification, follow-ups and dispatch."""

    def __init__(
        self,
        store: RecordStore,
        responder: Optional[ChatResponder] = None,
        ontology: Optional[Ontology] = None,
        user_context: Optional[UserContext] = None,
        undo_capacity: int = config.UNDO_CAPACITY,
        history_limit: int = config.HISTORY_LIMIT,
    ) -> None:
        self.store = store
        self.responder = responder or StaticResponder()
        self.ontology = ontology or Ontology(config.INTENTS_PATH)
        self.user_context = user_context or UserContext(current_week=config.DEFAULT_WEEK)
        self.classifier = IntentClassifier(self.ontology, config.CONFIDENCE_FLOOR)
        self.slot_filler = SlotFiller()
        self.policy = Policy(self.ontology)
        self.dialogue = DialogueState(self.slot_filler, self.policy)
        self.undo_log = UndoLog(store, undo_capacity)
        self.dispatcher = Dispatcher(store, self.undo_log, self.policy)
        self.history: Deque[ChatMessage] = deque(maxlen=history_limit)

    # ------------------------------------------------------------------
    def handle(self, utterance: str, user_context: Optional[UserContext] = None) -> ActionResult:
        """Process one user utterance and return the assistant's answer."""

        ctx = user_context or self.user_context
        try:
            result = self._handle((utterance or "").strip(), ctx)
        except Exception as exc:
            logger.exception("Unexpected failure while handling utterance")
            result = ActionResult(
                success=False,
                message="Sorry, something went wrong while handling that.",
                error=str(exc),
            )
        self._remember(utterance or "", result.message)
        return result

    def _handle(self, text: str, ctx: UserContext) -> ActionResult:
        if not text:
            return ActionResult(success=False, message=FALLBACK_PROMPT)

        classification = self.classifier.classify(text)
        # emergency phrases pre-empt any pending follow-up
        if classification.name == "emergency" and classification.confidence >= 1.0:
            self.dialogue.cancel()
            return self.dispatcher.dispatch(classification.intent, {}, ctx)

        if self.dialogue.has_pending():
            if _CANCEL.match(text):
                self.dialogue.cancel()
                return ActionResult(success=True, message="Okay, cancelled.", action="cancel")
            return self._continue(text, ctx)
        return self._start(text, classification, ctx)

    # ------------------------------------------------------------------
    def _start(self, text: str, classification: ClassificationResult, ctx: UserContext) -> ActionResult:
        intent = classification.intent
        logger.info(f"Intent {intent.name} ({classification.confidence:.2f})")
        if intent.action == "general_chat":
            return self._chat(text, intent)

        params = self.slot_filler.extract(text, intent)
        missing = self.slot_filler.missing_slots(params, intent)
        if missing:
            self.dialogue.begin_follow_up(intent, params, missing)
            return ActionResult(
                success=False,
                message=self.policy.follow_up_prompt(intent, missing),
                intent=intent.name,
                requires_follow_up=True,
                missing_fields=missing,
            )
        return self._dispatch(intent, params, ctx)

    def _continue(self, text: str, ctx: UserContext) -> ActionResult:
        outcome = self.dialogue.merge_response(text, ctx.today())
        if isinstance(outcome, ReadyToDispatch):
            return self._dispatch(outcome.intent, outcome.parameters, ctx)
        if isinstance(outcome, StillMissing):
            return ActionResult(
                success=False,
                message=outcome.prompt,
                intent=outcome.intent.name,
                requires_follow_up=True,
                missing_fields=list(outcome.missing),
            )
        if isinstance(outcome, DisambiguationNeeded):
            return ActionResult(
                success=False,
                message=outcome.prompt,
                intent=outcome.intent.name,
                requires_follow_up=True,
                missing_fields=["record_selection"],
                candidates=list(outcome.candidates),
            )
        if isinstance(outcome, FailedToParse):
            pending = self.dialogue.pending
            return ActionResult(
                success=False,
                message=outcome.prompt,
                intent=pending.intent.name if pending else None,
                requires_follow_up=pending is not None,
                missing_fields=list(pending.missing_slots) if pending else [],
            )
        raise TypeError(f"Unknown dialogue outcome {outcome!r}")

    def _dispatch(self, intent: IntentDefinition, params: dict, ctx: UserContext) -> ActionResult:
        result = self.dispatcher.dispatch(intent, params, ctx)
        if result.requires_follow_up and result.candidates:
            self.dialogue.begin_follow_up(intent, params, ["record_selection"], result.candidates)
        return result

    def _chat(self, text: str, intent: IntentDefinition) -> ActionResult:
        try:
            reply = self.responder.reply(text, list(self.history))
        except requests.RequestException as exc:
            logger.warning(f"Chat responder unavailable: {exc}")
            return ActionResult(
                success=False,
                message="I can't reach the chat service right now. "
                'You can still log entries, e.g. "log weight 65kg".',
                intent=intent.name,
                error=str(exc),
            )
        return ActionResult(success=True, message=reply, intent=intent.name, action="chat")

    def _remember(self, utterance: str, reply: str) -> None:
        self.history.append({"role": "user", "content": utterance})
        self.history.append({"role": "assistant", "content": reply})
