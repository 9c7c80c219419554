"""Multi-turn follow-up handling.

At most one :class:`PendingFollowUp` exists per conversation.  It either
waits for missing slots, in which case each reply is run through the slot
filler and merged last-write-wins, or it waits for the user to pick among
candidate records found by an update or delete.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Optional

from loguru import logger

from .extractors import extractor_for
from .io_types import (
    DialogueOutcome,
    DisambiguationNeeded,
    FailedToParse,
    ParameterSet,
    PendingFollowUp,
    ReadyToDispatch,
    StillMissing,
)
from .matching import match_records
from .ontology import IntentDefinition
from .policy import FALLBACK_PROMPT, Policy
from .slots import SlotFiller, is_empty

_ALL = re.compile(r"\ball\b")
_BOTH = re.compile(r"\bboth\b")
_FIRST = re.compile(r"\bfirst\b")
_LAST = re.compile(r"\blast\b")
_YES = re.compile(r"^\s*(?:yes|yeah|yep|sure|ok|okay|confirm)\b")
# bare numbers only, so "2pm" or "12/10" are not read as choices
_NUMBER = re.compile(r"(?<![:/\-.\d])\b(\d{1,3})\b(?!\s*(?:am|pm|:|/|-|\.\d|kg|mg|ml))")


def parse_selection(utterance: str, candidates: List[Dict[str, Any]]) -> Optional[List[Dict[str, Any]]]:
    """Interpret ``utterance`` as a choice among ``candidates``.

    Recognised forms, checked in order: "all", "both", ordinal numbers,
    "first" and "last".  "both" needs at least two candidates and with more
    than two it selects all of them.  A lone candidate can also be confirmed
    with "yes".  Returns ``None`` when nothing usable was said.
    """

    text = utterance.lower()
    if not candidates:
        return None
    if len(candidates) == 1 and _YES.search(text):
        return list(candidates)
    if _ALL.search(text):
        return list(candidates)
    if _BOTH.search(text):
        return list(candidates) if len(candidates) >= 2 else None
    chosen: List[Dict[str, Any]] = []
    for number in _NUMBER.findall(text):
        index = int(number) - 1
        if 0 <= index < len(candidates) and candidates[index] not in chosen:
            chosen.append(candidates[index])
    if chosen:
        return chosen
    if _FIRST.search(text):
        return [candidates[0]]
    if _LAST.search(text):
        return [candidates[-1]]
    return None


class DialogueState:
    """Holds the single pending follow-up of a conversation."""

    def __init__(self, slot_filler: SlotFiller, policy: Policy) -> None:
        self.slot_filler = slot_filler
        self.policy = policy
        self.pending: Optional[PendingFollowUp] = None

    def begin_follow_up(
        self,
        intent: IntentDefinition,
        partial: ParameterSet,
        missing: List[str],
        candidates: Optional[List[Dict[str, Any]]] = None,
    ) -> PendingFollowUp:
        self.pending = PendingFollowUp(
            intent=intent,
            partial_parameters=dict(partial),
            missing_slots=list(missing),
            candidate_records=list(candidates) if candidates else None,
        )
        logger.debug(f"Waiting on {missing} for {intent.name}")
        return self.pending

    def has_pending(self) -> bool:
        return self.pending is not None

    def cancel(self) -> None:
        self.pending = None

    # ------------------------------------------------------------------
    def merge_response(self, utterance: str, today: Optional[date] = None) -> DialogueOutcome:
        if self.pending is None:
            return FailedToParse(FALLBACK_PROMPT)
        if self.pending.candidate_records and self.pending.intent.mutates_records:
            return self._merge_selection(utterance, today)
        return self._merge_slots(utterance)

    def _merge_slots(self, utterance: str) -> DialogueOutcome:
        pending = self.pending
        intent = pending.intent
        params = dict(pending.partial_parameters)
        for slot, value in self.slot_filler.extract(utterance, intent).items():
            if not is_empty(value):
                params[slot] = value
        missing = self.slot_filler.missing_slots(params, intent)
        if missing:
            pending.partial_parameters = params
            pending.missing_slots = missing
            return StillMissing(
                intent, dict(params), missing, self.policy.follow_up_prompt(intent, missing)
            )
        self.pending = None
        return ReadyToDispatch(intent, params)

    def _merge_selection(self, utterance: str, today: Optional[date]) -> DialogueOutcome:
        pending = self.pending
        intent = pending.intent
        candidates = pending.candidate_records or []

        selected = parse_selection(utterance, candidates)
        if selected is None:
            narrowed = self._narrow(utterance, candidates, today)
            if len(narrowed) == 1:
                selected = narrowed
            elif 1 < len(narrowed) < len(candidates):
                pending.candidate_records = narrowed
                return DisambiguationNeeded(
                    intent, narrowed, self.policy.selection_prompt(intent, narrowed)
                )

        if not selected or (intent.action == "update_record" and len(selected) != 1):
            return FailedToParse(self.policy.selection_retry_prompt(intent))

        params = dict(pending.partial_parameters)
        params["selection"] = [record["id"] for record in selected]
        self.pending = None
        return ReadyToDispatch(intent, params)

    def _narrow(
        self, utterance: str, candidates: List[Dict[str, Any]], today: Optional[date]
    ) -> List[Dict[str, Any]]:
        intent = self.pending.intent
        text = utterance.lower().strip()
        references = []
        for slot in intent.reference_slots:
            value = extractor_for(slot, intent.extractors.get(slot))(text)
            if not is_empty(value):
                references.append(value)
        if not references:
            return []
        return match_records(candidates, references, today)
