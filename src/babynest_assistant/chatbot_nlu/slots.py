from __future__ import annotations

from typing import Any, List

from loguru import logger

from .extractors import extractor_for
from .io_types import ParameterSet
from .ontology import IntentDefinition


def is_empty(value: Any) -> bool:
    """``None``, blank strings and empty containers count as absent."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


class SlotFiller:
    """Run the extractor bound to each slot of an intent."""

    def extract(self, utterance: str, intent: IntentDefinition) -> ParameterSet:
        text = (utterance or "").lower().strip()
        params: ParameterSet = {}
        for slot in intent.slots:
            extractor = extractor_for(slot, intent.extractors.get(slot))
            value = extractor(text)
            if not is_empty(value):
                params[slot] = value
        logger.debug(f"Extracted {params} for {intent.name}")
        return params

    def missing_slots(self, params: ParameterSet, intent: IntentDefinition) -> List[str]:
        return [slot for slot in intent.required_slots if is_empty(params.get(slot))]
