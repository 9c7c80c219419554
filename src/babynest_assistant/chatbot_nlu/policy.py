from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .formatting import describe_record, numbered
from .ontology import IntentDefinition, Ontology

FALLBACK_PROMPT = "I didn't catch that."
SELECTION_HINT = 'Reply with a number (e.g. "1" or "1, 2"), "all", "first" or "last".'


@dataclass
class Policy:
    """Prompts shown while the dialogue waits for the user."""

    ontology: Ontology

    def follow_up_prompt(self, intent: IntentDefinition, missing: Sequence[str]) -> str:
        lines = ["I need a few more details:"]
        lines.extend(f"- {self.ontology.question_for(slot)}" for slot in missing)
        if intent.tip:
            lines.append(f'Tip: you can say it all at once, e.g. "{intent.tip}"')
        return "\n".join(lines)

    def selection_prompt(
        self, intent: IntentDefinition, candidates: List[Dict[str, Any]]
    ) -> str:
        category = (intent.category or "record").replace("_", " ")
        verb = "update" if intent.action == "update_record" else "delete"
        listing = numbered([describe_record(intent.category or "", c) for c in candidates])
        if len(candidates) == 1:
            return (
                f"Should I {verb} this {category} entry?\n{listing}\n"
                f'Reply "yes" to {verb} it or "cancel" to keep it.'
            )
        return (
            f"I found {len(candidates)} {category} entries. Which one should I {verb}?\n"
            f"{listing}\n{SELECTION_HINT}"
        )

    def selection_retry_prompt(self, intent: IntentDefinition) -> str:
        if intent.action == "update_record":
            return "Please pick exactly one entry to update. " + SELECTION_HINT
        return "I couldn't understand your selection. " + SELECTION_HINT
