from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import yaml

from .extractors import extractor_for


@dataclass(frozen=True)
class IntentDefinition:
    name: str
    action: str
    keywords: Tuple[str, ...] = ()
    examples: Tuple[str, ...] = ()
    required_slots: Tuple[str, ...] = ()
    optional_slots: Tuple[str, ...] = ()
    category: Optional[str] = None
    extractors: Mapping[str, str] = field(default_factory=dict)
    reference_slots: Tuple[str, ...] = ()
    field_map: Mapping[str, str] = field(default_factory=dict)
    tip: Optional[str] = None
    requires: Tuple[re.Pattern[str], ...] = ()
    unless: Tuple[re.Pattern[str], ...] = ()

    def admits(self, text: str) -> bool:
        """Whether ``text`` passes this intent's word guards."""

        if self.requires and not any(p.search(text) for p in self.requires):
            return False
        return not any(p.search(text) for p in self.unless)

    @property
    def slots(self) -> Tuple[str, ...]:
        return self.required_slots + tuple(
            s for s in self.optional_slots if s not in self.required_slots
        )

    @property
    def mutates_records(self) -> bool:
        return self.action in ("update_record", "delete_record")


@dataclass(frozen=True)
class Override:
    """Keyword group that short-circuits scoring.

    ``targets`` pairs an intent with the category words that must also be
    present; an empty word tuple means the terms alone are enough.
    """

    terms: Tuple[re.Pattern[str], ...]
    targets: Tuple[Tuple[str, Tuple[re.Pattern[str], ...]], ...]
    unless: Tuple[re.Pattern[str], ...] = ()

    def match(self, text: str) -> Optional[str]:
        if not any(p.search(text) for p in self.terms):
            return None
        if any(p.search(text) for p in self.unless):
            return None
        for intent, words in self.targets:
            if not words or any(p.search(text) for p in words):
                return intent
        return None


def _word_start(terms: List[str]) -> Tuple[re.Pattern[str], ...]:
    return tuple(re.compile(r"\b" + re.escape(t.lower())) for t in terms)


def _guard_words(entries: List[str], groups: Mapping[str, List[str]]) -> List[str]:
    words: List[str] = []
    for entry in entries:
        words.extend(groups.get(entry, [entry]))
    return words


class Ontology:
    """Intent catalog loaded from ``intents.yaml``."""

    def __init__(self, path: Path):
        self.path = path
        raw = yaml.safe_load(path.read_text()) or {}
        groups = raw.get("guards", {})
        self.intents: Dict[str, IntentDefinition] = {}
        for item in raw.get("intents", []):
            intent = IntentDefinition(
                name=item["name"],
                action=item.get("action", item["name"]),
                keywords=tuple(k.lower() for k in item.get("keywords", [])),
                examples=tuple(e.lower() for e in item.get("examples", [])),
                required_slots=tuple(item.get("required_slots", [])),
                optional_slots=tuple(item.get("optional_slots", [])),
                category=item.get("category"),
                extractors=dict(item.get("extractors", {})),
                reference_slots=tuple(item.get("reference_slots", [])),
                field_map=dict(item.get("field_map", {})),
                tip=item.get("tip"),
                requires=_word_start(_guard_words(item.get("requires", []), groups)),
                unless=_word_start(_guard_words(item.get("unless", []), groups)),
            )
            if intent.name in self.intents:
                raise ValueError(f"Duplicate intent '{intent.name}' in {path}")
            for slot in intent.slots:
                # fail at load time rather than on the first utterance
                try:
                    extractor_for(slot, intent.extractors.get(slot))
                except KeyError as exc:
                    raise ValueError(
                        f"Intent '{intent.name}' has no extractor for slot '{slot}'"
                    ) from exc
            self.intents[intent.name] = intent

        fallback = raw.get("fallback", {})
        self.fallback = IntentDefinition(
            name=fallback.get("name", "general_chat"),
            action=fallback.get("action", "general_chat"),
        )

        self.overrides: List[Override] = []
        for item in raw.get("overrides", []):
            if "categories" in item:
                targets = tuple(
                    (c["intent"], _word_start(c["words"])) for c in item["categories"]
                )
            else:
                targets = ((item["intent"], ()),)
            self.overrides.append(
                Override(
                    terms=_word_start(item["terms"]),
                    targets=targets,
                    unless=_word_start(item.get("unless", [])),
                )
            )

        self.slot_questions: Dict[str, str] = dict(raw.get("slot_questions", {}))

    @classmethod
    def default(cls) -> "Ontology":
        return cls(Path(__file__).resolve().parent / "intents.yaml")

    def __iter__(self):
        return iter(self.intents.values())

    def __len__(self) -> int:
        return len(self.intents)

    def get_intent(self, name: str) -> IntentDefinition:
        if name == self.fallback.name:
            return self.fallback
        return self.intents[name]

    def question_for(self, slot: str) -> str:
        return self.slot_questions.get(slot, f"Please provide: {slot.replace('_', ' ')}")
