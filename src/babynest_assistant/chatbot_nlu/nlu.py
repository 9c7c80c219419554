from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

from loguru import logger

from .. import config
from .io_types import ClassificationResult
from .ontology import IntentDefinition, Ontology


def token_overlap(utterance: Sequence[str], example: Sequence[str]) -> float:
    """Share of utterance tokens found in ``example`` over the longer length."""

    if not utterance or not example:
        return 0.0
    vocab = set(example)
    shared = sum(1 for token in utterance if token in vocab)
    return shared / max(len(utterance), len(example))


def score_intent(text: str, intent: IntentDefinition) -> float:
    """Keyword plus example similarity score normalised by table size.

    Intents whose word guards reject ``text`` score zero.
    """

    size = len(intent.keywords) + len(intent.examples)
    if size == 0 or not intent.admits(text):
        return 0.0
    tokens = text.split()
    score = 2.0 * sum(1 for keyword in intent.keywords if keyword in text)
    score += sum(token_overlap(tokens, example.split()) for example in intent.examples)
    return score / size


@dataclass
class IntentClassifier:
    """Deterministic keyword/example intent classifier."""

    ontology: Ontology
    floor: float = config.CONFIDENCE_FLOOR

    def fallback(self, scores: Dict[str, float] | None = None) -> ClassificationResult:
        return ClassificationResult(self.ontology.fallback, 0.0, scores or {})

    # ------------------------------------------------------------------
    def classify(self, utterance: str) -> ClassificationResult:
        """Classify ``utterance`` returning ``ClassificationResult``."""

        text = (utterance or "").lower().strip()
        if not text:
            return self.fallback()

        for override in self.ontology.overrides:
            name = override.match(text)
            if name and name in self.ontology.intents:
                logger.debug(f"Override matched {name} for {text!r}")
                return ClassificationResult(self.ontology.intents[name], 1.0, {name: 1.0})

        scores: Dict[str, float] = {}
        best: IntentDefinition | None = None
        best_score = 0.0
        for intent in self.ontology:
            score = score_intent(text, intent)
            scores[intent.name] = score
            # strict comparison keeps the earlier catalog entry on ties
            if score > best_score:
                best, best_score = intent, score

        if best is None or best_score < self.floor:
            logger.debug(f"No intent above {self.floor} for {text!r}")
            return self.fallback(scores)
        logger.debug(f"Classified {text!r} as {best.name} ({best_score:.3f})")
        return ClassificationResult(best, min(best_score, 1.0), scores)
