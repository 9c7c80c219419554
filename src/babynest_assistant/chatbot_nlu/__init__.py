from __future__ import annotations

from .dialogue import DialogueState, parse_selection
from .dispatcher import Dispatcher
from .io_types import (
    ActionResult,
    ClassificationResult,
    DisambiguationNeeded,
    FailedToParse,
    ParameterSet,
    PendingFollowUp,
    ReadyToDispatch,
    StillMissing,
    UserContext,
)
from .nlu import IntentClassifier
from .ontology import IntentDefinition, Ontology
from .policy import Policy
from .slots import SlotFiller
from .undo import ActionLogEntry, Creation, Deletion, UndoLog, Update

__all__ = [
    "ActionLogEntry",
    "ActionResult",
    "ClassificationResult",
    "Creation",
    "Deletion",
    "DialogueState",
    "DisambiguationNeeded",
    "Dispatcher",
    "FailedToParse",
    "IntentClassifier",
    "IntentDefinition",
    "Ontology",
    "ParameterSet",
    "PendingFollowUp",
    "Policy",
    "ReadyToDispatch",
    "SlotFiller",
    "StillMissing",
    "UndoLog",
    "Update",
    "UserContext",
    "parse_selection",
]
