from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .ontology import IntentDefinition
from .undo import Reversal

ParameterSet = Dict[str, Any]


class UserContext(BaseModel):
    """Caller supplied context for a dispatch."""

    model_config = ConfigDict(extra="forbid")

    current_week: int = Field(default=12, ge=1)
    reference_date: Optional[date] = None

    def today(self) -> date:
        return self.reference_date or date.today()


@dataclass
class ClassificationResult:
    """Output of the intent classifier."""

    intent: IntentDefinition
    confidence: float
    scores: Dict[str, float] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.intent.name


@dataclass
class ActionResult:
    """Result of handling one utterance or dispatching one intent."""

    success: bool
    message: str = ""
    intent: Optional[str] = None
    action: Optional[str] = None
    screen: Optional[str] = None
    requires_follow_up: bool = False
    missing_fields: List[str] = field(default_factory=list)
    candidates: List[Dict[str, Any]] = field(default_factory=list)
    data: Any | None = None
    record_ids: List[int] = field(default_factory=list)
    error: Optional[str] = None
    reversal: Optional[Reversal] = field(default=None, repr=False)


# ---------------------------------------------------------------------------
# Dialogue outcomes
# ---------------------------------------------------------------------------


@dataclass
class PendingFollowUp:
    intent: IntentDefinition
    partial_parameters: ParameterSet
    missing_slots: List[str]
    candidate_records: Optional[List[Dict[str, Any]]] = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class StillMissing:
    intent: IntentDefinition
    parameters: ParameterSet
    missing: List[str]
    prompt: str


@dataclass
class ReadyToDispatch:
    intent: IntentDefinition
    parameters: ParameterSet


@dataclass
class DisambiguationNeeded:
    intent: IntentDefinition
    candidates: List[Dict[str, Any]]
    prompt: str


@dataclass
class FailedToParse:
    prompt: str


DialogueOutcome = Union[StillMissing, ReadyToDispatch, DisambiguationNeeded, FailedToParse]
