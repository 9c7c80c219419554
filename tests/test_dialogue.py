from datetime import date

import pytest

from babynest_assistant.chatbot_nlu.dialogue import DialogueState, parse_selection
from babynest_assistant.chatbot_nlu.io_types import (
    DisambiguationNeeded,
    FailedToParse,
    ReadyToDispatch,
    StillMissing,
)
from babynest_assistant.chatbot_nlu.policy import Policy
from babynest_assistant.chatbot_nlu.slots import SlotFiller

TODAY = date(2025, 3, 10)

CANDIDATES = [
    {"id": 1, "title": "checkup", "appointment_date": "2025-03-11", "appointment_time": "10:00"},
    {"id": 2, "title": "checkup", "appointment_date": "2025-03-14", "appointment_time": "14:00"},
    {"id": 3, "title": "checkup", "appointment_date": "2025-03-14", "appointment_time": "16:00"},
]


@pytest.fixture
def state(ontology):
    return DialogueState(SlotFiller(), Policy(ontology))


@pytest.mark.parametrize(
    "utterance, ids",
    [
        ("1", [1]),
        ("number 2 please", [2]),
        ("1 and 3", [1, 3]),
        ("3, 1, 3", [3, 1]),
        ("all of them", [1, 2, 3]),
        ("both", [1, 2, 3]),
        ("the first one", [1]),
        ("the last one", [3]),
    ],
)
def test_parse_selection(utterance, ids):
    assert [c["id"] for c in parse_selection(utterance, CANDIDATES)] == ids


def test_parse_selection_rejects_noise():
    assert parse_selection("7", CANDIDATES) is None
    assert parse_selection("the one at 2pm", CANDIDATES) is None
    assert parse_selection("hmm not sure", CANDIDATES) is None
    assert parse_selection("both", CANDIDATES[:1]) is None
    assert parse_selection("1", []) is None


def test_yes_confirms_only_a_lone_candidate():
    assert parse_selection("yes", CANDIDATES[:1]) == CANDIDATES[:1]
    assert parse_selection("ok, go ahead", CANDIDATES[:1]) == CANDIDATES[:1]
    assert parse_selection("yes", CANDIDATES) is None


def test_merge_without_pending(state):
    outcome = state.merge_response("tomorrow")
    assert isinstance(outcome, FailedToParse)
    assert outcome.prompt == "I didn't catch that."


def test_slot_follow_up_until_complete(state, ontology):
    intent = ontology.get_intent("create_appointment")
    state.begin_follow_up(intent, {}, ["title", "date", "time", "location"])

    outcome = state.merge_response("a checkup tomorrow")
    assert isinstance(outcome, StillMissing)
    assert outcome.missing == ["time", "location"]
    assert outcome.parameters == {"title": "checkup", "date": "tomorrow"}
    assert "What time works for you?" in outcome.prompt
    assert state.has_pending()

    # later answers overwrite earlier ones
    outcome = state.merge_response("actually friday at 2pm in the clinic")
    assert isinstance(outcome, ReadyToDispatch)
    assert outcome.parameters == {
        "title": "checkup",
        "date": "friday",
        "time": "2pm",
        "location": "clinic",
    }
    assert not state.has_pending()


def test_selection_by_number(state, ontology):
    intent = ontology.get_intent("delete_appointment")
    state.begin_follow_up(intent, {}, ["record_selection"], CANDIDATES)

    outcome = state.merge_response("1")
    assert isinstance(outcome, ReadyToDispatch)
    assert outcome.parameters == {"selection": [1]}
    assert not state.has_pending()


def test_selection_narrowed_by_reference(state, ontology):
    intent = ontology.get_intent("delete_appointment")
    state.begin_follow_up(intent, {}, ["record_selection"], CANDIDATES)

    outcome = state.merge_response("the one on friday", today=TODAY)
    assert isinstance(outcome, DisambiguationNeeded)
    assert [c["id"] for c in outcome.candidates] == [2, 3]
    assert state.pending.candidate_records == outcome.candidates

    outcome = state.merge_response("the 4pm one", today=TODAY)
    assert isinstance(outcome, ReadyToDispatch)
    assert outcome.parameters["selection"] == [3]


def test_unparseable_selection_keeps_pending(state, ontology):
    intent = ontology.get_intent("delete_appointment")
    state.begin_follow_up(intent, {}, ["record_selection"], CANDIDATES)

    outcome = state.merge_response("hmm")
    assert isinstance(outcome, FailedToParse)
    assert "Reply with a number" in outcome.prompt
    assert state.has_pending()


def test_update_requires_single_choice(state, ontology):
    intent = ontology.get_intent("update_appointment")
    state.begin_follow_up(intent, {"time": "3pm"}, ["record_selection"], CANDIDATES)

    outcome = state.merge_response("all")
    assert isinstance(outcome, FailedToParse)
    assert "exactly one" in outcome.prompt

    outcome = state.merge_response("2")
    assert isinstance(outcome, ReadyToDispatch)
    assert outcome.parameters == {"time": "3pm", "selection": [2]}


def test_cancel(state, ontology):
    state.begin_follow_up(ontology.get_intent("log_weight"), {}, ["weight"])
    state.cancel()
    assert not state.has_pending()
