from babynest_assistant.chatbot_nlu.slots import SlotFiller, is_empty


def test_is_empty():
    assert is_empty(None)
    assert is_empty("  ")
    assert is_empty([])
    assert not is_empty(0)
    assert not is_empty("x")


def test_extract_log_weight(ontology):
    intent = ontology.get_intent("log_weight")
    params = SlotFiller().extract("Log weight 65kg for week 12", intent)
    assert params == {"weight": 65.0, "week_number": 12}


def test_absent_slots_are_omitted(ontology):
    intent = ontology.get_intent("create_appointment")
    filler = SlotFiller()
    params = filler.extract("make an appointment", intent)
    assert params == {}
    assert filler.missing_slots(params, intent) == ["title", "date", "time", "location"]


def test_extract_full_appointment(ontology):
    intent = ontology.get_intent("create_appointment")
    params = SlotFiller().extract(
        "make appointment for ultrasound tomorrow at 2pm at City Hospital", intent
    )
    assert params == {
        "title": "ultrasound",
        "date": "tomorrow",
        "time": "2pm",
        "location": "city hospital",
    }


def test_task_title_uses_catalog_override(ontology):
    intent = ontology.get_intent("create_task")
    params = SlotFiller().extract("create task glucose test for week 24 with high priority", intent)
    assert params == {"title": "glucose test", "week": 24, "priority": "high"}


def test_blood_pressure_slots(ontology):
    intent = ontology.get_intent("log_blood_pressure")
    filler = SlotFiller()
    params = filler.extract("bp 120/80", intent)
    assert params == {"systolic": 120, "diastolic": 80}
    assert filler.missing_slots(params, intent) == ["time"]
