from datetime import date

import pytest

from babynest_assistant.chatbot_nlu import extractors as ex

TODAY = date(2025, 3, 10)  # a Monday


@pytest.mark.parametrize(
    "phrase, expected",
    [
        ("tomorrow", "2025-03-11"),
        ("yesterday", "2025-03-09"),
        ("next week", "2025-03-17"),
        ("next month", "2025-04-10"),
        ("friday", "2025-03-14"),
        ("monday", "2025-03-10"),
        ("15/03/2025", "2025-03-15"),
        ("2025-04-02", "2025-04-02"),
        ("14 april", "2025-04-14"),
        ("october 14, 2026", "2026-10-14"),
        ("31/02/2025", "2025-03-10"),
        ("whenever", "2025-03-10"),
        (None, "2025-03-10"),
    ],
)
def test_to_calendar_date(phrase, expected):
    assert ex.to_calendar_date(phrase, TODAY) == expected


@pytest.mark.parametrize(
    "phrase, expected",
    [
        ("2pm", "14:00"),
        ("3:30 pm", "15:30"),
        ("12am", "00:00"),
        ("12pm", "12:00"),
        ("14:45", "14:45"),
        ("morning", "09:00"),
        ("evening", "18:00"),
        ("25:00", "09:00"),
        (None, "09:00"),
    ],
)
def test_to_clock_time(phrase, expected):
    assert ex.to_clock_time(phrase) == expected


def test_extract_date_prefers_explicit_dates():
    assert ex.extract_date("book it for 12/10/2025 please") == "12/10/2025"
    assert ex.extract_date("checkup tomorrow at 2pm") == "tomorrow"
    assert ex.extract_date("see you on friday") == "friday"


def test_blood_pressure_reading_is_not_a_date():
    text = "bp 120/80 this morning"
    assert ex.extract_date(text) is None
    assert ex.extract_systolic(text) == 120
    assert ex.extract_diastolic(text) == 80
    assert ex.extract_time(text) == "morning"


def test_systolic_and_diastolic_by_name():
    text = "systolic 118 and diastolic 76"
    assert ex.extract_systolic(text) == 118
    assert ex.extract_diastolic(text) == 76


def test_extract_weight_units():
    assert ex.extract_weight("log weight 65kg for week 12") == 65.0
    assert ex.extract_weight("i weigh 62.5 kilos") == 62.5
    assert ex.extract_weight("i weigh 150 pounds") == 68.0
    assert ex.extract_weight("log weight") is None


def test_extract_week_and_limit():
    assert ex.extract_week("log weight 65kg for week 12") == 12
    assert ex.extract_limit("show my last 5 weight logs") == 5
    assert ex.extract_limit("show my weight logs") is None


def test_vocabulary_order_breaks_ties():
    # "no bleeding" is listed before the bare word
    assert ex.extract_bleeding("normal white no bleeding") == "no"
    assert ex.extract_bleeding("spotting with some bleeding") == "yes"
    assert ex.extract_location("at city hospital") == "city hospital"
    assert ex.extract_location("at the hospital") == "hospital"


def test_vocabulary_matches_word_starts_only():
    # "med" must not fire inside "immediately"
    assert ex.extract_screen("open it immediately") is None
    assert ex.extract_screen("take me to medicine") == "medicine"


def test_medicine_slots():
    text = "log medicine paracetamol 500mg twice daily this morning"
    assert ex.extract_medicine_name(text) == "paracetamol"
    assert ex.extract_dose(text) == "500mg"
    assert ex.extract_frequency(text) == "twice daily"
    assert ex.extract_time(text) == "morning"


def test_sleep_slots():
    text = "log sleep 8 hours from 10pm to 6am with excellent quality"
    assert ex.extract_sleep_duration(text) == 8.0
    assert ex.extract_bedtime(text) == "22:00"
    assert ex.extract_wake_time(text) == "06:00"
    assert ex.extract_sleep_quality(text) == "excellent"


def test_profile_value_and_note():
    assert ex.extract_profile_field("change my due date to june 24, 2026") == "due_date"
    assert ex.extract_profile_value("change my name to asha") == "asha"
    assert ex.extract_note("log weight 65kg with note feeling good") == "feeling good"


def test_appointment_identifier_order():
    assert ex.extract_appointment_identifier("delete checkup appointment on friday") == {
        "type": "title",
        "value": "checkup",
    }
    assert ex.extract_appointment_identifier("delete the appointment on friday") == {
        "type": "day",
        "value": "friday",
    }
    assert ex.extract_appointment_identifier("delete my latest appointment") == {
        "type": "relative",
        "value": "last",
    }
    assert ex.extract_appointment_identifier("delete the 3pm appointment") == {
        "type": "time",
        "value": "3pm",
    }
    assert ex.extract_appointment_identifier("delete appointment") is None


def test_record_reference():
    assert ex.extract_record_reference("delete my first weight") == {
        "type": "relative",
        "value": "first",
    }
    assert ex.extract_record_reference("delete weight from yesterday") == {
        "type": "date",
        "value": "yesterday",
    }
    assert ex.extract_record_reference("delete weight") is None


def test_extractor_for_bindings():
    assert ex.extractor_for("week_number") is ex.extract_week
    assert ex.extractor_for("title", "task_title") is ex.extract_task_title
    with pytest.raises(KeyError):
        ex.extractor_for("no_such_slot")
