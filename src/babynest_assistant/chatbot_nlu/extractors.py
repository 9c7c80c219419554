"""Slot extractors for journal utterances.

Each extractor is a pure function taking normalised (lower-cased) text and
returning a typed value or ``None`` when the slot is absent.  Extractors are
built from two ordered primitives: :class:`RuleList` (regular expressions,
first match wins) and :class:`Vocabulary` (closed word lists, first entry
mentioned wins).  Order inside both is significant, specific phrasings come
before generic ones.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .. import config

MONTHS = (
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
)
# Same order as ``date.weekday()``
WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)
_MONTH_RE = "|".join(MONTHS)
_WEEKDAY_RE = "|".join(WEEKDAYS)
_CLOCK_RE = r"\d{1,2}(?::\d{2})?\s*(?:am|pm)?"

DEFAULT_TIME = config.DEFAULT_TIME
KG_PER_POUND = 0.45359237


# ---------------------------------------------------------------------------
# Ordered primitives
# ---------------------------------------------------------------------------


def _group(match: re.Match[str]) -> Any:
    return match.group(1)


@dataclass(frozen=True)
class Rule:
    """A compiled pattern plus a converter applied to its match.

    A converter returning ``None`` rejects the match so the next rule is tried.
    """

    pattern: re.Pattern[str]
    convert: Callable[[re.Match[str]], Any] = _group

    @classmethod
    def of(cls, pattern: str, convert: Callable[[re.Match[str]], Any] = _group) -> "Rule":
        return cls(re.compile(pattern, re.IGNORECASE), convert)


class RuleList:
    """Ordered regular expression rules; the first accepted match wins."""

    def __init__(self, *rules: Rule) -> None:
        self.rules: Tuple[Rule, ...] = rules

    def first(self, text: str) -> Any | None:
        for rule in self.rules:
            match = rule.pattern.search(text)
            if match is None:
                continue
            value = rule.convert(match)
            if value is not None:
                return value
        return None

    __call__ = first


class Vocabulary:
    """Ordered ``(canonical, aliases)`` entries matched at word starts.

    ``first`` returns the canonical value of the first entry with an alias in
    the text, so entry order breaks ties between overlapping words.
    """

    def __init__(self, entries: Sequence[Tuple[str, Sequence[str]]]) -> None:
        self.entries: Tuple[Tuple[str, Tuple[re.Pattern[str], ...]], ...] = tuple(
            (
                canonical,
                tuple(re.compile(r"\b" + re.escape(alias)) for alias in aliases),
            )
            for canonical, aliases in entries
        )

    @classmethod
    def of(cls, *terms: str) -> "Vocabulary":
        return cls([(term, (term,)) for term in terms])

    def first(self, text: str) -> Optional[str]:
        for canonical, patterns in self.entries:
            if any(pattern.search(text) for pattern in patterns):
                return canonical
        return None

    __call__ = first


# ---------------------------------------------------------------------------
# Date and time canonicalisation
# ---------------------------------------------------------------------------


def _valid_day_month(match: re.Match[str]) -> Optional[str]:
    day, month = (int(part) for part in re.split(r"[/-]", match.group(1))[:2])
    if 1 <= day <= 31 and 1 <= month <= 12:
        return match.group(1)
    return None


extract_date = RuleList(
    Rule.of(r"(?<!\d)(\d{1,2}/\d{1,2}/\d{4})(?!\d)"),
    Rule.of(r"(?<!\d)(\d{1,2}-\d{1,2}-\d{4})(?!\d)"),
    Rule.of(r"(?<!\d)(\d{4}-\d{1,2}-\d{1,2})(?!\d)"),
    Rule.of(rf"\b(\d{{1,2}}(?:st|nd|rd|th)?\s+(?:{_MONTH_RE})\s+\d{{4}})\b"),
    Rule.of(rf"\b((?:{_MONTH_RE})\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?)\b"),
    Rule.of(rf"\b(\d{{1,2}}(?:st|nd|rd|th)?\s+(?:{_MONTH_RE}))\b"),
    Rule.of(r"\b(tomorrow|today|yesterday|next week|next month)\b"),
    Rule.of(rf"\b({_WEEKDAY_RE})\b"),
    Rule.of(r"(?<![\d/])(\d{1,2}/\d{1,2})(?![\d/])", _valid_day_month),
    Rule.of(r"(?<![\d-])(\d{1,2}-\d{1,2})(?![\d-])", _valid_day_month),
)


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def _parse_calendar(phrase: str, today: date) -> Optional[date]:
    if "tomorrow" in phrase:
        return today + timedelta(days=1)
    if "yesterday" in phrase:
        return today - timedelta(days=1)
    if "today" in phrase:
        return today
    if "next week" in phrase:
        return today + timedelta(days=7)
    if "next month" in phrase:
        return _add_months(today, 1)

    match = re.search(r"(\d{4})-(\d{1,2})-(\d{1,2})", phrase)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return date(year, month, day)
    match = re.search(r"(\d{1,2})[/-](\d{1,2})(?:[/-](\d{4}))?", phrase)
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        year = int(match.group(3)) if match.group(3) else today.year
        return date(year, month, day)
    match = re.search(
        rf"(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_RE})(?:\s+(\d{{4}}))?", phrase
    )
    if match:
        year = int(match.group(3)) if match.group(3) else today.year
        return date(year, MONTHS.index(match.group(2)) + 1, int(match.group(1)))
    match = re.search(
        rf"({_MONTH_RE})\s+(\d{{1,2}})(?:st|nd|rd|th)?(?:,?\s+(\d{{4}}))?", phrase
    )
    if match:
        year = int(match.group(3)) if match.group(3) else today.year
        return date(year, MONTHS.index(match.group(1)) + 1, int(match.group(2)))

    for index, weekday in enumerate(WEEKDAYS):
        if weekday in phrase:
            return today + timedelta(days=(index - today.weekday()) % 7)
    return None


def to_calendar_date(phrase: Optional[str], today: Optional[date] = None) -> str:
    """Resolve a date phrase to ``YYYY-MM-DD``.

    Relative phrases are resolved against ``today``; anything unrecognised,
    including impossible dates, falls back to ``today``.
    """

    today = today or date.today()
    if not phrase:
        return today.isoformat()
    try:
        resolved = _parse_calendar(phrase.lower().strip(), today)
    except ValueError:
        resolved = None
    return (resolved or today).isoformat()


def to_clock_time(phrase: Optional[str]) -> str:
    """Resolve a time phrase to 24-hour ``HH:MM``, defaulting to 09:00."""

    if not phrase:
        return DEFAULT_TIME
    phrase = phrase.lower()
    for word, clock in (
        ("morning", "09:00"),
        ("afternoon", "14:00"),
        ("evening", "18:00"),
        ("night", "20:00"),
    ):
        if word in phrase:
            return clock
    match = re.search(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)?", phrase)
    if not match:
        return DEFAULT_TIME
    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    period = match.group(3)
    if period == "pm" and hours != 12:
        hours += 12
    elif period == "am" and hours == 12:
        hours = 0
    if hours > 23 or minutes > 59:
        return DEFAULT_TIME
    return f"{hours:02d}:{minutes:02d}"


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

extract_time = RuleList(
    Rule.of(r"\b(\d{1,2}:\d{2}\s*(?:am|pm))\b"),
    Rule.of(r"\b(\d{1,2}\s*(?:am|pm))\b"),
    Rule.of(r"(?<![\d/])(\d{1,2}:\d{2})(?![\d/])"),
    Rule.of(r"\b(morning|afternoon|evening|night)\b"),
)

APPOINTMENT_TITLES = Vocabulary(
    [
        ("ultrasound", ("ultrasound",)),
        ("checkup", ("checkup", "check-up", "check up")),
        ("consultation", ("consultation",)),
        ("blood test", ("blood test",)),
        ("scan", ("scan",)),
        ("visit", ("visit",)),
        ("examination", ("examination",)),
    ]
)
extract_appointment_title = APPOINTMENT_TITLES.first

extract_location = Vocabulary.of(
    "city hospital", "medical center", "doctor office", "health center",
    "delhi", "mumbai", "bangalore", "chennai", "hyderabad", "kolkata", "pune",
    "hospital", "clinic",
).first


def _weight_kg(match: re.Match[str]) -> float:
    value = float(match.group(1))
    if match.group(2).startswith(("pound", "lb")):
        return round(value * KG_PER_POUND, 1)
    return value


extract_weight = RuleList(
    Rule.of(r"(\d+(?:\.\d+)?)\s*(kg|kilograms?|kilos?|pounds?|lbs?)\b", _weight_kg),
)

extract_week = RuleList(Rule.of(r"\bweek\s+(\d+)", lambda m: int(m.group(1))))

extract_limit = RuleList(
    Rule.of(r"\b(?:last|recent|top)\s+(\d+)", lambda m: int(m.group(1)))
)

extract_symptom = Vocabulary(
    [
        ("nausea", ("nausea", "nauseous")),
        ("vomiting", ("vomiting", "vomit", "throwing up")),
        ("dizziness", ("dizziness", "dizzy")),
        ("headache", ("headache",)),
        ("fatigue", ("fatigue",)),
        ("back pain", ("back pain",)),
        ("cramps", ("cramps", "cramping")),
        ("spotting", ("spotting",)),
        ("bleeding", ("bleeding",)),
        ("swelling", ("swelling", "swollen")),
        ("heartburn", ("heartburn",)),
        ("constipation", ("constipation", "constipated")),
        ("morning sickness", ("morning sickness",)),
        ("mood swings", ("mood swings",)),
        ("food cravings", ("food cravings", "cravings")),
        ("aversion", ("aversion",)),
    ]
).first

_BP_PAIR = r"\b(\d{2,3})\s*/\s*(\d{2,3})\b"
extract_systolic = RuleList(
    Rule.of(_BP_PAIR, lambda m: int(m.group(1))),
    Rule.of(r"\bsystolic\s+(\d{2,3})\b", lambda m: int(m.group(1))),
)
extract_diastolic = RuleList(
    Rule.of(_BP_PAIR, lambda m: int(m.group(2))),
    Rule.of(r"\bdiastolic\s+(\d{2,3})\b", lambda m: int(m.group(1))),
)

extract_medicine_name = Vocabulary.of(
    "paracetamol", "acetaminophen", "ibuprofen", "aspirin", "iron",
    "folic acid", "calcium", "vitamin d", "prenatal vitamins", "omeprazole",
    "ranitidine",
).first

extract_dose = RuleList(
    Rule.of(
        r"\b(\d+(?:\.\d+)?\s*(?:mg|ml|tablets?|pills?|drops?))\b",
        lambda m: re.sub(r"\s+", " ", m.group(1)),
    )
)

extract_frequency = Vocabulary(
    [
        ("twice daily", ("twice daily", "twice a day")),
        ("three times daily", ("three times", "thrice")),
        ("once daily", ("once daily", "once a day", "daily", "every day")),
        ("weekly", ("weekly", "once a week")),
        ("as needed", ("as needed", "when needed")),
    ]
).first

extract_discharge_type = Vocabulary.of(
    "normal", "spotting", "heavy", "light", "abnormal"
).first

extract_discharge_color = Vocabulary.of(
    "clear", "white", "pink", "brown", "red", "yellow"
).first

extract_bleeding = Vocabulary(
    [
        ("no", ("no bleeding", "no blood", "not bleeding", "without bleeding")),
        ("yes", ("bleeding", "blood", "red")),
    ]
).first

extract_task_title = Vocabulary.of(
    "ultrasound", "blood test", "urine test", "checkup", "consultation",
    "scan", "examination", "vaccination", "glucose test",
).first

extract_priority = Vocabulary(
    [
        ("high", ("high", "urgent", "important")),
        ("low", ("low",)),
        ("medium", ("medium", "normal priority")),
    ]
).first

extract_screen = Vocabulary(
    [
        ("home", ("home", "main", "dashboard")),
        ("weight", ("weight", "weigh")),
        ("symptoms", ("symptoms", "symptom")),
        ("medicine", ("medicine", "medication", "med")),
        ("appointments", ("appointments", "appointment", "calendar", "schedule")),
        ("blood_pressure", ("blood pressure", "bp", "pressure")),
        ("discharge", ("discharge", "bleeding", "spotting")),
        ("timeline", ("timeline", "history")),
        ("settings", ("settings", "profile")),
        ("tasks", ("tasks", "reminders", "todo", "all tasks")),
    ]
).first

extract_profile_field = Vocabulary(
    [
        ("due_date", ("due date",)),
        ("name", ("name",)),
        ("age", ("age",)),
        ("phone", ("phone", "number")),
        ("location", ("location", "address")),
    ]
).first

extract_profile_value = RuleList(
    Rule.of(r"\b(?:to|is|as)\s+(.+?)\s*$", lambda m: m.group(1).strip() or None),
)

extract_data_type = Vocabulary(
    [
        ("appointments", ("appointments", "appointment", "schedule", "upcoming", "next", "when")),
        ("weight", ("weight", "weigh")),
        ("symptoms", ("symptoms", "symptom")),
        ("medicine", ("medicine", "medication")),
        ("blood_pressure", ("blood pressure", "bp")),
        ("discharge", ("discharge", "bleeding")),
        ("tasks", ("tasks", "reminders")),
    ]
).first

extract_note = RuleList(
    Rule.of(r"\bnotes?\s*:?\s+(.+)$", lambda m: m.group(1).strip() or None)
)

extract_mood = Vocabulary(
    [
        ("happy", ("happy", "joyful", "cheerful", "good", "great", "wonderful")),
        ("sad", ("sad", "down", "depressed", "blue", "melancholy")),
        ("anxious", ("anxious", "worried", "nervous", "stressed", "tense")),
        ("calm", ("calm", "peaceful", "relaxed", "serene", "tranquil")),
        ("energetic", ("energetic", "excited", "pumped", "motivated", "active")),
        ("tired", ("tired", "exhausted", "drained", "fatigued", "sleepy")),
        ("frustrated", ("frustrated", "annoyed", "irritated", "angry", "mad")),
    ]
).first

extract_intensity = RuleList(
    Rule.of(r"\b(high|medium|low)\s+intensity\b"),
    Rule.of(r"\bintensity\s+(?:is\s+|of\s+)?(high|medium|low)\b"),
    Rule.of(r"\b(?:very|extremely|really)\b", lambda m: "high"),
    Rule.of(r"\b(?:quite|somewhat|fairly)\b", lambda m: "medium"),
    Rule.of(r"\b(?:a little|slightly|a bit)\b", lambda m: "low"),
)

extract_sleep_duration = RuleList(
    Rule.of(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b", lambda m: float(m.group(1))),
    Rule.of(r"\bslept\s*(\d+(?:\.\d+)?)\b", lambda m: float(m.group(1))),
)

extract_bedtime = RuleList(
    Rule.of(rf"\bwent\s+to\s+bed\s+at\s+({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(rf"\bbedtime\s+(?:at\s+)?({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(rf"\bslept\s+at\s+({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(
        rf"\bfrom\s+(\d{{1,2}}(?::\d{{2}})?\s*(?:am|pm))\s+to\s+",
        lambda m: to_clock_time(m.group(1)),
    ),
)

extract_wake_time = RuleList(
    Rule.of(rf"\bwoke\s+up\s+at\s+({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(rf"\bwake\s+up\s+at\s+({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(rf"\bgot\s+up\s+at\s+({_CLOCK_RE})", lambda m: to_clock_time(m.group(1))),
    Rule.of(
        r"\bfrom\s+\d{1,2}(?::\d{2})?\s*(?:am|pm)\s+to\s+(\d{1,2}(?::\d{2})?\s*(?:am|pm))",
        lambda m: to_clock_time(m.group(1)),
    ),
)

extract_sleep_quality = Vocabulary(
    [
        ("excellent", ("excellent", "great", "amazing", "perfect", "wonderful")),
        ("good", ("good", "well", "decent", "fine", "okay")),
        ("fair", ("fair", "average", "ok", "so-so")),
        ("poor", ("poor", "bad", "terrible", "awful", "horrible")),
    ]
).first

extract_metric = Vocabulary(
    [
        ("weight", ("weight", "weigh", "kg", "kilos", "pounds", "lbs")),
        ("sleep", ("sleep", "sleeping", "bedtime", "hours of sleep")),
        ("mood", ("mood", "feeling", "emotions", "mental health")),
        ("blood_pressure", ("blood pressure", "bp")),
        ("symptoms", ("symptoms", "symptom", "pain", "nausea", "discomfort")),
        ("appointments", ("appointments", "appointment", "visits", "checkups", "consultations")),
    ]
).first

extract_timeframe = Vocabulary(
    [
        ("today", ("today", "this day")),
        ("week", ("this week", "past week", "last week", "last 7 days")),
        ("month", ("this month", "past month", "last month", "30 days")),
        ("year", ("this year", "past year", "last year")),
        ("all", ("all time", "ever", "total", "overall")),
    ]
).first

extract_chart_type = Vocabulary(
    [
        ("line", ("trend", "over time", "progression", "line")),
        ("bar", ("bar", "comparison", "comparative")),
        ("pie", ("pie", "distribution", "breakdown")),
        ("summary", ("summary", "overview", "stats", "statistics")),
    ]
).first

extract_action_type = Vocabulary(
    [
        ("weight", ("weight", "weigh")),
        ("appointment", ("appointment", "visit", "checkup")),
        ("symptom", ("symptom", "symptoms")),
        ("mood", ("mood", "feeling")),
        ("sleep", ("sleep", "sleeping")),
        ("medicine", ("medicine", "medication")),
        ("blood_pressure", ("blood pressure", "bp")),
        ("discharge", ("discharge",)),
        ("task", ("task", "reminder")),
    ]
).first


_ORDINALS = RuleList(
    Rule.of(r"\b(first|second|last|latest|most recent)\b"),
)


def _relative(text: str) -> Optional[str]:
    term = _ORDINALS.first(text)
    if term in ("latest", "most recent"):
        return "last"
    return term


def _reference(kind: str, value: Any) -> Dict[str, Any]:
    return {"type": kind, "value": value}


def extract_appointment_identifier(text: str) -> Optional[Dict[str, Any]]:
    """Describe which stored appointment the text refers to.

    Checked in order: appointment type, weekday, ordinal position, date,
    time and finally location.
    """

    title = extract_appointment_title(text)
    if title:
        return _reference("title", title)
    day = re.search(rf"\b({_WEEKDAY_RE})\b", text)
    if day:
        return _reference("day", day.group(1))
    relative = _relative(text)
    if relative:
        return _reference("relative", relative)
    when = extract_date(text)
    if when:
        return _reference("date", when)
    clock = extract_time(text)
    if clock:
        return _reference("time", clock)
    location = extract_location(text)
    if location:
        return _reference("location", location)
    return None


def extract_record_reference(text: str) -> Optional[Dict[str, Any]]:
    """Describe which stored journal entry the text refers to."""

    relative = _relative(text)
    if relative:
        return _reference("relative", relative)
    day = re.search(rf"\b({_WEEKDAY_RE})\b", text)
    if day:
        return _reference("day", day.group(1))
    when = extract_date(text)
    if when:
        return _reference("date", when)
    return None


EXTRACTORS: Dict[str, Callable[[str], Any]] = {
    "date": extract_date,
    "time": extract_time,
    "appointment_title": extract_appointment_title,
    "location": extract_location,
    "weight": extract_weight,
    "week": extract_week,
    "limit": extract_limit,
    "symptom": extract_symptom,
    "systolic": extract_systolic,
    "diastolic": extract_diastolic,
    "medicine_name": extract_medicine_name,
    "dose": extract_dose,
    "frequency": extract_frequency,
    "discharge_type": extract_discharge_type,
    "discharge_color": extract_discharge_color,
    "bleeding": extract_bleeding,
    "task_title": extract_task_title,
    "priority": extract_priority,
    "screen": extract_screen,
    "profile_field": extract_profile_field,
    "profile_value": extract_profile_value,
    "data_type": extract_data_type,
    "note": extract_note,
    "mood": extract_mood,
    "intensity": extract_intensity,
    "sleep_duration": extract_sleep_duration,
    "bedtime": extract_bedtime,
    "wake_time": extract_wake_time,
    "sleep_quality": extract_sleep_quality,
    "metric": extract_metric,
    "timeframe": extract_timeframe,
    "chart_type": extract_chart_type,
    "action_type": extract_action_type,
    "appointment_identifier": extract_appointment_identifier,
    "record_reference": extract_record_reference,
}

# Extractor used for a slot when the catalog does not name one.
DEFAULT_BINDINGS: Dict[str, str] = {
    "title": "appointment_title",
    "week_number": "week",
    "name": "medicine_name",
    "type": "discharge_type",
    "color": "discharge_color",
    "field": "profile_field",
    "value": "profile_value",
    "duration": "sleep_duration",
    "quality": "sleep_quality",
}


def extractor_for(slot: str, override: Optional[str] = None) -> Callable[[str], Any]:
    """Return the extractor bound to ``slot``.

    Raises ``KeyError`` when neither the override nor the slot name is known.
    """

    name = override or DEFAULT_BINDINGS.get(slot, slot)
    return EXTRACTORS[name]
