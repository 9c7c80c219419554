"""Resolve loose references ("the checkup", "yesterday", "last") to records."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .extractors import WEEKDAYS, to_calendar_date, to_clock_time

Record = Dict[str, Any]


def record_date(record: Record) -> str:
    """Calendar date a record belongs to (``YYYY-MM-DD``)."""

    if record.get("appointment_date"):
        return str(record["appointment_date"])
    return str(record.get("created_at", ""))[:10]


def record_time(record: Record) -> Optional[str]:
    return record.get("appointment_time") or record.get("time") or None


def _weekday(day: str) -> Optional[str]:
    try:
        return WEEKDAYS[date.fromisoformat(day).weekday()]
    except ValueError:
        return None


def _contains(field: Any, value: str) -> bool:
    return isinstance(field, str) and value.lower() in field.lower()


def _match_one(records: Sequence[Record], reference: Any, today: date) -> List[Record]:
    if isinstance(reference, str):
        reference = {"type": "name", "value": reference}
    kind, value = reference.get("type"), str(reference.get("value", "")).lower()

    if kind == "relative":
        if value == "first":
            return list(records[:1])
        if value == "second":
            return list(records[1:2])
        if value == "last":
            return list(records[-1:])
        kind = "date"
    if kind == "title":
        return [r for r in records if _contains(r.get("title"), value)]
    if kind == "location":
        return [r for r in records if _contains(r.get("appointment_location"), value)]
    if kind == "name":
        return [
            r for r in records
            if _contains(r.get("name"), value) or _contains(r.get("title"), value)
        ]
    if kind == "day":
        return [r for r in records if _weekday(record_date(r)) == value]
    if kind == "date":
        wanted = to_calendar_date(value, today)
        return [r for r in records if record_date(r) == wanted]
    if kind == "time":
        wanted = to_clock_time(value)
        return [r for r in records if record_time(r) == wanted]
    return []


def match_records(
    records: Sequence[Record],
    references: Sequence[Any],
    today: Optional[date] = None,
) -> List[Record]:
    """Return the records satisfying every reference.

    With no references every record is a candidate.
    """

    today = today or date.today()
    matched = list(records)
    for reference in references:
        if reference is None:
            continue
        matched = _match_one(matched, reference, today)
    return matched
