"""Text rendering for records and analytics."""

from __future__ import annotations

from typing import Any, Dict, Sequence

BAR = "█"


def format_number(value: Any) -> str:
    """Render ``65.0`` as ``65`` and ``65.25`` as ``65.2``."""

    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.1f}"
    return str(value)


def describe_record(category: str, record: Dict[str, Any]) -> str:
    if category == "appointment":
        text = (
            f"{record.get('title', 'Appointment')} on {record.get('appointment_date')}"
            f" at {record.get('appointment_time')}"
        )
        location = record.get("appointment_location")
        if location and location != "TBD":
            text += f" ({location})"
        return text
    if category == "task":
        return (
            f"{record.get('title')} (weeks {record.get('starting_week')}-"
            f"{record.get('ending_week')}, {record.get('task_priority')} priority)"
        )
    created = str(record.get("created_at", ""))[:10]
    week = record.get("week_number")
    if category == "weight":
        text = f"{format_number(record.get('weight'))}kg"
    elif category == "symptom":
        text = str(record.get("symptom"))
    elif category == "medicine":
        text = f"{record.get('name')} {record.get('dose', '')}".strip()
        if record.get("time"):
            text += f" at {record['time']}"
    elif category == "blood_pressure":
        text = f"{record.get('systolic')}/{record.get('diastolic')}"
    elif category == "discharge":
        text = f"{record.get('type')}, {record.get('color')}"
    elif category == "mood":
        text = f"{record.get('mood')} ({record.get('intensity')})"
    elif category == "sleep":
        text = f"{format_number(record.get('duration'))} hours, {record.get('quality')}"
    else:
        text = str({k: v for k, v in record.items() if k not in ("id", "created_at")})
    if week:
        text = f"Wk {week}: {text}"
    if record.get("note"):
        text += f" - {record['note']}"
    return f"{text} [{created}]" if created else text


def numbered(lines: Sequence[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


def bar_chart(labels: Sequence[Any], values: Sequence[float], title: str, width: int = 30) -> str:
    """Horizontal text bar chart scaled to the largest value."""

    if not values:
        return title
    top = max(values) or 1
    rows = [title]
    for label, value in zip(labels, values):
        bar = BAR * max(1, round(value / top * width))
        rows.append(f"{str(label):<10} {bar} {format_number(value)}")
    return "\n".join(rows)


def distribution_chart(counts: Dict[str, int]) -> str:
    """Percentage share of each label, one row per label."""

    total = sum(counts.values())
    if not total:
        return ""
    rows = []
    for label, count in counts.items():
        pct = count / total * 100
        rows.append(f"{label:<15} {BAR * round(pct / 3)} {pct:.1f}%")
    return "\n".join(rows)
