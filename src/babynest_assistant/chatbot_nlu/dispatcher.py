from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from statistics import mean
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from ..records import RecordStore, StoreError
from .extractors import to_calendar_date, to_clock_time
from .formatting import (
    bar_chart,
    describe_record,
    distribution_chart,
    format_number,
    numbered,
)
from .io_types import ActionResult, ParameterSet, UserContext
from .matching import match_records, record_date
from .ontology import IntentDefinition
from .policy import Policy
from .slots import is_empty
from .undo import ActionLogEntry, Creation, Deletion, UndoLog, Update

Handler = Callable[[IntentDefinition, ParameterSet, UserContext], ActionResult]

# analytics metric -> (record category, numeric field, unit)
METRICS: Dict[str, tuple] = {
    "weight": ("weight", "weight", "kg"),
    "sleep": ("sleep", "duration", "h"),
    "blood_pressure": ("blood_pressure", "systolic", ""),
    "mood": ("mood", None, ""),
    "symptoms": ("symptom", None, ""),
    "appointments": ("appointment", None, ""),
}
# label field used when counting categorical metrics
COUNT_FIELDS = {"mood": "mood", "symptom": "symptom", "appointment": "title"}
TIMEFRAME_DAYS = {"today": 1, "week": 7, "month": 30, "year": 365}

DATA_TYPES = {
    "appointments": "appointment",
    "weight": "weight",
    "symptoms": "symptom",
    "medicine": "medicine",
    "blood_pressure": "blood_pressure",
    "discharge": "discharge",
    "tasks": "task",
}


def _label(category: Optional[str]) -> str:
    return (category or "record").replace("_", " ")


@dataclass
class Dispatcher:
    """Map intent actions to record store operations."""

    store: RecordStore
    undo_log: UndoLog
    policy: Policy
    registry: Dict[str, Handler] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.registry.update(
            {
                "create_appointment": self._create_appointment,
                "log_weight": self._log_weight,
                "log_symptoms": self._log_symptoms,
                "log_blood_pressure": self._log_blood_pressure,
                "log_medicine": self._log_medicine,
                "log_discharge": self._log_discharge,
                "create_task": self._create_task,
                "log_mood": self._log_mood,
                "log_sleep": self._log_sleep,
                "query_analytics": self._query_analytics,
                "view_logs": self._view_logs,
                "get_data": self._get_data,
                "update_record": self._update_record,
                "delete_record": self._delete_record,
                "undo": self._undo,
                "navigate": self._navigate,
                "update_profile": self._update_profile,
                "emergency": self._emergency,
                "logout": self._logout,
            }
        )

    # ------------------------------------------------------------------
    def dispatch(
        self,
        intent: IntentDefinition,
        params: ParameterSet,
        user_context: Optional[UserContext] = None,
    ) -> ActionResult:
        ctx = user_context or UserContext()
        missing = [slot for slot in intent.required_slots if is_empty(params.get(slot))]
        if missing:
            return ActionResult(
                success=False,
                message=self.policy.follow_up_prompt(intent, missing),
                intent=intent.name,
                requires_follow_up=True,
                missing_fields=missing,
            )
        handler = self.registry.get(intent.action)
        if handler is None:
            return ActionResult(
                success=False,
                message="I'm not sure how to help with that. Could you try rephrasing your request?",
                intent=intent.name,
            )

        try:
            result = handler(intent, params, ctx)
        except StoreError as exc:
            logger.warning(f"{intent.name} rejected by store: {exc}")
            result = ActionResult(
                success=False,
                message=f"Failed to {intent.name.replace('_', ' ')}: {exc}",
                error=str(exc),
            )
        except Exception as exc:
            logger.exception(f"{intent.name} failed")
            result = ActionResult(
                success=False,
                message=f"Failed to execute action: {exc}",
                error=str(exc),
            )
        result.intent = intent.name

        if result.success and result.reversal is not None:
            self.undo_log.record(
                ActionLogEntry(
                    intent=intent.name,
                    parameters=dict(params),
                    message=result.message,
                    reversal=result.reversal,
                    record_ids=list(result.record_ids),
                )
            )
        logger.info(f"Dispatched {intent.name}: success={result.success}")
        return result

    # ------------------------------------------------------------------
    # Creation handlers
    # ------------------------------------------------------------------
    def _create(self, category: str, fields: Dict[str, Any], message: str, **extra: Any) -> ActionResult:
        record = self.store.create(category, fields)
        return ActionResult(
            success=True,
            message=message,
            data=record,
            record_ids=[record["id"]],
            reversal=Creation(category, record["id"]),
            **extra,
        )

    def _create_appointment(self, intent, params, ctx) -> ActionResult:
        title = params.get("title", "Appointment")
        when = to_calendar_date(params.get("date"), ctx.today())
        clock = to_clock_time(params.get("time"))
        location = params.get("location", "TBD")
        fields = {
            "title": title,
            "content": "Appointment scheduled via chat",
            "appointment_date": when,
            "appointment_time": clock,
            "appointment_location": location,
            "note": params.get("note", ""),
        }
        message = f'Appointment "{title}" scheduled for {when} at {clock}'
        if location != "TBD":
            message += f" at {location}"
        return self._create(
            "appointment", fields, message, action="navigate", screen="appointments"
        )

    def _log_weight(self, intent, params, ctx) -> ActionResult:
        weight = float(params["weight"])
        if weight <= 0:
            return ActionResult(False, "Weight must be a positive number.")
        week = params.get("week_number", ctx.current_week)
        fields = {"weight": weight, "week_number": week, "note": params.get("note", "")}
        message = f"Weight logged: {format_number(weight)}kg for week {week}"
        return self._create("weight", fields, message)

    def _log_symptoms(self, intent, params, ctx) -> ActionResult:
        week = params.get("week_number", ctx.current_week)
        fields = {
            "symptom": params["symptom"],
            "week_number": week,
            "note": params.get("note", ""),
        }
        return self._create(
            "symptom", fields, f"Symptom logged: {params['symptom']} for week {week}"
        )

    def _log_blood_pressure(self, intent, params, ctx) -> ActionResult:
        systolic, diastolic = params.get("systolic"), params.get("diastolic")
        if systolic is None or diastolic is None:
            return ActionResult(False, "Please give both values, e.g. 120/80.")
        if systolic <= 0 or diastolic <= 0 or systolic <= diastolic:
            return ActionResult(
                False,
                f"{systolic}/{diastolic} doesn't look right. The first number should be the higher one.",
            )
        week = params.get("week_number", ctx.current_week)
        clock = to_clock_time(params.get("time"))
        fields = {
            "systolic": int(systolic),
            "diastolic": int(diastolic),
            "time": clock,
            "week_number": week,
            "note": params.get("note", ""),
        }
        message = f"Blood pressure logged: {systolic}/{diastolic} at {clock} for week {week}"
        return self._create("blood_pressure", fields, message)

    def _log_medicine(self, intent, params, ctx) -> ActionResult:
        week = params.get("week_number", ctx.current_week)
        clock = to_clock_time(params.get("time"))
        fields = {
            "name": params["name"],
            "dose": params["dose"],
            "time": clock,
            "frequency": params.get("frequency", ""),
            "week_number": week,
            "note": params.get("note", ""),
        }
        message = f"Medicine logged: {params['name']} {params['dose']} at {clock}"
        if fields["frequency"]:
            message += f" ({fields['frequency']})"
        return self._create("medicine", fields, message)

    def _log_discharge(self, intent, params, ctx) -> ActionResult:
        week = params.get("week_number", ctx.current_week)
        fields = {
            "type": params["type"],
            "color": params["color"],
            "bleeding": params["bleeding"],
            "week_number": week,
            "note": params.get("note", ""),
        }
        message = (
            f"Discharge logged: {params['type']}, {params['color']}, "
            f"bleeding {params['bleeding']} for week {week}"
        )
        return self._create("discharge", fields, message)

    def _create_task(self, intent, params, ctx) -> ActionResult:
        week = params.get("week", ctx.current_week)
        priority = params.get("priority", "medium")
        fields = {
            "title": params["title"],
            "starting_week": week,
            "ending_week": week,
            "task_priority": priority,
            "note": params.get("note", ""),
        }
        message = f"Task created: {params['title']} for week {week} ({priority} priority)"
        return self._create("task", fields, message, action="navigate", screen="tasks")

    def _log_mood(self, intent, params, ctx) -> ActionResult:
        intensity = params.get("intensity", "medium")
        fields = {
            "mood": params["mood"],
            "intensity": intensity,
            "week_number": ctx.current_week,
            "note": params.get("note", ""),
        }
        message = f"Mood logged: {params['mood']} ({intensity} intensity) for week {ctx.current_week}"
        return self._create("mood", fields, message)

    def _log_sleep(self, intent, params, ctx) -> ActionResult:
        duration = float(params["duration"])
        if duration <= 0 or duration > 24:
            return ActionResult(False, "Sleep duration should be between 0 and 24 hours.")
        quality = params.get("quality", "good")
        fields = {
            "duration": duration,
            "bedtime": params.get("bedtime"),
            "wake_time": params.get("wake_time"),
            "quality": quality,
            "week_number": ctx.current_week,
            "note": params.get("note", ""),
        }
        message = f"Sleep logged: {format_number(duration)} hours"
        if fields["bedtime"]:
            message += f", bedtime {fields['bedtime']}"
        if fields["wake_time"]:
            message += f", woke at {fields['wake_time']}"
        message += f", {quality} quality"
        return self._create("sleep", fields, message)

    # ------------------------------------------------------------------
    # Read-only handlers
    # ------------------------------------------------------------------
    def _query_analytics(self, intent, params, ctx) -> ActionResult:
        metric = params["metric"]
        if metric not in METRICS:
            return ActionResult(False, f"I can't analyse {metric} yet.")
        category, value_field, unit = METRICS[metric]
        timeframe = params.get("timeframe", "week")
        chart_type = params.get("chart_type", "summary")

        records = self.store.list(category)
        if timeframe in TIMEFRAME_DAYS:
            start = ctx.today() - timedelta(days=TIMEFRAME_DAYS[timeframe] - 1)
            records = [r for r in records if record_date(r) >= start.isoformat()]

        title = _label(metric).capitalize()
        lines = [f"{title} analytics ({timeframe})", f"Total entries: {len(records)}"]
        data: Dict[str, Any] = {
            "metric": metric,
            "timeframe": timeframe,
            "chart_type": chart_type,
            "count": len(records),
        }
        if not records:
            lines.append("No data yet. Start logging to see trends!")
            return ActionResult(True, "\n".join(lines), data=data)

        if value_field:
            values = [float(r[value_field]) for r in records]
            data.update(min=min(values), max=max(values), average=round(mean(values), 1))
            lines.append(
                f"Min: {format_number(data['min'])}{unit}  "
                f"Max: {format_number(data['max'])}{unit}  "
                f"Avg: {format_number(data['average'])}{unit}"
            )
            if metric == "blood_pressure":
                diastolic = [float(r["diastolic"]) for r in records]
                data["average_diastolic"] = round(mean(diastolic), 1)
                lines.append(
                    f"Average reading: {format_number(data['average'])}/"
                    f"{format_number(data['average_diastolic'])}"
                )
            if chart_type in ("line", "bar", "pie"):
                labels = [record_date(r)[5:] for r in records]
                lines.append(bar_chart(labels, values, f"{title} ({unit or 'value'})"))
        else:
            counts = dict(Counter(str(r.get(COUNT_FIELDS[category])) for r in records))
            data["counts"] = counts
            lines.extend(f"  {label}: {count}" for label, count in counts.items())
            if chart_type == "pie":
                lines.append(distribution_chart(counts))
            elif chart_type in ("line", "bar"):
                lines.append(bar_chart(list(counts), list(counts.values()), title))
        return ActionResult(True, "\n".join(lines), data=data)

    def _view_logs(self, intent, params, ctx) -> ActionResult:
        category = intent.category
        records = self.store.list(category)
        week = params.get("week_number")
        if week is not None:
            records = [r for r in records if r.get("week_number") == week]
        limit = params.get("limit")
        if limit:
            records = records[-limit:]
        label = _label(category)
        if not records:
            return ActionResult(True, f"No {label} entries found.", data=[])
        listing = numbered([describe_record(category, r) for r in records])
        return ActionResult(
            True, f"{label.capitalize()} logs ({len(records)})\n{listing}", data=records
        )

    def _get_data(self, intent, params, ctx) -> ActionResult:
        data_type = params["data_type"]
        category = DATA_TYPES.get(data_type)
        if category is None:
            return ActionResult(False, f"I don't keep any {data_type} data.")
        records = self.store.list(category)
        week = params.get("week")
        if category == "appointment":
            if params.get("date"):
                wanted = to_calendar_date(params["date"], ctx.today())
                records = [r for r in records if r["appointment_date"] == wanted]
            else:
                today = ctx.today().isoformat()
                records = [r for r in records if r["appointment_date"] >= today]
            records.sort(key=lambda r: (r["appointment_date"], r["appointment_time"]))
        elif category == "task" and week is not None:
            records = [r for r in records if r["starting_week"] <= week <= r["ending_week"]]
        elif week is not None:
            records = [r for r in records if r.get("week_number") == week]
        label = _label(data_type)
        if not records:
            return ActionResult(True, f"You have no {label} to show.", data=[])
        listing = numbered([describe_record(category, r) for r in records])
        return ActionResult(True, f"Your {label}:\n{listing}", data=records)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------
    def _targets(
        self, intent: IntentDefinition, params: ParameterSet, ctx: UserContext, verb: str
    ) -> tuple[List[Dict[str, Any]], Optional[ActionResult]]:
        """Find the records an update or delete applies to.

        Returns the targets, or a result to hand back instead when nothing or
        more than one record matches.  A delete that names no record is always
        confirmed first, even when only one record exists.
        """

        category = intent.category
        label = _label(category)
        if "selection" in params:
            return [self.store.get(category, rid) for rid in params["selection"]], None
        records = self.store.list(category)
        if not records:
            return [], ActionResult(False, f"You don't have any {label} entries to {verb}.")
        references = [params[s] for s in intent.reference_slots if not is_empty(params.get(s))]
        targets = match_records(records, references, ctx.today())
        if not targets:
            return [], ActionResult(False, f"I couldn't find a matching {label} entry to {verb}.")
        if len(targets) > 1 or (verb == "delete" and not references):
            return targets, ActionResult(
                success=False,
                message=self.policy.selection_prompt(intent, targets),
                action="select",
                requires_follow_up=True,
                missing_fields=["record_selection"],
                candidates=targets,
            )
        return targets, None

    def _changes(self, intent: IntentDefinition, params: ParameterSet, ctx: UserContext) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for slot, column in intent.field_map.items():
            if is_empty(params.get(slot)):
                continue
            value = params[slot]
            if slot == "date":
                value = to_calendar_date(value, ctx.today())
            elif slot == "time":
                value = to_clock_time(value)
            changes[column] = value
        return changes

    def _update_record(self, intent, params, ctx) -> ActionResult:
        targets, early = self._targets(intent, params, ctx, "update")
        if early is not None:
            return early
        target = targets[0]
        category = intent.category
        changes = {
            column: value
            for column, value in self._changes(intent, params, ctx).items()
            if target.get(column) != value
        }
        if not changes:
            example = f' e.g. "{intent.tip}"' if intent.tip else ""
            return ActionResult(False, f"Tell me what to change,{example}.")
        if category == "blood_pressure":
            merged = {**target, **changes}
            if merged["systolic"] <= merged["diastolic"]:
                return ActionResult(
                    False,
                    f"{merged['systolic']}/{merged['diastolic']} doesn't look right. "
                    "The first number should be the higher one.",
                )
        previous = {column: target.get(column) for column in changes}
        updated = self.store.update(category, target["id"], changes)
        return ActionResult(
            success=True,
            message=f"Updated {_label(category)} entry: {describe_record(category, updated)}",
            data=updated,
            record_ids=[target["id"]],
            reversal=Update(category, target["id"], previous),
        )

    def _delete_record(self, intent, params, ctx) -> ActionResult:
        targets, early = self._targets(intent, params, ctx, "delete")
        if early is not None:
            return early
        category = intent.category
        removed = self.store.delete_many(category, [t["id"] for t in targets])
        if len(removed) == 1:
            message = f"Deleted {_label(category)} entry: {describe_record(category, removed[0])}"
        else:
            message = f"Deleted {len(removed)} {_label(category)} entries."
        return ActionResult(
            success=True,
            message=message,
            data=removed,
            record_ids=[r["id"] for r in removed],
            reversal=Deletion(category, tuple(removed)),
        )

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------
    def _undo(self, intent, params, ctx) -> ActionResult:
        outcome = self.undo_log.undo_last(params.get("action_type"))
        record_ids = outcome.entry.record_ids if outcome.entry and outcome.success else []
        return ActionResult(outcome.success, outcome.message, action="undo", record_ids=record_ids)

    def _navigate(self, intent, params, ctx) -> ActionResult:
        screen = params["screen"]
        return ActionResult(
            True, f"Opening {_label(screen)}...", action="navigate", screen=screen
        )

    def _update_profile(self, intent, params, ctx) -> ActionResult:
        field_name = params["field"]
        value = params.get("value")
        if is_empty(value):
            return ActionResult(
                False,
                f'What should your {_label(field_name)} be? Try "change my {_label(field_name)} to ..."',
            )
        if field_name == "due_date":
            value = to_calendar_date(value, ctx.today())
        self.store.save_profile({field_name: value})
        return ActionResult(
            True,
            f"Updated your {_label(field_name)} to {value}.",
            action="navigate",
            screen="settings",
        )

    def _emergency(self, intent, params, ctx) -> ActionResult:
        return ActionResult(
            True,
            "Emergency mode activated. If you are in danger, call your local "
            "emergency number or go to the nearest hospital right away.",
            action="emergency",
        )

    def _logout(self, intent, params, ctx) -> ActionResult:
        self.store.delete_profile()
        return ActionResult(True, "Logging out... Goodbye!", action="logout")
