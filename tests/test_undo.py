import pytest
from loguru import logger

from babynest_assistant.chatbot_nlu.undo import (
    ActionLogEntry,
    Creation,
    Deletion,
    UndoLog,
    Update,
    apply_inverse,
)
from babynest_assistant.records import StoreError


def _entry(reversal, intent="log_weight"):
    return ActionLogEntry(intent=intent, parameters={}, message="", reversal=reversal)


def test_undo_creation_removes_only_that_record(store, undo_log):
    keep = store.create("weight", {"weight": 60, "week_number": 11})
    new = store.create("weight", {"weight": 65, "week_number": 12})
    undo_log.record(_entry(Creation("weight", new["id"])))

    result = undo_log.undo_last()
    assert result.success
    assert result.message == f"Undone: removed weight entry #{new['id']}."
    assert store.list("weight") == [keep]
    assert result.entry.undone

    again = undo_log.undo_last()
    assert not again.success
    assert again.message == "Nothing to undo."


def test_undo_update_restores_previous_fields(store, undo_log):
    record = store.create("mood", {"mood": "sad", "week_number": 12})
    store.update("mood", record["id"], {"mood": "happy", "intensity": "high"})
    undo_log.record(
        _entry(Update("mood", record["id"], {"mood": "sad", "intensity": "medium"}), "update_mood")
    )

    assert undo_log.undo_last().success
    assert store.get("mood", record["id"]) == record


def test_undo_deletion_brings_back_every_record(store, undo_log):
    a = store.create("symptom", {"symptom": "nausea", "week_number": 12})
    b = store.create("symptom", {"symptom": "headache", "week_number": 12})
    removed = store.delete_many("symptom", [a["id"], b["id"]])
    undo_log.record(_entry(Deletion("symptom", tuple(removed)), "delete_symptoms"))

    result = undo_log.undo_last()
    assert result.success
    assert "#1, #2" in result.message
    assert store.list("symptom") == [a, b]


def test_undo_by_category_skips_other_entries(store, undo_log):
    weight = store.create("weight", {"weight": 65, "week_number": 12})
    mood = store.create("mood", {"mood": "calm", "week_number": 12})
    undo_log.record(_entry(Creation("weight", weight["id"])))
    undo_log.record(_entry(Creation("mood", mood["id"]), "log_mood"))

    result = undo_log.undo_last("weight")
    assert result.success
    assert store.list("weight") == []
    assert store.list("mood") == [mood]

    missing = undo_log.undo_last("weight")
    assert missing.message == "Nothing to undo for weight."


def test_failed_inverse_leaves_entry_untouched(store, undo_log, caplog):
    undo_log.record(_entry(Creation("weight", 99)))

    log_id = logger.add(caplog.handler, level="INFO")
    result = undo_log.undo_last()
    logger.remove(log_id)

    assert not result.success
    assert result.message.startswith("Couldn't undo the last action")
    assert not undo_log.entries[-1].undone
    assert any("failed" in r.getMessage() for r in caplog.records)


def test_capacity_evicts_oldest(store):
    log = UndoLog(store, capacity=50)
    for i in range(51):
        log.record(_entry(Creation("weight", i + 1)))
    assert len(log) == 50
    assert log.entries[0].reversal.record_id == 2
    assert log.entries[-1].reversal.record_id == 51


def test_unknown_reversal_raises(store):
    with pytest.raises(TypeError):
        apply_inverse(store, object())


def test_store_error_from_restore_is_reported(store, undo_log, monkeypatch):
    record = store.create("weight", {"weight": 65, "week_number": 12})
    removed = store.delete("weight", record["id"])
    undo_log.record(_entry(Deletion("weight", (removed,)), "delete_weight"))

    def broken(category, records):
        raise StoreError("locked")

    monkeypatch.setattr(store, "restore", broken)
    result = undo_log.undo_last()
    assert not result.success
    assert "locked" in result.message
    assert store.list("weight") == []
