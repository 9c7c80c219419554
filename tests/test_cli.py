from typer.testing import CliRunner

from babynest_assistant.cli import app
from babynest_assistant.records import DEFAULT_TASKS

runner = CliRunner()


def test_classify_shows_intent_and_slots():
    result = runner.invoke(app, ["classify", "log weight 65kg for week 12"])
    assert result.exit_code == 0
    assert "intent: log_weight" in result.output
    assert "weight: 65.0" in result.output
    assert "week_number: 12" in result.output


def test_classify_reports_missing_slots():
    result = runner.invoke(app, ["classify", "make an appointment"])
    assert "missing: title, date, time, location" in result.output


def test_seed_and_list_tasks(tmp_path):
    db = str(tmp_path / "babynest.db")
    first = runner.invoke(app, ["seed-tasks", "--db", db])
    assert first.exit_code == 0
    assert f"Added {len(DEFAULT_TASKS)} default tasks." in first.output

    second = runner.invoke(app, ["seed-tasks", "--db", db])
    assert "nothing to do" in second.output

    listing = runner.invoke(app, ["records", "task", "--db", db])
    assert "Initial Prenatal Visit" in listing.output


def test_records_rejects_unknown_category(tmp_path):
    result = runner.invoke(app, ["records", "diary", "--db", str(tmp_path / "x.db")])
    assert result.exit_code != 0


def test_chat_loop(tmp_path):
    db = str(tmp_path / "babynest.db")
    result = runner.invoke(
        app, ["chat", "--offline", "--db", db], input="log weight 65kg\nexit\n"
    )
    assert result.exit_code == 0
    assert "Weight logged: 65kg" in result.output

    listing = runner.invoke(app, ["records", "weight", "--db", db])
    assert "65kg" in listing.output
