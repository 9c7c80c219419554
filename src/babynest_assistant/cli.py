"""Command line entry points for the journal assistant."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from colorama import Fore, Style, init
from loguru import logger

from . import config
from .chatbot_nlu.formatting import describe_record, numbered
from .chatbot_nlu.io_types import UserContext
from .chatbot_nlu.nlu import IntentClassifier
from .chatbot_nlu.ontology import Ontology
from .chatbot_nlu.slots import SlotFiller
from .llm_providers import OpenAICompatResponder, StaticResponder
from .records import CATEGORIES, SQLiteRecordStore, seed_default_tasks
from .session import ChatSession

app = typer.Typer(help="BabyNest pregnancy journal assistant")

DB_OPTION = typer.Option(None, "--db", help="SQLite database path (or set BABYNEST_DB_PATH)")


def _open_store(db: Optional[Path]) -> SQLiteRecordStore:
    path = db or config.DB_PATH
    logger.debug(f"Opening record store at {path}")
    return SQLiteRecordStore(path)


@app.command()
def chat(
    db: Optional[Path] = DB_OPTION,
    week: int = typer.Option(config.DEFAULT_WEEK, help="Current pregnancy week"),
    offline: bool = typer.Option(False, help="Never call the chat endpoint"),
) -> None:
    """Talk to the assistant. Type ``exit`` or ``quit`` to leave."""

    init(autoreset=True)
    store = _open_store(db)
    if offline or not config.OPENAI_API_KEY:
        responder = StaticResponder()
    else:
        responder = OpenAICompatResponder()
    session = ChatSession(store, responder, user_context=UserContext(current_week=week))

    while True:
        try:
            user = input(f"{Fore.CYAN}you>{Style.RESET_ALL} ").strip()
        except (EOFError, KeyboardInterrupt):
            typer.echo()
            break
        if not user:
            continue
        if user.lower() in {"exit", "quit"}:
            break
        result = session.handle(user)
        colour = Fore.GREEN if result.success else Fore.YELLOW
        typer.echo(f"{colour}babynest>{Style.RESET_ALL} {result.message}")
    store.close()


@app.command()
def classify(text: str = typer.Argument(..., help="Utterance to classify")) -> None:
    """Show the intent and slots the assistant reads from ``text``."""

    ontology = Ontology(config.INTENTS_PATH)
    result = IntentClassifier(ontology, config.CONFIDENCE_FLOOR).classify(text)
    typer.echo(f"intent: {result.name} ({result.confidence:.3f})")
    if result.intent.action == "general_chat":
        return
    filler = SlotFiller()
    params = filler.extract(text, result.intent)
    for slot, value in params.items():
        typer.echo(f"  {slot}: {value}")
    missing = filler.missing_slots(params, result.intent)
    if missing:
        typer.echo(f"missing: {', '.join(missing)}")


@app.command()
def records(
    category: str = typer.Argument(..., help=f"One of: {', '.join(CATEGORIES)}"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """List stored entries of one category."""

    if category not in CATEGORIES:
        raise typer.BadParameter(f"unknown category {category!r}", param_hint="CATEGORY")
    store = _open_store(db)
    rows = store.list(category)
    store.close()
    if not rows:
        typer.echo(f"No {category.replace('_', ' ')} entries.")
        return
    typer.echo(numbered([f"#{row['id']} {describe_record(category, row)}" for row in rows]))


@app.command("seed-tasks")
def seed_tasks(db: Optional[Path] = DB_OPTION) -> None:
    """Install the default prenatal checklist if no task exists yet."""

    store = _open_store(db)
    created = seed_default_tasks(store)
    store.close()
    if created:
        typer.echo(f"Added {created} default tasks.")
    else:
        typer.echo("Tasks already present, nothing to do.")


if __name__ == "__main__":  # pragma: no cover - CLI entry
    app()
