"""Top-level package for babynest_assistant.

Subpackages are loaded lazily when first accessed so importing the package
does not open databases or read the intent catalog.
"""
from importlib import import_module
from types import ModuleType
from typing import TYPE_CHECKING

__all__ = ["chatbot_nlu", "cli", "config", "llm_providers", "records", "session"]


def __getattr__(name: str) -> ModuleType:
    """Dynamically import one of the known submodules."""
    if name in __all__:
        return import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from . import chatbot_nlu, cli, config, llm_providers, records, session  # noqa: F401
