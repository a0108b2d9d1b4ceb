"""
Picker backends for the selection resolver.

Every picker takes display lines and an optional initial query and returns
exactly one chosen line, or None when nothing was chosen.
"""

from abc import ABC, abstractmethod
import shlex
import subprocess
from typing import List, Optional, Sequence

from rapidfuzz import fuzz, process, utils

from ..core.config import Settings
from ..core.errors import ConfigurationError

MATCH_SCORE_CUTOFF = 50

# fzf: 1 = no match, 130 = interrupted with ESC/CTRL-C
NO_SELECTION_EXIT_CODES = (1, 130)


def rank_lines(lines: Sequence[str], query: str, limit: Optional[int] = None) -> List[str]:
    """
    Rank lines against a query, best match first.

    An empty query keeps every line in its original order. Ties keep
    their original relative order.
    """
    if not query.strip():
        lines = list(lines)
        return lines[:limit] if limit else lines

    matches = process.extract(
        query,
        lines,
        scorer=fuzz.WRatio,
        processor=utils.default_process,
        limit=limit or len(lines),
        score_cutoff=MATCH_SCORE_CUTOFF,
    )
    return [choice for choice, score, index in matches]


class NotePicker(ABC):
    """Abstract single-selection fuzzy picker."""

    @abstractmethod
    def pick(self, lines: Sequence[str], query: str = "") -> Optional[str]:
        """Return the chosen line, or None if nothing was chosen."""
        pass


class FilterPicker(NotePicker):
    """Non-interactive picker: returns the best-ranked line for the query."""

    def pick(self, lines: Sequence[str], query: str = "") -> Optional[str]:
        ranked = rank_lines(lines, query, limit=1)
        return ranked[0] if ranked else None


class CommandPicker(NotePicker):
    """Pipes the lines through an external fuzzy matcher such as fzf."""

    def __init__(self, command: str = "fzf"):
        self.command = command

    def pick(self, lines: Sequence[str], query: str = "") -> Optional[str]:
        args = shlex.split(self.command)
        if not args:
            raise ConfigurationError("Picker command is empty")
        if query:
            args += ["--query", query]

        try:
            result = subprocess.run(
                args,
                input="\n".join(lines) + "\n",
                stdout=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError:
            raise ConfigurationError(f"Picker command not found: {args[0]}")

        if result.returncode in NO_SELECTION_EXIT_CODES:
            return None
        if result.returncode != 0:
            raise ConfigurationError(f"Picker command '{args[0]}' failed with exit code {result.returncode}")

        selected = result.stdout.splitlines()
        return selected[0] if selected else None


class TextualPicker(NotePicker):
    """Interactive full-screen picker built on Textual."""

    def pick(self, lines: Sequence[str], query: str = "") -> Optional[str]:
        from ..tui.picker_app import NotePickerApp

        app = NotePickerApp(lines, initial_query=query)
        return app.run()


def get_picker(settings: Settings) -> NotePicker:
    """Get the configured interactive picker."""
    if settings.picker == "command":
        return CommandPicker(settings.picker_cmd)
    return TextualPicker()
