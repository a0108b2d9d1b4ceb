"""
Selection resolver: render notes as "<title> | <relpath>" display lines,
take one fuzzy selection and resolve it to an absolute note path.

Backslashes and pipes inside titles and relpaths are escaped, so the
" | " delimiter appears exactly once in every rendered line.
"""

from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from ..core.config import Settings
from ..core.errors import EmptyVaultError, MalformedSelectionError, NoSelectionError
from ..core.vault import NoteInfo, Vault, list_notes, note_path, resolve_vault
from ..util.logging import logger
from .pickers import NotePicker

DELIMITER = " | "


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("|", "\\|")


def _unescape(text: str) -> str:
    out = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            out.append(next(chars, "\\"))
        else:
            out.append(ch)
    return "".join(out)


def format_display_line(note: NoteInfo) -> str:
    return f"{_escape(note.title)}{DELIMITER}{_escape(note.relpath)}"


def build_display_lines(notes: Sequence[NoteInfo]) -> Dict[str, NoteInfo]:
    """Map each rendered display line to its note, preserving note order."""
    return {format_display_line(note): note for note in notes}


def parse_display_line(line: str) -> Tuple[str, str]:
    """
    Split a display line into (title, relpath).

    Raises:
        MalformedSelectionError: the line does not contain exactly one
            unescaped delimiter, or the relpath part is empty
    """
    line = line.rstrip("\r\n")

    pipes = []
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "|":
            pipes.append(i)

    if len(pipes) != 1:
        raise MalformedSelectionError(f"Invalid selection format: '{line}'")

    pos = pipes[0]
    if line[pos - 1:pos + 2] != DELIMITER:
        raise MalformedSelectionError(f"Invalid selection format: '{line}'")

    title = _unescape(line[:pos - 1])
    relpath = _unescape(line[pos + 2:]).strip()
    if not relpath:
        raise MalformedSelectionError(f"Selection has no note path: '{line}'")
    return title, relpath


def select_line(lines: Sequence[str], picker: NotePicker, query: str = "") -> str:
    """
    Present display lines to a picker and return the single chosen line.

    Raises:
        NoSelectionError: the user cancelled or the matcher returned nothing
    """
    selected = picker.pick(list(lines), query)
    if not selected:
        raise NoSelectionError("No note selected")
    return selected


def resolve_selection(vault: Vault, selected: str, candidates: Dict[str, NoteInfo] = None) -> Path:
    """Turn a chosen display line into the absolute path of its note."""
    note = candidates.get(selected.rstrip("\r\n")) if candidates else None
    if note is not None:
        relpath = note.relpath
    else:
        # Line came back reformatted (e.g. from an external matcher)
        _, relpath = parse_display_line(selected)
    return note_path(vault, relpath)


def resolve(settings: Settings, vault_name: str, picker: NotePicker, query: str = "") -> Path:
    """
    Enumerate the vault, take one selection and return the note's absolute path.

    The note list is always freshly enumerated; the file is not checked for existence.

    Raises:
        EmptyVaultError: the vault has no notes
        NoSelectionError: nothing was chosen
        MalformedSelectionError: the chosen line cannot be parsed
    """
    vault = resolve_vault(settings, vault_name)
    notes = list_notes(vault)
    if not notes:
        raise EmptyVaultError(f"No notes found in vault '{vault_name}'")

    candidates = build_display_lines(notes)
    logger.log_selection_event(vault_name, "present", details={"candidates": len(candidates), "query": query})

    try:
        selected = select_line(list(candidates), picker, query)
    except NoSelectionError:
        logger.log_selection_event(vault_name, "cancel", "skipped")
        raise

    path = resolve_selection(vault, selected, candidates)
    logger.log_selection_event(vault_name, "commit", details={"selected": selected})
    return path
