"""
Vault collaborators: vault directory resolution, note enumeration and content reading.
Notes are markdown files under the vault root; a note's relpath is its identity.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

import frontmatter
import yaml

from .config import Settings, load_vault_config
from .errors import NoteNotFoundError, ReadError, VaultNotFoundError
from ..util.logging import logger

NOTE_EXTENSIONS = (".md",)


@dataclass(frozen=True)
class Vault:
    """A named root directory containing a tree of notes."""

    name: str
    path: Path


@dataclass(frozen=True)
class NoteInfo:
    """A note as produced by the enumerator."""

    title: str
    relpath: str


def resolve_vault(settings: Settings, name: str) -> Vault:
    """
    Look up a vault by name in config.yaml.

    Entries may be a plain path string or a mapping with a 'path' key.

    Raises:
        VaultNotFoundError: unknown vault or missing directory
    """
    vaults = load_vault_config(settings)
    if name not in vaults:
        raise VaultNotFoundError(f"Unknown vault '{name}'")

    entry = vaults[name]
    raw_path = entry.get("path") if isinstance(entry, dict) else entry
    if not isinstance(raw_path, str) or not raw_path.strip():
        raise VaultNotFoundError(f"Vault '{name}' is missing a valid 'path' string")

    path = Path(raw_path).expanduser()
    if not path.is_dir():
        raise VaultNotFoundError(f"Vault directory for '{name}' does not exist: {path}")
    return Vault(name=name, path=path)


# Frontmatter values PyYAML cannot construct (e.g. date: 2024-02-30) raise ValueError
FRONTMATTER_ERRORS = (yaml.YAMLError, ValueError, TypeError)


def _note_title(path: Path) -> str:
    """Frontmatter title if present, else the file stem."""
    try:
        post = frontmatter.load(str(path))
    except (OSError,) + FRONTMATTER_ERRORS:
        return path.stem
    title = post.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return path.stem


def _is_encodable(relpath: str) -> bool:
    """False for names os.walk decoded with surrogate escapes (not valid UTF-8)."""
    try:
        relpath.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def list_notes(vault: Vault) -> List[NoteInfo]:
    """
    Enumerate every note in the vault, sorted by relpath.

    Hidden files and directories (.obsidian, .git, ...) are skipped, as are
    notes whose path is not valid UTF-8.
    """
    notes = []
    for dirpath, dirnames, filenames in os.walk(vault.path):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        for filename in filenames:
            if filename.startswith(".") or not filename.endswith(NOTE_EXTENSIONS):
                continue
            path = Path(dirpath) / filename
            relpath = path.relative_to(vault.path).as_posix()
            if not _is_encodable(relpath):
                logger.warning(f"Skipping note with non UTF-8 path in vault '{vault.name}': {relpath!a}")
                continue
            notes.append(NoteInfo(title=_note_title(path), relpath=relpath))

    notes.sort(key=lambda n: n.relpath)
    return notes


def note_path(vault: Vault, relpath: str) -> Path:
    """Absolute path of a note. Does not check that the file exists."""
    return vault.path / relpath


def read_note(vault: Vault, relpath: str, strip_frontmatter: bool = True) -> str:
    """
    Read a note's text.

    Args:
        vault: Vault holding the note
        relpath: Note identity relative to the vault root
        strip_frontmatter: Return only the body when True

    Raises:
        NoteNotFoundError: relpath does not exist (or escapes the vault)
        ReadError: file exists but cannot be read or parsed
    """
    path = note_path(vault, relpath)
    try:
        path.resolve().relative_to(vault.path.resolve())
    except ValueError:
        raise NoteNotFoundError(f"Note '{relpath}' is outside vault '{vault.name}'")

    if not path.is_file():
        raise NoteNotFoundError(f"Note '{relpath}' not found in vault '{vault.name}'")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ReadError(f"Failed to read note '{relpath}': {e}")

    if not strip_frontmatter:
        return text

    try:
        return frontmatter.loads(text).content
    except FRONTMATTER_ERRORS as e:
        raise ReadError(f"Invalid frontmatter in note '{relpath}': {e}")
