"""
Core configuration, error taxonomy and vault collaborators.
"""

from .config import Settings, load_settings
from .errors import NotemancyError
from .vault import NoteInfo, Vault, list_notes, read_note, resolve_vault

__all__ = [
    'Settings',
    'load_settings',
    'NotemancyError',
    'NoteInfo',
    'Vault',
    'list_notes',
    'read_note',
    'resolve_vault',
]
