"""
Note selection: fuzzy pickers and resolution of a chosen display line to a note path.
"""

from .pickers import NotePicker, FilterPicker, CommandPicker, TextualPicker, get_picker, rank_lines
from .resolver import format_display_line, parse_display_line, select_line, resolve

__all__ = [
    'NotePicker',
    'FilterPicker',
    'CommandPicker',
    'TextualPicker',
    'get_picker',
    'rank_lines',
    'format_display_line',
    'parse_display_line',
    'select_line',
    'resolve',
]
