"""
Interactive fuzzy note picker.
Type to narrow the candidate list, Enter commits the highlighted line, Escape cancels.
"""

from typing import List, Optional, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Input, OptionList, Static

from ..selection.pickers import rank_lines


class NotePickerApp(App[Optional[str]]):
    """Single-selection picker. Returns the chosen display line, or None on cancel."""

    CSS = """
    #query {
        dock: top;
    }
    #status {
        dock: bottom;
        height: 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("down", "cursor_down", "Next", show=False),
        Binding("up", "cursor_up", "Previous", show=False),
    ]

    def __init__(self, lines: Sequence[str], initial_query: str = ""):
        super().__init__()
        self._lines: List[str] = list(lines)
        self._initial_query = initial_query
        self._matches: List[str] = []

    def compose(self) -> ComposeResult:
        yield Input(value=self._initial_query, placeholder="Search notes...", id="query")
        yield OptionList(id="candidates")
        yield Static(id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_candidates(self._initial_query)
        self.query_one("#query", Input).focus()

    def refresh_candidates(self, query: str) -> None:
        """Re-rank the candidate list for the current query."""
        self._matches = rank_lines(self._lines, query)
        option_list = self.query_one("#candidates", OptionList)
        option_list.clear_options()
        option_list.add_options([Text(line) for line in self._matches])
        if self._matches:
            option_list.highlighted = 0
        self.query_one("#status", Static).update(f"{len(self._matches)}/{len(self._lines)}")

    def on_input_changed(self, event: Input.Changed) -> None:
        self.refresh_candidates(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        highlighted = self.query_one("#candidates", OptionList).highlighted
        if highlighted is None or not self._matches:
            return
        self.exit(self._matches[highlighted])

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.exit(self._matches[event.option_index])

    def action_cursor_down(self) -> None:
        self.query_one("#candidates", OptionList).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#candidates", OptionList).action_cursor_up()

    def action_cancel(self) -> None:
        self.exit(None)
