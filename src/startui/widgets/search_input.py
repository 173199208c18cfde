"""Search input widget for filtering data and entering commands."""

from textual.widgets import Input
from textual.message import Message


class SearchInput(Input):
    """Input widget specialized for search/filtering.

    Text starting with ``:`` is a command and is only reported on submit.
    """

    class FilterChanged(Message):
        """Message sent when filter text changes."""

        def __init__(self, filter_text: str) -> None:
            super().__init__()
            self.filter_text = filter_text

    class CommandSubmitted(Message):
        """Message sent when a ':' command is submitted."""

        def __init__(self, command_text: str) -> None:
            super().__init__()
            self.command_text = command_text

    def __init__(self, **kwargs):
        super().__init__(placeholder="Type to filter, ':' for commands...", **kwargs)

    def on_input_changed(self, event: Input.Changed) -> None:
        """Handle input changes and emit filter message."""
        if event.value.startswith(":"):
            return
        self.post_message(self.FilterChanged(event.value))

    def submit_command(self) -> bool:
        """Emit the typed ':' command and clear the input."""
        if not self.value.startswith(":"):
            return False
        self.post_message(self.CommandSubmitted(self.value))
        self.value = ""
        return True
