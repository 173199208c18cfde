"""Parse ':' commands typed into the TUI input."""

import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class CommandType(Enum):
    FUNCTION = "function"
    BACK = "back"
    REFRESH = "refresh"
    CLUSTER = "cluster"
    QUIT = "quit"
    HELP = "help"
    UNKNOWN = "unknown"


@dataclass
class ParsedCommand:
    command_type: CommandType
    args: List[str]
    raw_input: str
    error: Optional[str] = None


# command -> (argument count, argument label, usage)
_ARITY: Dict[CommandType, Tuple[int, str, str]] = {
    CommandType.FUNCTION: (1, "name", ":function <name> (or :f) - Open a system function or custom query"),
    CommandType.BACK: (0, "", ":back (or :b)            - Go up one level"),
    CommandType.REFRESH: (0, "", ":refresh (or :r)         - Reload the current level"),
    CommandType.CLUSTER: (1, "id", ":cluster <id> (or :c)    - Switch the active cluster"),
    CommandType.QUIT: (0, "", ":quit (or :q)            - Exit application"),
    CommandType.HELP: (0, "", ":help (or :?)            - Show this help"),
}


class CommandParser:
    """Turns ``:name args...`` into a ``ParsedCommand``; errors are reported, never raised."""

    ALIASES = {
        "f": "function",
        "fn": "function",
        "b": "back",
        "r": "refresh",
        "c": "cluster",
        "q": "quit",
        "?": "help",
    }

    def parse(self, input_text: str) -> ParsedCommand:
        raw = input_text.strip()
        if not raw:
            return self._invalid(raw, "Empty command")
        if not raw.startswith(":"):
            return self._invalid(raw, "Commands must start with ':'")
        if not raw[1:].strip():
            return self._invalid(raw, "No command after ':'")

        try:
            name, *args = shlex.split(raw[1:])
        except ValueError as e:
            return self._invalid(raw, f"Invalid command syntax: {e}")

        word = name.lower()
        try:
            command_type = CommandType(self.ALIASES.get(word, word))
        except ValueError:
            command_type = CommandType.UNKNOWN
        if command_type is CommandType.UNKNOWN:
            return ParsedCommand(CommandType.UNKNOWN, args, raw, f"Unknown command: {word}")

        return ParsedCommand(command_type, args, raw, self._check_args(command_type, args))

    @staticmethod
    def _invalid(raw_input: str, error: str) -> ParsedCommand:
        return ParsedCommand(CommandType.UNKNOWN, [], raw_input, error)

    @staticmethod
    def _check_args(command_type: CommandType, args: List[str]) -> Optional[str]:
        count, label, _ = _ARITY[command_type]
        if count == 0 and args:
            return f"{command_type.value} command does not accept arguments"
        if count and len(args) != count:
            return f"{command_type.value} command requires exactly one {label} argument"
        if command_type is CommandType.CLUSTER and not args[0].isdigit():
            return f"cluster id must be a number, got '{args[0]}'"
        return None

    def get_help_text(self) -> str:
        usage = "\n".join(entry[2] for entry in _ARITY.values())
        return (
            "Command Mode Help:\n\n"
            f"{usage}\n\n"
            "Filter Mode:\n"
            "Type directly (without :) to filter the current table, case-insensitive\n\n"
            "Keys:\n"
            "↑↓ - Move between rows\n"
            "Enter - Open function / drill into the underlined column\n"
            "Esc - Go back\n"
        )
