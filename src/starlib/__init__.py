"""Core library for the StarRocks operator console.

Contains configuration loading, the console REST client and the system
function navigation engine shared by the CLI and the TUI.
"""

__all__ = [
    "clients",
    "config",
    "context",
    "errors",
    "execution",
    "functions",
    "navigation",
    "render_spec",
    "schema",
]
