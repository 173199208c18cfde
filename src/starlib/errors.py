"""Error types and user-facing error formatting for starctl."""

from __future__ import annotations

from typing import Any, Optional


class FetchFailure(RuntimeError):
    """Transport or backend failure while loading data from the console API."""

    def __init__(self, operation: str, detail: str, status: Optional[int] = None) -> None:
        self.operation = operation
        self.detail = detail
        self.status = status
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"{operation} failed: {prefix}{detail}")


def format_error_message(operation: str, error: Exception, context: dict[str, Any] | None = None) -> str:
    """Format a user-friendly error message based on the exception type and context."""
    error_str = str(error)
    context = context or {}
    status = getattr(error, "status", None)

    # Connection-related errors
    if "connection" in error_str.lower() or "timeout" in error_str.lower() or "timed out" in error_str.lower():
        profile_name = context.get("profile", "console")
        return (
            f"Failed to connect to {profile_name}. "
            f"Please check that the console API is running and reachable. "
            f"Original error: {error_str}"
        )

    # Authentication errors
    if status in (401, 403) or any(
        word in error_str.lower() for word in ["auth", "unauthorized", "forbidden", "token"]
    ):
        return (
            f"Authentication failed. Please check the API token for this profile. "
            f"Original error: {error_str}"
        )

    # No active cluster on the console side
    if "no active cluster" in error_str.lower():
        return (
            "No active cluster is selected on the console. "
            "Use 'starctl clusters activate <id>' first. "
            f"Original error: {error_str}"
        )

    # Function or level not found
    if status == 404 or "not found" in error_str.lower() or "does not exist" in error_str.lower():
        function_name = context.get("function")
        if function_name:
            path = context.get("path")
            level = f"{function_name}/{path}" if path else function_name
            return (
                f"System function level '{level}' not found. "
                f"Use 'starctl functions list' to see available functions. "
                f"Original error: {error_str}"
            )
        return f"Resource not found while trying to {operation}. Original error: {error_str}"

    # FE proc endpoint errors (show_proc)
    if "show_proc" in error_str.lower():
        return (
            f"The frontend rejected the introspection request. "
            f"The function may not support this path on the current cluster version. "
            f"Original error: {error_str}"
        )

    # Generic error with helpful context
    return f"Failed to {operation}: {error_str}"


def suggest_troubleshooting_steps(operation: str, error: Exception) -> list[str]:
    """Suggest troubleshooting steps based on the operation and error."""
    error_str = str(error).lower()
    status = getattr(error, "status", None)
    suggestions = []

    if "connection" in error_str or "timeout" in error_str or "timed out" in error_str:
        suggestions.extend([
            "Check that the console backend is running",
            "Verify the profile url points at the API root, e.g. http://localhost:8080/api",
            "Ensure correct STARCTL_CONFIG path is set",
        ])

    elif status in (401, 403) or "auth" in error_str or "token" in error_str:
        suggestions.extend([
            "Log in to the console and copy a fresh token into your profile",
            "Check that ${STARCTL_TOKEN} is exported if your config references it",
        ])

    elif status == 404 or "not found" in error_str:
        if "function" in operation.lower():
            suggestions.extend([
                "List available functions: starctl functions list --all",
                "Check the function name spelling",
                "Drill paths are only valid for functions that support nesting",
            ])
        else:
            suggestions.extend([
                "List clusters: starctl clusters list",
                "Activate a cluster: starctl clusters activate <id>",
            ])

    if not suggestions:
        suggestions.extend([
            "Check the logs with -v/--verbose flag for more details",
            "Verify your configuration file is correct",
            "Check the console backend logs for the failing request",
        ])

    return suggestions


def format_config_error(error: Exception) -> str:
    """Format configuration-related error messages."""
    error_str = str(error)

    if "no config file found" in error_str.lower():
        return (
            "No configuration file found. Please either:\n"
            "  • Set STARCTL_CONFIG=/path/to/config.yaml, or\n"
            "  • Create ~/.config/starctl/config.yaml\n"
            "\n"
            "See the README for configuration examples."
        )

    if "profile not found" in error_str.lower() or "no profile specified" in error_str.lower():
        return (
            f"Profile configuration error: {error_str}\n"
            "Check your config file and ensure the profile is properly defined."
        )

    return f"Configuration error: {error_str}"
