"""
Clear, actionable error message formatting.

All error messages follow the pattern:
  ERROR: [What failed]
    Reason: [Why it failed]
    Action: [What user should do]
    Location: [Where the problem is]
"""

from pathlib import Path
from typing import Optional

from core.errors import (
    DiscoveryError,
    ExecutionError,
    FaultError,
    MissingCommandError,
    MissingFlagError,
    PreconditionError,
)


def format_error(
    what_failed: str,
    reason: str,
    action: str,
    location: Optional[Path] = None,
    details: Optional[str] = None
) -> str:
    """
    Format a clear, actionable error message.

    Args:
        what_failed: What operation failed (e.g., "Failed to inject cpu-overload")
        reason: Why it failed (e.g., "missing command: nice")
        action: What user should do (e.g., "Install coreutils")
        location: Where the problem occurred (file path, mount point, etc.)
        details: Optional additional details

    Returns:
        Formatted error message
    """
    lines = [f"ERROR: {what_failed}"]
    lines.append(f"  Reason: {reason}")
    lines.append(f"  Action: {action}")

    if location:
        lines.append(f"  Location: {location}")

    if details:
        lines.append(f"  Details: {details}")

    return "\n".join(lines)


def format_command_error(error: ExecutionError, operation: str, fault_type: str) -> str:
    """Format a failed external command, truncating long output."""
    details = None
    if error.output:
        output = error.output.strip()
        details = output[:500] + "..." if len(output) > 500 else output

    reason = "command failed"
    if error.returncode is not None:
        reason += f" with exit status {error.returncode}"
    if error.command is None:
        reason = str(error)

    return format_error(
        what_failed=f"Failed to {operation} {fault_type}",
        reason=reason,
        action="Check the command output and that you are running as root",
        location=error.command,
        details=details
    )


def format_fault_error(error: FaultError, operation: str, fault_type: str,
                       location: Optional[str] = None) -> str:
    """
    Format any lifecycle error with a remedy matching its category.

    Args:
        error: Raised by prepare/inject/remove
        operation: 'inject' or 'remove'
        fault_type: Fault that failed
        location: Target path, pid or mount point, if known
    """
    if isinstance(error, ExecutionError):
        return format_command_error(error, operation, fault_type)

    if isinstance(error, MissingCommandError):
        action = f"Install '{error.command}' or add it to PATH"
    elif isinstance(error, MissingFlagError):
        action = f"Pass --{error.flag} <value>"
    elif isinstance(error, PreconditionError):
        action = "Fix the flags or the target state; nothing was changed"
    elif isinstance(error, DiscoveryError):
        action = "Check that the fault was injected with the same flags"
    else:
        action = "See the log file for details"

    return format_error(
        what_failed=f"Failed to {operation} {fault_type}",
        reason=str(error),
        action=action,
        location=location
    )
