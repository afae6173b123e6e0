"""
Exception taxonomy for hostfault.

Every failure a fault plugin can report falls into one of these buckets.
The CLI maps each bucket to its own exit code and remedy text.
"""

from typing import Optional


class FaultError(Exception):
    """Base class for all fault lifecycle errors."""
    exit_code = 1


class PreconditionError(FaultError):
    """Raised by prepare() when the fault cannot be applied. Nothing was mutated."""
    exit_code = 2


class MissingCommandError(PreconditionError):
    """A required OS command is not on PATH."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"missing command: {command}")


class MissingFlagError(PreconditionError):
    """A required --flag was not supplied."""

    def __init__(self, flag: str, example: Optional[str] = None):
        self.flag = flag
        message = f"please input param: --{flag}"
        if example:
            message += f" (example: --{flag} {example})"
        super().__init__(message)


class InvalidFlagError(PreconditionError):
    """A --flag value could not be converted or is out of range."""

    def __init__(self, flag: str, value: str, reason: str):
        self.flag = flag
        self.value = value
        super().__init__(f"invalid --{flag} value {value!r}: {reason}")


class ExecutionError(FaultError):
    """An external command returned non-zero or could not be started."""
    exit_code = 3

    def __init__(self, message: str, command: Optional[str] = None,
                 returncode: Optional[int] = None, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        details = message
        if command:
            details += f" (command: {command}"
            if returncode is not None:
                details += f", exit status {returncode}"
            details += ")"
        if output:
            details += f" result: {output.strip()}"
        super().__init__(details)


class DiscoveryError(FaultError):
    """Something expected to exist for removal (process, backup, target) was not found."""
    exit_code = 4


# Exit status used when the exhaustion teardown cannot clean up its test root.
FATAL_EXIT_CODE = 70
