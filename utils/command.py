"""
Shell command execution for hostfault.
Runs commands either blocking (output captured) or detached (fire and forget).
"""

import logging
import subprocess
from typing import Optional

from core.errors import ExecutionError


class CommandRunner:
    """Executes shell commands in the two modes the fault plugins need."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize the runner.

        Args:
            timeout: Seconds a blocking command may run before it is treated
                as failed. None waits forever.
        """
        self.timeout = timeout

    def run(self, command: str) -> str:
        """
        Run a command and wait for it to exit.

        Args:
            command: Shell command line

        Returns:
            Combined stdout and stderr

        Raises:
            ExecutionError: Non-zero exit, timeout, or the shell could not start
        """
        logging.debug(f"exec (blocking): {command}")
        try:
            result = subprocess.run(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            output = e.output if isinstance(e.output, str) else ""
            raise ExecutionError(f"command timed out after {self.timeout}s",
                                 command=command, output=output)
        except OSError as e:
            raise ExecutionError(f"command could not be started: {e}", command=command)

        if result.returncode != 0:
            raise ExecutionError("command failed", command=command,
                                 returncode=result.returncode, output=result.stdout or "")
        return result.stdout or ""

    def run_detached(self, command: str) -> int:
        """
        Start a command in its own session and return without waiting.

        Args:
            command: Shell command line

        Returns:
            PID of the launched process (the shell, or the command it execs)

        Raises:
            ExecutionError: The shell could not be started
        """
        logging.debug(f"exec (detached): {command}")
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True
            )
        except OSError as e:
            raise ExecutionError(f"command could not be started: {e}", command=command)
        return process.pid
