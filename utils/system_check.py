"""
System command validation for hostfault.
Checks that the OS commands a fault relies on are available before anything
is mutated.
"""

import shutil
from typing import Dict, Iterable, List, Optional
from colorama import Fore, Style

from core.errors import MissingCommandError


class SystemCheck:
    """Validates availability of the external commands faults shell out to."""

    REQUIRED_COMMANDS = {
        'echo': 'sysfs and sysrq writes',
        'kill': 'stopping background fault processes',
        'ps': 'locating background fault processes',
        'grep': 'locating background fault processes',
        'awk': 'locating background fault processes',
        'nice': 'stress tool priority',
        'df': 'mount point size',
        'dd': 'filling a mount point',
        'date': 'clock skew',
        'hwclock': 'clock restore',
        'service': 'service stop/start/restart',
        'reboot': 'restoring read-write file systems',
    }

    def __init__(self, which=shutil.which):
        """
        Args:
            which: Lookup function with the shutil.which signature (swappable in tests)
        """
        self._which = which

    def check_command(self, command: str) -> bool:
        """Return True if `command` resolves on PATH."""
        return self._which(command) is not None

    def find_missing(self, commands: Iterable[str]) -> Optional[str]:
        """
        Return the first command that is not available, or None.

        Args:
            commands: Command names in the order they should be reported
        """
        for command in commands:
            if not self.check_command(command):
                return command
        return None

    def require(self, commands: Iterable[str]):
        """
        Raise MissingCommandError naming the first unavailable command.

        Raises:
            MissingCommandError: A command is not on PATH
        """
        missing = self.find_missing(commands)
        if missing is not None:
            raise MissingCommandError(missing)

    def check_all_commands(self) -> Dict[str, bool]:
        """Check every known command."""
        return {command: self.check_command(command) for command in self.REQUIRED_COMMANDS}

    def display_command_status(self, status: Dict[str, bool]) -> List[str]:
        """
        Print one status line and return the missing commands.

        Args:
            status: Dictionary from check_all_commands()
        """
        parts = []
        missing = []
        for command, available in status.items():
            if available:
                parts.append(f"{Fore.GREEN}{command}: OK{Style.RESET_ALL}")
            else:
                parts.append(f"{Fore.RED}{command}: MISSING{Style.RESET_ALL}")
                missing.append(command)
        print(" | ".join(parts))
        for command in missing:
            print(f"{Fore.YELLOW}  {command} is used for {self.REQUIRED_COMMANDS[command]}{Style.RESET_ALL}")
        return missing
