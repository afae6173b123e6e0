"""
Shared base for faults driven by the external stress tool.
"""

import os
import re
from typing import Optional, Sequence

from core.errors import InvalidFlagError, PreconditionError
from core.models import RunArgs, SupervisedProcess
from core.plugin import FaultPlugin
from core.supervisor import StressToolSupervisor

# Commands needed to find and kill the detached tool again
STRESS_COMMANDS = ('kill', 'ps', 'grep', 'awk')

_NICE_VALUE = re.compile(r'^-?\d+$')


class StressFault(FaultPlugin):
    """A fault whose inject launches the stress tool and whose remove kills it."""

    required_commands = STRESS_COMMANDS
    # Appended to every command line after the user's flags
    private_args: Sequence[str] = ()

    supervisor: Optional[StressToolSupervisor] = None
    process: Optional[SupervisedProcess] = None

    def tool_path(self, run_args: RunArgs) -> str:
        path = self.config.stress_tool_path
        if os.path.isabs(path):
            return path
        return os.path.join(self.executable_dir(run_args), path)

    def _prepare(self, run_args: RunArgs):
        nice = self.flags.get('nice')
        if nice is not None and not _NICE_VALUE.match(nice):
            raise InvalidFlagError('nice', nice, "not an integer")

        self.supervisor = StressToolSupervisor(
            self.runner,
            self.locator,
            self.tool_path(run_args),
            validation_duration=self.config.validation_duration,
            events=self.events
        )
        self.supervisor.ensure_executable()
        self.process = self.supervisor.plan(run_args.flags_string, nice, self.private_args)

        if run_args.is_remove():
            return

        running = self.locator.find(self.process.search_string)
        if running:
            raise PreconditionError(
                f"{self.fault_type} has already been injected with these flags (pids {running})"
            )
        self.supervisor.validate(self.process)

    def _inject(self, run_args: RunArgs):
        self.supervisor.launch(self.process)

    def _remove(self, run_args: RunArgs):
        self.supervisor.destroy(self.process)
