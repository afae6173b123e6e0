"""
Fault plugin contract.

Every fault type is a FaultPlugin subclass with a three-phase lifecycle:

    UNPREPARED --prepare--> READY --inject--> INJECTED --remove--> REMOVED
                            READY --remove--> REMOVED

prepare() validates everything (flags, OS commands, target state) before any
mutation. inject() performs the one mutating action. remove() reverses it and
may run in a different process than inject(), so subclasses re-derive what
they need from disk or from the process table instead of instance state.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence

from core.config import Config
from core.errors import PreconditionError
from core.events import EventEmitter, MemoryEmitter
from core.locator import ProcessLocator, make_locator
from core.models import FaultState, Operation, RunArgs
from utils.command import CommandRunner
from utils.system_check import SystemCheck

logger = logging.getLogger(__name__)


class FaultPlugin(ABC):
    """Base class for all fault types."""

    # Registry key, e.g. 'cpu-overload'
    fault_type: str = ''
    # CLI module the fault belongs to, e.g. 'cpu'
    module: str = ''
    # OS commands checked before any mutation
    required_commands: Sequence[str] = ()

    def __init__(
        self,
        config: Optional[Config] = None,
        runner: Optional[CommandRunner] = None,
        system_check: Optional[SystemCheck] = None,
        locator: Optional[ProcessLocator] = None,
        events: Optional[EventEmitter] = None
    ):
        self.config = config or Config()
        self.runner = runner or CommandRunner(timeout=self.config.command_timeout_seconds)
        self.system_check = system_check or SystemCheck()
        self.locator = locator or make_locator(self.config.process_locator, self.runner)
        self.events = events or MemoryEmitter()

        self.state = FaultState.UNPREPARED
        self.run_args: Optional[RunArgs] = None
        self.flags: Dict[str, str] = {}

    def commands_for(self, run_args: RunArgs) -> Sequence[str]:
        """OS commands this invocation depends on."""
        return self.required_commands

    def prepare(self, run_args: RunArgs):
        """
        Validate the invocation and capture what inject/remove need.

        Raises:
            PreconditionError: The fault cannot be applied or removed
        """
        if self.state is not FaultState.UNPREPARED:
            raise PreconditionError(f"{self.fault_type} has already been prepared")

        self.system_check.require(self.commands_for(run_args))
        self.run_args = run_args
        self.flags = run_args.flags
        self._prepare(run_args)
        self.state = FaultState.READY
        logger.info(f"{self.fault_type}: prepared for {run_args.operation}")

    def inject(self, run_args: RunArgs):
        """
        Apply the fault.

        Raises:
            PreconditionError: Not prepared, or already injected by this instance
        """
        if self.state is FaultState.INJECTED:
            raise PreconditionError(f"{self.fault_type} has already been injected")
        if self.state is not FaultState.READY:
            raise PreconditionError(f"{self.fault_type} must be prepared before inject")

        self._inject(run_args)
        self.state = FaultState.INJECTED
        logger.info(f"{self.fault_type}: injected")

    def remove(self, run_args: RunArgs):
        """
        Reverse the fault.

        Raises:
            PreconditionError: Not prepared
            DiscoveryError: Nothing to remove
        """
        if self.state not in (FaultState.READY, FaultState.INJECTED):
            raise PreconditionError(f"{self.fault_type} must be prepared before remove")

        self._remove(run_args)
        self.state = FaultState.REMOVED
        logger.info(f"{self.fault_type}: removed")

    @property
    def is_inject(self) -> bool:
        return self.run_args is not None and self.run_args.operation == Operation.INJECT.value

    @staticmethod
    def executable_dir(run_args: RunArgs) -> str:
        """Directory of the running executable, as invoked."""
        return os.path.dirname(os.path.abspath(run_args.executable))

    @abstractmethod
    def _prepare(self, run_args: RunArgs):
        """Validate and capture state. Must not mutate the host."""

    @abstractmethod
    def _inject(self, run_args: RunArgs):
        """Perform the mutating action."""

    @abstractmethod
    def _remove(self, run_args: RunArgs):
        """Undo the mutating action."""
