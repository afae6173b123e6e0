"""
Supervision of the external stress tool.

The tool runs detached and outlives the invocation that started it. Removal
happens in a later invocation, so the process is found again by the exact
command text it was launched with. When the tool was wrapped in
`nice -n N`, the process table shows the tool without the prefix, so a
separate search string is kept for that case.
"""

import logging
import os
import re
import stat
from typing import List, Optional, Sequence

from core.errors import DiscoveryError, ExecutionError, PreconditionError
from core.events import EventEmitter, EventType, MemoryEmitter
from core.locator import ProcessLocator
from core.models import SupervisedProcess
from utils.command import CommandRunner

logger = logging.getLogger(__name__)

NICE_FLAG_PATTERN = re.compile(r'--nice\s+-?\d+')
_SPACES = re.compile(r' {2,}')

TOOL_EXEC_PERMISSION = 0o755


def strip_nice(flags_string: str) -> str:
    """Remove `--nice <int>` from a flag string and normalize spacing."""
    stripped = NICE_FLAG_PATTERN.sub('', flags_string)
    return _SPACES.sub(' ', stripped).strip()


def build_supervised_process(
    tool_path: str,
    flags_string: str,
    nice: Optional[str] = None,
    private_args: Sequence[str] = ()
) -> SupervisedProcess:
    """
    Build the launch command and the search string for one tool run.

    Args:
        tool_path: Full path of the stress tool
        flags_string: Raw flag tokens joined by spaces
        nice: Value of the --nice flag, if given
        private_args: Extra arguments always appended (e.g. --vm-keep)

    Returns:
        SupervisedProcess with `nice -n N` only on the launch command
    """
    parts = [tool_path]
    forwarded = strip_nice(flags_string)
    if forwarded:
        parts.append(forwarded)
    if private_args:
        parts.append(' '.join(private_args))
    search_string = ' '.join(parts)

    if nice:
        command = f"nice -n {nice} {search_string}"
    else:
        command = search_string
    return SupervisedProcess(command=command, search_string=search_string, nice=nice or None)


class StressToolSupervisor:
    """Permission bootstrap, validation run, detached launch and teardown of the stress tool."""

    def __init__(
        self,
        runner: CommandRunner,
        locator: ProcessLocator,
        tool_path: str,
        validation_duration: str = '4s',
        events: Optional[EventEmitter] = None
    ):
        self.runner = runner
        self.locator = locator
        self.tool_path = tool_path
        self.validation_duration = validation_duration
        self.events = events or MemoryEmitter()

    def ensure_executable(self):
        """
        Set mode 0755 on the tool if it has no execute bit.

        Raises:
            PreconditionError: The tool cannot be stat'ed or chmod'ed
        """
        try:
            mode = os.stat(self.tool_path).st_mode
        except OSError as e:
            raise PreconditionError(f"get {self.tool_path} info failed: {e}")

        if mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH) == 0:
            try:
                os.chmod(self.tool_path, TOOL_EXEC_PERMISSION)
            except OSError as e:
                raise PreconditionError(f"chmod {self.tool_path} failed: {e}")
            logger.info(f"Set execute permission on {self.tool_path}")

    def plan(self, flags_string: str, nice: Optional[str] = None,
             private_args: Sequence[str] = ()) -> SupervisedProcess:
        return build_supervised_process(self.tool_path, flags_string, nice, private_args)

    def validate(self, process: SupervisedProcess):
        """
        Run the command briefly in the foreground to check its arguments.

        Raises:
            PreconditionError: The trial run exited non-zero
        """
        trial = f"{process.command} -t {self.validation_duration}"
        try:
            self.runner.run(trial)
        except ExecutionError as e:
            raise PreconditionError(f"run stress-ng test program failed: {e}")

    def launch(self, process: SupervisedProcess) -> int:
        """
        Start the command detached.

        Raises:
            ExecutionError: The command could not be started
        """
        pid = self.runner.run_detached(process.command)
        logger.info(f"Launched '{process.command}' (launcher pid {pid})")
        self.events.emit(
            EventType.PROCESS_LAUNCHED,
            "stress tool launched",
            context={'command': process.command, 'pids': [pid]}
        )
        return pid

    def destroy(self, process: SupervisedProcess) -> List[int]:
        """
        Kill every process matching the search string.

        Returns:
            Killed pids

        Raises:
            DiscoveryError: No running process matches
            ExecutionError: A matching process could not be killed
        """
        pids = self.locator.find(process.search_string)
        if not pids:
            raise DiscoveryError(
                f"failed to obtain pid of stress-ng process running in the background "
                f"(search: {process.search_string})"
            )
        self.locator.kill(pids)
        logger.info(f"Killed stress tool process(es) {pids}")
        self.events.emit(
            EventType.PROCESS_KILLED,
            "stress tool killed",
            context={'search': process.search_string, 'pids': pids}
        )
        return pids
