"""
Process location by command-line text.

Inject and remove run as separate invocations, so a background process is
never tracked through a handle. It is found again by searching the process
table for the exact command text it was started with.

Matching is full-word: the search string must appear in a command line with
no word character (letter, digit, underscore) touching either end of the
match. `/opt/stress-ng --cpu 4` therefore matches
`/opt/stress-ng --cpu 4` but not `/opt/stress-ng --cpu 40`.
"""

import logging
import os
import re
import shlex
from abc import ABC, abstractmethod
from typing import Iterable, List

import psutil

from core.errors import ExecutionError
from utils.command import CommandRunner

logger = logging.getLogger(__name__)

_WORD_CHAR = re.compile(r'\w')


def matches_full_word(line: str, search: str) -> bool:
    """
    Return True if `search` occurs in `line` as a whole word sequence.

    Same rule as `grep -F -w`: every occurrence is tried, and one is accepted
    when the character before it (if any) and the character after it (if any)
    are both non-word characters.
    """
    if not search:
        return False
    start = line.find(search)
    while start != -1:
        end = start + len(search)
        before_ok = start == 0 or not _WORD_CHAR.match(line[start - 1])
        after_ok = end == len(line) or not _WORD_CHAR.match(line[end])
        if before_ok and after_ok:
            return True
        start = line.find(search, start + 1)
    return False


class ProcessLocator(ABC):
    """Finds and kills processes by full-word command-line match."""

    @abstractmethod
    def find(self, search: str) -> List[int]:
        """Return PIDs whose command line matches `search` (may be empty)."""

    @abstractmethod
    def kill(self, pids: Iterable[int]):
        """
        SIGKILL every pid. Any failure fails the whole call.

        Raises:
            ExecutionError: At least one pid could not be killed
        """

    def kill_matching(self, search: str) -> List[int]:
        """Find and kill every match. Returns the killed pids."""
        pids = self.find(search)
        if pids:
            self.kill(pids)
            logger.info(f"Killed {len(pids)} process(es) matching '{search}': {pids}")
        return pids


class ShellProcessLocator(ProcessLocator):
    """Uses `ps aux | grep -v grep | grep -F -w ... | awk` through the command runner."""

    def __init__(self, runner: CommandRunner = None):
        self.runner = runner or CommandRunner()

    @staticmethod
    def build_query(search: str) -> str:
        """Shell pipeline that prints the pid of every matching process."""
        return (f"ps aux | grep -v grep | grep -F -w -e {shlex.quote(search)} "
                f"| awk '{{print $2}}'")

    def find(self, search: str) -> List[int]:
        output = self.runner.run(self.build_query(search))
        own_pid = os.getpid()
        pids = []
        for line in output.split():
            if not line.isdigit():
                continue
            pid = int(line)
            if pid != own_pid and pid not in pids:
                pids.append(pid)
        return pids

    def kill(self, pids: Iterable[int]):
        pids = list(pids)
        if not pids:
            return
        self.runner.run("kill -9 " + " ".join(str(pid) for pid in pids))


class PsutilProcessLocator(ProcessLocator):
    """Same matching rule, evaluated in-process with psutil."""

    def find(self, search: str) -> List[int]:
        own_pid = os.getpid()
        pids = []
        for proc in psutil.process_iter(['pid', 'cmdline']):
            cmdline = proc.info.get('cmdline') or []
            if proc.info['pid'] == own_pid or not cmdline:
                continue
            if matches_full_word(' '.join(cmdline), search):
                pids.append(proc.info['pid'])
        return pids

    def kill(self, pids: Iterable[int]):
        for pid in pids:
            try:
                psutil.Process(pid).kill()
            except psutil.NoSuchProcess:
                logger.info(f"Process {pid} already exited")
            except psutil.AccessDenied as e:
                raise ExecutionError(f"permission denied killing process {pid}: {e}")


def make_locator(name: str, runner: CommandRunner = None) -> ProcessLocator:
    """Build the locator selected by the `process_locator` config key."""
    if name == 'psutil':
        return PsutilProcessLocator()
    if name == 'ps':
        return ShellProcessLocator(runner)
    raise ValueError(f"unknown process locator: {name}")
