"""
Process faults: hang (SIGSTOP), choking (periodic STOP/CONT) and abnormal exit (SIGKILL).
"""

import logging
import os
import signal
import threading

import psutil

from core.errors import DiscoveryError, ExecutionError, InvalidFlagError, PreconditionError
from core.models import Operation, RunArgs
from core.plugin import FaultPlugin
from faults.stress import STRESS_COMMANDS
from utils.flags import parse_duration, require

logger = logging.getLogger(__name__)


def process_pid_check(flags) -> int:
    """
    Return --pid as an int after checking the process exists.

    Raises:
        PreconditionError: Missing, malformed, or no such process
    """
    raw = require(flags, 'pid', '1234')
    try:
        pid = int(raw)
    except ValueError:
        raise InvalidFlagError('pid', raw, "not an integer")
    if pid <= 0:
        raise InvalidFlagError('pid', raw, "must be positive")
    if not psutil.pid_exists(pid):
        raise PreconditionError(f"the process: {pid} does not exist")
    return pid


def send_signal(pid: int, sig: int):
    """
    Raises:
        ExecutionError: The signal could not be delivered
    """
    try:
        os.kill(pid, sig)
    except OSError as e:
        raise ExecutionError(f"send signal {signal.Signals(sig).name} to {pid} failed: {e}")
    logger.debug(f"sent {signal.Signals(sig).name} to {pid}")


def is_stopped(pid: int) -> bool:
    try:
        return psutil.Process(pid).status() == psutil.STATUS_STOPPED
    except psutil.NoSuchProcess:
        raise PreconditionError(f"the process: {pid} does not exist")


class ProcessHang(FaultPlugin):
    fault_type = 'process-hang'
    module = 'process'

    def _prepare(self, run_args: RunArgs):
        self.pid = process_pid_check(self.flags)
        if not run_args.is_remove() and is_stopped(self.pid):
            raise PreconditionError(f"the process: {self.pid} is already stopped")

    def _inject(self, run_args: RunArgs):
        send_signal(self.pid, signal.SIGSTOP)

    def _remove(self, run_args: RunArgs):
        # SIGCONT to a running process is harmless
        send_signal(self.pid, signal.SIGCONT)


class ProcessChoking(FaultPlugin):
    """
    Alternates STOP and CONT on the target every --interval until killed.

    inject does not return: the loop runs in the foreground of the inject
    invocation, and remove finds that invocation by its command line.
    """

    fault_type = 'process-choking'
    module = 'process'
    required_commands = STRESS_COMMANDS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stop_event = threading.Event()

    def inject_search_string(self, run_args: RunArgs) -> str:
        return run_args.with_operation(Operation.INJECT).command_line()

    def _prepare(self, run_args: RunArgs):
        self.pid = process_pid_check(self.flags)

        raw = require(self.flags, 'interval', '5s')
        try:
            self.interval = parse_duration(raw)
        except ValueError as e:
            raise InvalidFlagError('interval', raw, str(e))
        if self.interval <= 0:
            raise InvalidFlagError('interval', raw, "must be at least one second")

        if run_args.is_remove():
            return
        # Our own launcher (sudo, a shell) shows the same command line
        ancestors = {parent.pid for parent in psutil.Process().parents()}
        running = [pid for pid in self.locator.find(self.inject_search_string(run_args))
                   if pid not in ancestors]
        if running:
            raise PreconditionError(f"{self.fault_type} is already running against {self.pid} (pids {running})")

    def _inject(self, run_args: RunArgs):
        logger.info(f"Choking process {self.pid} every {self.interval}s")
        try:
            while not self.stop_event.is_set():
                send_signal(self.pid, signal.SIGSTOP)
                if self.stop_event.wait(self.interval):
                    break
                send_signal(self.pid, signal.SIGCONT)
                self.stop_event.wait(self.interval)
        finally:
            try:
                os.kill(self.pid, signal.SIGCONT)
            except ProcessLookupError:
                logger.info(f"Process {self.pid} exited while choked")

    def _remove(self, run_args: RunArgs):
        search = self.inject_search_string(run_args)
        pids = self.locator.find(search)
        if not pids:
            raise DiscoveryError(f"{self.fault_type} get background running process id failed ({search})")
        self.locator.kill(pids)
        send_signal(self.pid, signal.SIGCONT)


class ProcessExitAbnormal(FaultPlugin):
    fault_type = 'process-exit-abnormal'
    module = 'process'

    def _prepare(self, run_args: RunArgs):
        if run_args.is_remove():
            return
        self.pid = process_pid_check(self.flags)

    def _inject(self, run_args: RunArgs):
        send_signal(self.pid, signal.SIGKILL)

    def _remove(self, run_args: RunArgs):
        logger.info(f"{self.fault_type} is irreversible, nothing to remove")
