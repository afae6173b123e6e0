"""
System-level faults: magic SysRq actions, service stop/restart and clock jumps.
"""

import datetime
import logging
import os
import shlex

from colorama import Fore, Style

from core.errors import DiscoveryError, ExecutionError, InvalidFlagError, PreconditionError
from core.models import RunArgs
from core.plugin import FaultPlugin
from utils.flags import parse_duration, require

logger = logging.getLogger(__name__)

SYSRQ_TRIGGER = '/proc/sysrq-trigger'

# `service <name> status` exit codes (LSB)
SERVICE_INACTIVE = 3
SERVICE_UNKNOWN = 4

TIME_DIRECTIONS = ('backwards', 'forwards')


class SysrqFault(FaultPlugin):
    """Writes one SysRq key to the trigger file. The effect cannot be undone."""

    module = 'system'
    required_commands = ('echo',)
    sysrq_key = ''
    trigger_path = SYSRQ_TRIGGER

    def _prepare(self, run_args: RunArgs):
        if not os.path.exists(self.trigger_path):
            raise PreconditionError(f"can't find file: {self.trigger_path}")

    def _inject(self, run_args: RunArgs):
        self.runner.run(f"echo {self.sysrq_key} > {self.trigger_path}")

    def _remove(self, run_args: RunArgs):
        logger.info(f"{self.fault_type} is irreversible, nothing to remove")


class SystemOom(SysrqFault):
    fault_type = 'system-oom'
    sysrq_key = 'f'


class SystemPanic(SysrqFault):
    fault_type = 'system-panic'
    sysrq_key = 'c'


class SystemRebootAbnormal(SysrqFault):
    fault_type = 'system-reboot-abnormal'
    sysrq_key = 'b'


class SystemFileSystemsReadonly(SysrqFault):
    """Remounts every filesystem read-only; only a reboot brings them back."""

    fault_type = 'system-file-systems-readonly'
    sysrq_key = 'u'

    def commands_for(self, run_args: RunArgs):
        if run_args.is_remove():
            return ('reboot',)
        return self.required_commands

    def _prepare(self, run_args: RunArgs):
        if not run_args.is_remove():
            super()._prepare(run_args)

    def _remove(self, run_args: RunArgs):
        print(f"{Fore.YELLOW}The system will reboot immediately{Style.RESET_ALL}")
        logger.warning("Rebooting to restore read-write file systems")
        self.runner.run("reboot")


class ServiceFault(FaultPlugin):
    """Drives `service <name> <op>`."""

    module = 'system'
    required_commands = ('service',)

    def command(self, op: str) -> str:
        return f"service {shlex.quote(self.service_name)} {op}"

    def check_active(self):
        """
        Raises:
            PreconditionError: Service inactive, unknown, or status failed
        """
        try:
            self.runner.run(self.command('status'))
        except ExecutionError as e:
            if e.returncode == SERVICE_INACTIVE:
                raise PreconditionError(f"the service {self.service_name} is in inactive status")
            if e.returncode == SERVICE_UNKNOWN:
                raise PreconditionError(f"no such service {self.service_name}")
            raise PreconditionError(f"check service status failed: {e}")

    def _prepare(self, run_args: RunArgs):
        self.service_name = require(self.flags, 'name', 'nginx')
        if not run_args.is_remove():
            self.check_active()


class SystemServiceStop(ServiceFault):
    fault_type = 'system-service-stop'

    def _inject(self, run_args: RunArgs):
        self.runner.run(self.command('stop'))

    def _remove(self, run_args: RunArgs):
        try:
            self.runner.run(self.command('status'))
        except ExecutionError as e:
            if e.returncode == SERVICE_UNKNOWN:
                raise DiscoveryError(f"no such service {self.service_name}")
        else:
            raise DiscoveryError(f"the service {self.service_name} is already running")
        self.runner.run(self.command('start'))


class SystemServiceRestart(ServiceFault):
    fault_type = 'system-service-restart'

    def _inject(self, run_args: RunArgs):
        self.runner.run(self.command('restart'))

    def _remove(self, run_args: RunArgs):
        logger.info(f"{self.fault_type} has nothing to remove")


class SystemTimeJump(FaultPlugin):
    """Moves the system clock by --interval; remove resyncs it from the hardware clock."""

    fault_type = 'system-time-jump'
    module = 'system'
    required_commands = ('date', 'hwclock')

    def _prepare(self, run_args: RunArgs):
        if run_args.is_remove():
            return
        self.direction = require(self.flags, 'direction', 'forwards')
        if self.direction not in TIME_DIRECTIONS:
            raise InvalidFlagError('direction', self.direction, f"expected one of {list(TIME_DIRECTIONS)}")

        raw = require(self.flags, 'interval', '10s')
        try:
            self.offset = datetime.timedelta(seconds=parse_duration(raw))
        except ValueError as e:
            raise InvalidFlagError('interval', raw, str(e))

    def target_time(self, now: datetime.datetime) -> datetime.datetime:
        if self.direction == 'backwards':
            return now - self.offset
        return now + self.offset

    def _inject(self, run_args: RunArgs):
        target = self.target_time(datetime.datetime.now())
        self.runner.run(f"date -s '{target:%Y-%m-%d %H:%M:%S}'")
        logger.info(f"System clock set to {target}")

    def _remove(self, run_args: RunArgs):
        self.runner.run("hwclock -s")
