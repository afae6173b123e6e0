"""
CPU faults: overload through the stress tool, and taking CPUs offline through sysfs.
"""

import logging
import os
from typing import Dict, List

from core.errors import DiscoveryError, InvalidFlagError, PreconditionError
from core.models import RunArgs
from core.plugin import FaultPlugin
from faults.stress import STRESS_COMMANDS, StressFault
from utils.flags import parse_cpu_list, require

logger = logging.getLogger(__name__)


class CpuOverload(StressFault):
    fault_type = 'cpu-overload'
    module = 'cpu'
    required_commands = ('nice',) + STRESS_COMMANDS


class CpuOffline(FaultPlugin):
    """Writes 0 (inject) or 1 (remove) to each listed CPU's `online` control file."""

    fault_type = 'cpu-offline'
    module = 'cpu'
    required_commands = ('echo',)

    sysfs_root = '/sys/devices/system/cpu'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.cpu_ids: List[int] = []

    def control_path(self, cpu_id: int) -> str:
        return os.path.join(self.sysfs_root, f"cpu{cpu_id}", "online")

    def online_states(self) -> Dict[int, str]:
        """Current content of each control file ('0' or '1')."""
        states = {}
        for cpu_id in self.cpu_ids:
            with open(self.control_path(cpu_id)) as f:
                states[cpu_id] = f.read().strip()
        return states

    def _prepare(self, run_args: RunArgs):
        raw = require(self.flags, 'cpuid', '1,3-4')
        try:
            self.cpu_ids = parse_cpu_list(raw)
        except ValueError as e:
            raise InvalidFlagError('cpuid', raw, str(e))

        for cpu_id in self.cpu_ids:
            path = self.control_path(cpu_id)
            if not os.path.exists(path):
                raise PreconditionError(f"can not find offline control file path: {path}")

        if run_args.is_remove():
            return
        offline = [cpu_id for cpu_id, state in self.online_states().items() if state == '0']
        if offline:
            raise PreconditionError(f"cpu {offline} already offline")

    def _write(self, value: str):
        for cpu_id in self.cpu_ids:
            self.runner.run(f"echo {value} > {self.control_path(cpu_id)}")
            logger.info(f"cpu{cpu_id} online <- {value}")

    def _inject(self, run_args: RunArgs):
        self._write('0')

    def _remove(self, run_args: RunArgs):
        if all(state == '1' for state in self.online_states().values()):
            raise DiscoveryError(f"cpu {self.cpu_ids} not offline, nothing to remove")
        self._write('1')
