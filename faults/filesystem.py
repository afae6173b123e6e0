"""
Filesystem faults: I/O overload, inode exhaustion and space exhaustion of a mount point.
"""

import logging
import os
import shlex
import threading
from pathlib import Path
from typing import Optional

import psutil

from core.errors import DiscoveryError, ExecutionError, PreconditionError
from core.events import EventType
from core.exhaustion import ExhaustionPool, default_workers
from core.models import ExhaustionJob, ExhaustionReport, Operation, RemovalReport, RunArgs
from core.plugin import FaultPlugin
from faults.stress import STRESS_COMMANDS, StressFault
from utils.flags import require

logger = logging.getLogger(__name__)


def find_mount_point(path: str):
    """Return the psutil partition entry mounted exactly at `path`, or None."""
    for partition in psutil.disk_partitions(all=True):
        if partition.mountpoint == path:
            return partition
    return None


def mount_point_check(flags) -> str:
    """
    Validate --path as an existing, writable mount point.

    Raises:
        PreconditionError: Missing, not a mount point, or mounted read-only
    """
    raw = require(flags, 'path', '/mnt/data')
    if not os.path.exists(raw):
        raise PreconditionError(f"input mount point path: {raw} not exist")

    path = os.path.normpath(os.path.abspath(raw))
    partition = find_mount_point(path)
    if partition is None:
        raise PreconditionError(f"path: {path} not a mount point")
    if 'ro' in partition.opts.split(','):
        raise PreconditionError(f"mount point: {path} is read-only")
    return path


class FilesystemIoOverload(StressFault):
    fault_type = 'filesystem-io-overload'
    module = 'filesystem'
    required_commands = ('nice',) + STRESS_COMMANDS


class MountPointInodeExhaustion(FaultPlugin):
    """Fills the mount's inode table with empty files from a worker pool."""

    fault_type = 'filesystem-mountpoint-inode-exhaustion'
    module = 'filesystem'
    required_commands = STRESS_COMMANDS

    statvfs = staticmethod(os.statvfs)

    def __init__(self, *args, cancel: Optional[threading.Event] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.cancel = cancel
        self.job: Optional[ExhaustionJob] = None
        self.report: Optional[ExhaustionReport] = None
        self.removal: Optional[RemovalReport] = None

    def make_pool(self) -> ExhaustionPool:
        return ExhaustionPool(
            self.job,
            files_per_dir=self.config.exhaustion_files_per_dir,
            statvfs=self.statvfs,
            cancel=self.cancel,
            events=self.events,
            show_progress=self.config.show_progress
        )

    def inject_search_string(self, run_args: RunArgs) -> str:
        """Command line of a running inject for the same mount point."""
        return (f"{run_args.executable} {Operation.INJECT.value} {self.module} "
                f"{self.fault_type} --path {self.flags['path']}")

    def _prepare(self, run_args: RunArgs):
        mount_point = Path(mount_point_check(self.flags))
        self.job = ExhaustionJob(
            mount_point=mount_point,
            test_dir=mount_point / self.config.exhaustion_test_dir,
            workers=default_workers(self.config.exhaustion_worker_multiplier)
        )
        if not run_args.is_remove() and self.job.test_dir.exists():
            raise PreconditionError(
                f"{mount_point} has already been injected {self.fault_type} "
                f"({self.job.test_dir} exists)"
            )

    def _inject(self, run_args: RunArgs):
        logger.info(f"Exhausting inodes of {self.job.mount_point} with {self.job.workers} workers")
        self.report = self.make_pool().fill()

    def _remove(self, run_args: RunArgs):
        # An inject may still be running; stop it before deleting under it
        self.locator.kill_matching(self.inject_search_string(run_args))

        if not self.job.test_dir.is_dir():
            raise DiscoveryError(f"test directory {self.job.test_dir} not found, nothing to remove")
        self.removal = self.make_pool().drain()
        if self.removal.errors:
            logger.warning(f"{len(self.removal.errors)} test directories needed the final sweep")


class MountPointSpaceFull(FaultPlugin):
    """Writes a zero-filled image as large as the mount point with a detached dd."""

    fault_type = 'filesystem-mountpoint-space-full'
    module = 'filesystem'
    required_commands = ('df', 'dd') + STRESS_COMMANDS

    def size_mb(self, mount_point: str) -> int:
        """Total size of the mount point in MiB, as reported by df."""
        output = self.runner.run(f"df -P -m {shlex.quote(mount_point)} | awk 'NR==2 {{print $2}}'")
        try:
            return int(output.strip())
        except ValueError:
            raise PreconditionError(f"get mount point: {mount_point} size info failed: {output.strip()!r}")

    def _prepare(self, run_args: RunArgs):
        self.mount_point = mount_point_check(self.flags)
        self.image = os.path.join(self.mount_point, f"{self.fault_type}-image")
        self.dd_command = f"dd if=/dev/zero of={self.image} bs=1M count={self.size_mb(self.mount_point)}"

        if not run_args.is_remove() and os.path.exists(self.image):
            raise PreconditionError(f"path: {self.mount_point} has been injected: {self.fault_type} fault")

    def _inject(self, run_args: RunArgs):
        pid = self.runner.run_detached(self.dd_command)
        self.events.emit(EventType.PROCESS_LAUNCHED, "dd launched",
                         context={'command': self.dd_command, 'pids': [pid]})

    def _remove(self, run_args: RunArgs):
        killed = self.locator.kill_matching(self.dd_command)
        if killed:
            self.events.emit(EventType.PROCESS_KILLED, "dd killed",
                             context={'search': self.dd_command, 'pids': killed})

        if os.path.exists(self.image):
            try:
                os.remove(self.image)
            except OSError as e:
                raise ExecutionError(f"remove file: {self.image} error: {e}")
        elif not killed:
            raise DiscoveryError(f"neither a running dd nor the image {self.image} was found")
