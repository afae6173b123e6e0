"""
Concurrent inode exhaustion.

fill() runs rounds of W workers. Each worker claims a directory from the
shared DirectoryLedger and creates empty files in it until the per-directory
cap or ENOSPC. A round closes only when all W workers have reported; then
the mount's free inode count decides whether another round starts.

drain() mirrors fill(): test directories are removed in batches of W
(dirNum // W full batches, then one partial batch of dirNum % W), and the
test root is removed last.
"""

import errno
import logging
import os
import re
import shutil
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional

import psutil

from core.errors import FATAL_EXIT_CODE, ExecutionError
from core.events import EventEmitter, EventSeverity, EventType, MemoryEmitter
from core.models import ExhaustionJob, ExhaustionReport, RemovalReport, WorkerResult
from utils.progress import ProgressTracker

logger = logging.getLogger(__name__)

DIR_PREFIX = 'arsenal_dir_'
FILE_PREFIX = 'test_'

_DIR_INDEX = re.compile(rf'^{DIR_PREFIX}(\d+)$')


def default_workers(multiplier: int = 2) -> int:
    """Worker count for this host: multiplier x logical CPUs."""
    return multiplier * (psutil.cpu_count() or 1)


def batch_sizes(total: int, workers: int) -> List[int]:
    """Split `total` into full batches of `workers` plus one partial batch."""
    full, partial = divmod(total, workers)
    sizes = [workers] * full
    if partial:
        sizes.append(partial)
    return sizes


def _dir_sort_key(path: Path):
    match = _DIR_INDEX.match(path.name)
    return (0, int(match.group(1)), '') if match else (1, 0, path.name)


class ExhaustionPool:
    """Fixed-size worker fan-out that fills and drains one test directory."""

    def __init__(
        self,
        job: ExhaustionJob,
        files_per_dir: int = 10000,
        statvfs: Callable = os.statvfs,
        cancel: Optional[threading.Event] = None,
        events: Optional[EventEmitter] = None,
        show_progress: bool = False
    ):
        """
        Args:
            job: Mount point, test root, worker count and ledger
            files_per_dir: Cap on files created per directory
            statvfs: Function with the os.statvfs signature, read after every round
            cancel: When set, no further round is started
            events: Event sink for round and drain events
            show_progress: Show a progress bar while draining
        """
        if job.workers < 1:
            raise ValueError(f"worker count must be positive, got {job.workers}")
        self.job = job
        self.files_per_dir = files_per_dir
        self.statvfs = statvfs
        self.cancel = cancel
        self.events = events or MemoryEmitter()
        self.show_progress = show_progress

    def free_inodes(self) -> int:
        return self.statvfs(str(self.job.mount_point)).f_ffree

    def _fill_one(self) -> WorkerResult:
        """Claim a directory and fill it with empty files."""
        _, path = self.job.ledger.claim(self.job.test_dir, DIR_PREFIX)
        try:
            os.mkdir(path)
        except OSError as e:
            if e.errno == errno.ENOSPC:
                return WorkerResult(path, exhausted=True, created=False)
            return WorkerResult(path, error=f"mkdir {path}: {e}", created=False)

        created = 0
        for i in range(self.files_per_dir):
            try:
                fd = os.open(path / f"{FILE_PREFIX}{i}", os.O_CREAT | os.O_WRONLY | os.O_EXCL, 0o644)
                os.close(fd)
            except OSError as e:
                if e.errno == errno.ENOSPC:
                    return WorkerResult(path, exhausted=True, files=created)
                return WorkerResult(path, files=created, error=f"create in {path}: {e}")
            created += 1
        return WorkerResult(path, files=created)

    def fill(self) -> ExhaustionReport:
        """
        Run rounds until the mount has no free inodes.

        Returns:
            ExhaustionReport; `stopped_by` is 'inodes', 'no-progress' or 'cancelled'

        Raises:
            ExecutionError: The test directory cannot be created, or every worker
                of a round failed with a non-ENOSPC error
        """
        workers = self.job.workers
        report = ExhaustionReport()
        try:
            self.job.test_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExecutionError(f"make test dir {self.job.test_dir} failed: {e}")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='exhaust') as executor:
            while True:
                if self.cancel is not None and self.cancel.is_set():
                    report.stopped_by = 'cancelled'
                    logger.warning("Inode exhaustion cancelled")
                    break

                futures = [executor.submit(self._fill_one) for _ in range(workers)]
                # Round barrier: every worker reports before the next check
                results = [future.result() for future in futures]
                report.rounds += 1

                round_files = 0
                failed = 0
                for result in results:
                    report.files += result.files
                    round_files += result.files
                    if result.created:
                        report.directories += 1
                    if result.error:
                        failed += 1
                        report.errors.append(result.error)

                free = self.free_inodes()
                self.events.emit(
                    EventType.EXHAUSTION_ROUND,
                    f"round {report.rounds} complete",
                    severity=EventSeverity.DEBUG,
                    context={'round': report.rounds, 'files': round_files, 'free_inodes': free}
                )

                if free == 0:
                    report.stopped_by = 'inodes'
                    break
                if failed == workers:
                    raise ExecutionError(
                        f"all {workers} exhaustion workers failed: {results[0].error}"
                    )
                if round_files == 0:
                    report.stopped_by = 'no-progress'
                    logger.warning(f"Round {report.rounds} created nothing but "
                                   f"{free} inodes remain free; stopping")
                    break

        logger.info(f"Inode exhaustion finished after {report.rounds} round(s): "
                    f"{report.directories} dirs, {report.files} files ({report.stopped_by})")
        return report

    def list_directories(self) -> List[Path]:
        """Test directories currently on disk, in creation order."""
        return sorted((p for p in self.job.test_dir.iterdir() if p.is_dir()), key=_dir_sort_key)

    @staticmethod
    def _drain_one(path: Path) -> WorkerResult:
        """Delete every file in `path`, then `path` itself."""
        removed = 0
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    os.unlink(entry.path)
                    removed += 1
            os.rmdir(path)
        except OSError as e:
            return WorkerResult(path, files=removed, error=f"remove {path}: {e}")
        return WorkerResult(path, files=removed)

    def drain(self) -> RemovalReport:
        """
        Remove every test directory in batches of W, then the test root.

        Deletion errors are collected in the report. If the test root itself
        cannot be removed the process exits with FATAL_EXIT_CODE.
        """
        workers = self.job.workers
        directories = self.list_directories()
        report = RemovalReport(batches=batch_sizes(len(directories), workers))

        with ProgressTracker(enabled=self.show_progress) as progress:
            progress.start(len(directories), desc="Removing test dirs", unit="dir")
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='drain') as executor:
                offset = 0
                for size in report.batches:
                    batch = directories[offset:offset + size]
                    offset += size
                    for result in executor.map(self._drain_one, batch):
                        report.visited.append(result.path)
                        if result.error:
                            report.errors.append(result.error)
                        else:
                            report.removed += 1
                    progress.update(len(batch))

        for error in report.errors:
            logger.error(error)

        try:
            shutil.rmtree(self.job.test_dir)
        except OSError as e:
            logger.critical(f"Could not remove test root {self.job.test_dir}: {e}")
            sys.exit(FATAL_EXIT_CODE)

        self.events.emit(
            EventType.EXHAUSTION_DRAINED,
            f"removed {report.removed} of {len(directories)} test directories",
            context={'path': str(self.job.test_dir), 'batches': report.batches,
                     'errors': len(report.errors)}
        )
        return report
