"""
Tests for the inode exhaustion worker pool.

A fake statvfs reports an inode ceiling for the test root, so rounds stop
deterministically without filling a real filesystem.
"""

import errno
import os
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

import core.exhaustion as exhaustion
from core.errors import FATAL_EXIT_CODE, ExecutionError
from core.events import EventType
from core.exhaustion import ExhaustionPool, batch_sizes, default_workers
from core.models import DirectoryLedger, ExhaustionJob


def count_entries(root: Path) -> int:
    total = 0
    for _, dirs, files in os.walk(root):
        total += len(dirs) + len(files)
    return total


def ceiling_statvfs(root: Path, ceiling: int):
    """statvfs whose free inode count is `ceiling` minus what exists under root."""
    calls = []

    def _statvfs(path):
        calls.append(path)
        return SimpleNamespace(f_ffree=max(0, ceiling - count_entries(root)))

    _statvfs.calls = calls
    return _statvfs


def make_job(tmp_path, workers):
    return ExhaustionJob(mount_point=tmp_path, test_dir=tmp_path / "arsenal_test_dir", workers=workers)


@pytest.mark.parametrize("total,workers,expected", [
    (0, 4, []),
    (3, 4, [3]),
    (8, 4, [4, 4]),
    (10, 4, [4, 4, 2]),
    (7, 1, [1] * 7),
])
def test_batch_sizes(total, workers, expected):
    sizes = batch_sizes(total, workers)
    assert sizes == expected
    assert sum(sizes) == total


def test_default_workers_scales_with_cpus(monkeypatch):
    monkeypatch.setattr(exhaustion.psutil, "cpu_count", lambda: 3)
    assert default_workers() == 6
    assert default_workers(4) == 12


def test_ledger_hands_out_unique_indices_across_threads(tmp_path):
    ledger = DirectoryLedger()
    claimed = []
    lock = threading.Lock()

    def claim_many():
        for _ in range(50):
            index, _ = ledger.claim(tmp_path)
            with lock:
                claimed.append(index)

    threads = [threading.Thread(target=claim_many) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(claimed) == list(range(1, 401))
    assert ledger.count == 400
    assert len(ledger.paths()) == 400


class TestFill:
    """Rounds, barrier and stop conditions."""

    def test_stops_when_free_inodes_reach_zero(self, tmp_path, events):
        job = make_job(tmp_path, workers=4)
        statvfs = ceiling_statvfs(job.test_dir, ceiling=50)
        pool = ExhaustionPool(job, files_per_dir=5, statvfs=statvfs, events=events)

        report = pool.fill()

        # 24 inodes per round: 26 free after round 1, 2 after round 2, 0 after round 3
        assert report.rounds == 3
        assert report.stopped_by == 'inodes'
        assert report.directories == 12
        assert report.files == 60
        assert len(statvfs.calls) == 3
        assert statvfs.calls[0] == str(tmp_path)
        assert len(events.events_of_type(EventType.EXHAUSTION_ROUND)) == 3

    def test_directories_are_numbered_from_ledger(self, tmp_path):
        job = make_job(tmp_path, workers=3)
        pool = ExhaustionPool(job, files_per_dir=2, statvfs=ceiling_statvfs(job.test_dir, 1))
        pool.fill()

        names = sorted(p.name for p in job.test_dir.iterdir())
        assert names == ['arsenal_dir_1', 'arsenal_dir_2', 'arsenal_dir_3']
        assert sorted(p.name for p in (job.test_dir / 'arsenal_dir_1').iterdir()) == ['test_0', 'test_1']

    def test_enospc_marks_worker_exhausted(self, tmp_path, monkeypatch):
        job = make_job(tmp_path, workers=2)
        real_open = os.open
        budget = {'left': 3}
        lock = threading.Lock()

        def limited_open(path, flags, mode=0o777):
            if Path(path).name.startswith('test_'):
                with lock:
                    if budget['left'] == 0:
                        raise OSError(errno.ENOSPC, "No space left on device")
                    budget['left'] -= 1
            return real_open(path, flags, mode)

        monkeypatch.setattr(exhaustion.os, "open", limited_open)
        # The filesystem says it still has inodes, but nothing more can be created
        pool = ExhaustionPool(job, files_per_dir=10,
                              statvfs=lambda path: SimpleNamespace(f_ffree=100))

        report = pool.fill()

        assert report.files == 3
        assert report.rounds == 2
        assert report.stopped_by == 'no-progress'
        assert report.errors == []

    def test_all_workers_failing_raises(self, tmp_path, monkeypatch):
        job = make_job(tmp_path, workers=2)
        real_mkdir = os.mkdir

        def failing_mkdir(path, *args, **kwargs):
            if Path(path).name.startswith('arsenal_dir_'):
                raise PermissionError(errno.EACCES, "Permission denied")
            return real_mkdir(path, *args, **kwargs)

        monkeypatch.setattr(exhaustion.os, "mkdir", failing_mkdir)
        pool = ExhaustionPool(job, files_per_dir=1,
                              statvfs=lambda path: SimpleNamespace(f_ffree=100))

        with pytest.raises(ExecutionError, match="exhaustion workers failed"):
            pool.fill()

    def test_unwritable_mount_raises_execution_error(self, tmp_path, monkeypatch):
        job = make_job(tmp_path, workers=2)

        def full_mkdir(self, *args, **kwargs):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(exhaustion.Path, "mkdir", full_mkdir)
        pool = ExhaustionPool(job, statvfs=lambda path: SimpleNamespace(f_ffree=100))

        with pytest.raises(ExecutionError, match="make test dir") as exc_info:
            pool.fill()
        assert str(job.test_dir) in str(exc_info.value)
        assert exc_info.value.exit_code == 3

    def test_cancel_event_stops_before_next_round(self, tmp_path):
        job = make_job(tmp_path, workers=2)
        cancel = threading.Event()
        cancel.set()
        pool = ExhaustionPool(job, statvfs=lambda path: SimpleNamespace(f_ffree=100), cancel=cancel)

        report = pool.fill()

        assert report.rounds == 0
        assert report.stopped_by == 'cancelled'

    def test_zero_workers_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            ExhaustionPool(make_job(tmp_path, workers=0))


class TestDrain:
    """Batched teardown mirrors fill."""

    def _fill(self, tmp_path, workers, ceiling, files_per_dir=3):
        job = make_job(tmp_path, workers)
        pool = ExhaustionPool(job, files_per_dir=files_per_dir,
                              statvfs=ceiling_statvfs(job.test_dir, ceiling))
        pool.fill()
        return job, pool

    def test_every_directory_visited_once(self, tmp_path, events):
        job, _ = self._fill(tmp_path, workers=4, ceiling=40)
        created = sorted(p.name for p in job.test_dir.iterdir())

        pool = ExhaustionPool(job, statvfs=None, events=events)
        report = pool.drain()

        visited = [p.name for p in report.visited]
        assert sorted(visited) == created
        assert len(set(visited)) == len(visited)
        assert report.removed == len(created)
        assert report.errors == []
        assert not job.test_dir.exists()
        assert events.events_of_type(EventType.EXHAUSTION_DRAINED)

    def test_partial_last_batch(self, tmp_path):
        job = make_job(tmp_path, workers=4)
        job.test_dir.mkdir()
        for i in range(1, 11):
            d = job.test_dir / f"arsenal_dir_{i}"
            d.mkdir()
            (d / "test_0").touch()

        report = ExhaustionPool(job).drain()

        assert report.batches == [4, 4, 2]
        assert report.removed == 10
        # Numeric order, not lexical
        assert [p.name for p in report.visited][:3] == ['arsenal_dir_1', 'arsenal_dir_2', 'arsenal_dir_3']
        assert report.visited[-1].name == 'arsenal_dir_10'

    def test_empty_root_is_removed(self, tmp_path):
        job = make_job(tmp_path, workers=2)
        job.test_dir.mkdir()
        report = ExhaustionPool(job).drain()
        assert report.batches == []
        assert not job.test_dir.exists()

    def test_deletion_errors_are_aggregated(self, tmp_path, monkeypatch):
        job, _ = self._fill(tmp_path, workers=2, ceiling=1, files_per_dir=1)
        real_rmdir = os.rmdir
        failed = []

        def flaky_rmdir(path, *args, **kwargs):
            if Path(path).name == 'arsenal_dir_1' and not failed:
                failed.append(path)
                raise OSError(errno.EBUSY, "Device or resource busy")
            return real_rmdir(path, *args, **kwargs)

        monkeypatch.setattr(exhaustion.os, "rmdir", flaky_rmdir)
        report = ExhaustionPool(job).drain()

        assert report.removed == 1
        assert len(report.errors) == 1
        assert "arsenal_dir_1" in report.errors[0]
        # The final sweep still removes the root
        assert not job.test_dir.exists()

    def test_root_removal_failure_is_fatal(self, tmp_path, monkeypatch):
        job = make_job(tmp_path, workers=2)
        job.test_dir.mkdir()

        def broken_rmtree(path, *args, **kwargs):
            raise OSError(errno.EBUSY, "Device or resource busy")

        monkeypatch.setattr(exhaustion.shutil, "rmtree", broken_rmtree)

        with pytest.raises(SystemExit) as exc_info:
            ExhaustionPool(job).drain()
        assert exc_info.value.code == FATAL_EXIT_CODE
