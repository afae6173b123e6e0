"""
Tests for stress tool supervision: command construction, permission
bootstrap, validation run, launch and teardown.
"""

import logging
import os
import stat

import pytest

from core.errors import DiscoveryError, ExecutionError, PreconditionError
from core.events import EventType
from core.supervisor import StressToolSupervisor, build_supervised_process, strip_nice
from tests.fakes import FakeLocator

TOOL = "/opt/hostfault/third_party_tools/stress-ng"


class TestCommandConstruction:
    """nice wrapping and flag sanitization."""

    @pytest.mark.parametrize("flags", [
        "--nice 5 --cpu 4 --timeout 10",
        "--cpu 4 --nice 5 --timeout 10",
        "--cpu 4 --timeout 10 --nice 5",
    ])
    def test_nice_anywhere_is_stripped_and_prefixed(self, flags):
        process = build_supervised_process(TOOL, flags, nice="5")
        assert process.command == f"nice -n 5 {TOOL} --cpu 4 --timeout 10"
        assert process.search_string == f"{TOOL} --cpu 4 --timeout 10"
        assert process.nice == "5"

    def test_without_nice_search_equals_command(self):
        process = build_supervised_process(TOOL, "--cpu 4 --timeout 10")
        assert process.command == f"{TOOL} --cpu 4 --timeout 10"
        assert process.search_string == process.command
        assert process.nice is None

    def test_negative_nice(self):
        process = build_supervised_process(TOOL, "--cpu 2 --nice -10", nice="-10")
        assert process.command == f"nice -n -10 {TOOL} --cpu 2"

    def test_private_args_appended_space_joined(self):
        process = build_supervised_process(TOOL, "--vm 2 --nice 1", nice="1",
                                           private_args=("--vm-keep", "--vm-populate"))
        assert process.search_string == f"{TOOL} --vm 2 --vm-keep --vm-populate"
        assert process.command == f"nice -n 1 {process.search_string}"

    def test_no_flags_at_all(self):
        assert build_supervised_process(TOOL, "").command == TOOL

    @pytest.mark.parametrize("raw,expected", [
        ("--nice 5", ""),
        ("  --cpu 4   --nice 5  --timeout 1 ", "--cpu 4 --timeout 1"),
        ("--cpu 4", "--cpu 4"),
    ])
    def test_strip_nice_leaves_no_extra_spaces(self, raw, expected):
        assert strip_nice(raw) == expected


@pytest.fixture
def tool(tmp_path):
    path = tmp_path / "stress-ng"
    path.write_text("#!/bin/sh\n")
    os.chmod(path, 0o644)
    return path


class TestSupervisor:
    """Lifecycle against a fake runner and process table."""

    def test_ensure_executable_sets_0755(self, runner, tool):
        supervisor = StressToolSupervisor(runner, FakeLocator(), str(tool))
        supervisor.ensure_executable()
        assert stat.S_IMODE(os.stat(tool).st_mode) == 0o755

    def test_ensure_executable_leaves_executable_tool_alone(self, runner, tool):
        os.chmod(tool, 0o700)
        StressToolSupervisor(runner, FakeLocator(), str(tool)).ensure_executable()
        assert stat.S_IMODE(os.stat(tool).st_mode) == 0o700

    def test_ensure_executable_missing_tool(self, runner, tmp_path):
        supervisor = StressToolSupervisor(runner, FakeLocator(), str(tmp_path / "nope"))
        with pytest.raises(PreconditionError, match="info failed"):
            supervisor.ensure_executable()

    def test_validate_runs_trial_with_duration(self, runner):
        supervisor = StressToolSupervisor(runner, FakeLocator(), TOOL, validation_duration="2s")
        supervisor.validate(supervisor.plan("--cpu 1 --nice 3", nice="3"))
        assert runner.commands == [f"nice -n 3 {TOOL} --cpu 1 -t 2s"]

    def test_validate_failure_is_precondition(self, runner):
        runner.responses[" -t "] = ExecutionError("command failed", command="x", returncode=1,
                                                  output="stress-ng: unknown option")
        supervisor = StressToolSupervisor(runner, FakeLocator(), TOOL)
        with pytest.raises(PreconditionError, match="unknown option"):
            supervisor.validate(supervisor.plan("--bogus 1"))

    def test_launch_is_detached(self, runner, events, caplog):
        supervisor = StressToolSupervisor(runner, FakeLocator(), TOOL, events=events)
        with caplog.at_level(logging.INFO, logger='core.supervisor'):
            pid = supervisor.launch(supervisor.plan("--cpu 1"))
        assert "launcher pid 4242" in caplog.text
        assert pid == 4242
        assert runner.detached == [f"{TOOL} --cpu 1"]
        assert events.events_of_type(EventType.PROCESS_LAUNCHED)

    def test_destroy_kills_all_matches_by_search_string(self, runner, events):
        locator = FakeLocator({
            10: f"{TOOL} --cpu 4 --timeout 10",
            11: f"{TOOL} --cpu 4 --timeout 10",
            12: f"{TOOL} --cpu 40 --timeout 10",
            13: f"nice -n 5 {TOOL} --cpu 4 --timeout 10",
        })
        supervisor = StressToolSupervisor(runner, locator, TOOL, events=events)
        process = supervisor.plan("--nice 5 --cpu 4 --timeout 10", nice="5")

        killed = supervisor.destroy(process)

        assert killed == [10, 11, 13]
        assert sorted(locator.table) == [12]
        assert events.events_of_type(EventType.PROCESS_KILLED)[0].context['pids'] == [10, 11, 13]

    def test_destroy_without_match_is_discovery_error(self, runner):
        supervisor = StressToolSupervisor(runner, FakeLocator(), TOOL)
        with pytest.raises(DiscoveryError):
            supervisor.destroy(supervisor.plan("--cpu 4"))
