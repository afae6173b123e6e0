"""
Pytest configuration and fixtures for hostfault tests.
"""

import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Config
from core.events import MemoryEmitter
from utils.system_check import SystemCheck
from tests.fakes import FakeLocator, FakeRunner


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def locator():
    return FakeLocator()


@pytest.fixture
def all_commands():
    """SystemCheck that finds every command."""
    return SystemCheck(which=lambda command: f"/usr/bin/{command}")


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.set('log_folder', str(tmp_path / 'logs'))
    cfg.set('show_progress', False)
    return cfg


@pytest.fixture
def events():
    return MemoryEmitter()


@pytest.fixture
def make_plugin(config, runner, locator, all_commands, events):
    """Build a plugin wired to the fakes."""
    def _make(plugin_cls, **kwargs):
        return plugin_cls(
            config=kwargs.pop('config', config),
            runner=kwargs.pop('runner', runner),
            system_check=kwargs.pop('system_check', all_commands),
            locator=kwargs.pop('locator', locator),
            events=kwargs.pop('events', events),
            **kwargs
        )
    return _make
