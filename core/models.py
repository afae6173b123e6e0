"""
Shared data model for hostfault.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from utils.flags import flags_to_string, parse_flags

# Fixed token positions in RunArgs.
EXECUTABLE_INDEX = 0
OPS_TYPE_INDEX = 1
MODULE_NAME_INDEX = 2
FAULT_TYPE_INDEX = 3
FIRST_FLAG_INDEX = 4


class Operation(str, Enum):
    """Operation kind carried in RunArgs."""
    INJECT = "inject"
    REMOVE = "remove"


class FaultState(Enum):
    """Lifecycle state of a plugin instance."""
    UNPREPARED = auto()
    READY = auto()
    INJECTED = auto()
    REMOVED = auto()


@dataclass(frozen=True)
class RunArgs:
    """
    Raw CLI tokens of one invocation.

    `tokens[0]` is the executable as it was invoked, followed by the
    operation, the module name, the fault type and the flag tokens.
    """
    tokens: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'tokens', tuple(self.tokens))
        if len(self.tokens) <= FAULT_TYPE_INDEX:
            raise ValueError(
                f"expected at least {FAULT_TYPE_INDEX + 1} tokens "
                f"(executable, operation, module, fault type), got {len(self.tokens)}"
            )

    @classmethod
    def build(cls, executable: str, operation: str, module: str,
              fault_type: str, flag_tokens=()) -> 'RunArgs':
        return cls((executable, operation, module, fault_type, *flag_tokens))

    @property
    def executable(self) -> str:
        return self.tokens[EXECUTABLE_INDEX]

    @property
    def operation(self) -> str:
        return self.tokens[OPS_TYPE_INDEX]

    @property
    def module(self) -> str:
        return self.tokens[MODULE_NAME_INDEX]

    @property
    def fault_type(self) -> str:
        return self.tokens[FAULT_TYPE_INDEX]

    @property
    def flag_tokens(self) -> Tuple[str, ...]:
        return self.tokens[FIRST_FLAG_INDEX:]

    @property
    def flags(self) -> Dict[str, str]:
        return parse_flags(self.flag_tokens)

    @property
    def flags_string(self) -> str:
        return flags_to_string(self.flag_tokens)

    def is_remove(self) -> bool:
        return self.operation == Operation.REMOVE.value

    def with_operation(self, operation: Operation) -> 'RunArgs':
        """Same invocation with the operation slot replaced."""
        tokens = list(self.tokens)
        tokens[OPS_TYPE_INDEX] = operation.value
        return RunArgs(tuple(tokens))

    def command_line(self) -> str:
        """Tokens joined the way they appear in the process table."""
        return ' '.join(self.tokens)


@dataclass
class SupervisedProcess:
    """
    A background tool invocation that must be found again by command line.

    `command` is what gets launched (possibly prefixed with `nice -n N`);
    `search_string` is what the process table shows for the tool itself.
    """
    command: str
    search_string: str
    nice: Optional[str] = None


class DirectoryLedger:
    """
    Thread-safe record of exhaustion directories.

    Hands out unique, monotonically increasing directory indices and keeps an
    append-only list of the paths that were claimed.
    """

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._counter = start
        self._paths: List[Path] = []

    def claim(self, root: Path, prefix: str = 'arsenal_dir_') -> Tuple[int, Path]:
        """Reserve the next index and return it with its directory path."""
        with self._lock:
            self._counter += 1
            index = self._counter
            path = root / f"{prefix}{index}"
            self._paths.append(path)
        return index, path

    @property
    def count(self) -> int:
        with self._lock:
            return self._counter

    def paths(self) -> List[Path]:
        """Snapshot of claimed paths, in claim order."""
        with self._lock:
            return list(self._paths)


@dataclass
class ExhaustionJob:
    """State of one inode exhaustion run."""
    mount_point: Path
    test_dir: Path
    workers: int
    ledger: DirectoryLedger = field(default_factory=DirectoryLedger)


@dataclass
class WorkerResult:
    """Outcome of one exhaustion or deletion worker."""
    path: Path
    exhausted: bool = False
    files: int = 0
    error: Optional[str] = None
    # False when the directory itself could not be created
    created: bool = True


@dataclass
class ExhaustionReport:
    """Summary of Pool.fill()."""
    rounds: int = 0
    directories: int = 0
    files: int = 0
    stopped_by: str = ""
    errors: List[str] = field(default_factory=list)


@dataclass
class RemovalReport:
    """Summary of Pool.drain()."""
    batches: List[int] = field(default_factory=list)
    removed: int = 0
    visited: List[Path] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
