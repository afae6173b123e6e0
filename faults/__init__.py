"""
hostfault fault catalogue.
One module per CLI module name; ALL_FAULTS feeds build_registry() at startup.
"""

from .cpu import CpuOffline, CpuOverload
from .file import FileCorruption, FileLost, FileReadonly, FileUnexecuted
from .filesystem import FilesystemIoOverload, MountPointInodeExhaustion, MountPointSpaceFull
from .memory import MemoryOverload
from .process import ProcessChoking, ProcessExitAbnormal, ProcessHang
from .system import (
    SystemFileSystemsReadonly,
    SystemOom,
    SystemPanic,
    SystemRebootAbnormal,
    SystemServiceRestart,
    SystemServiceStop,
    SystemTimeJump,
)

ALL_FAULTS = [
    CpuOverload,
    CpuOffline,
    MemoryOverload,
    FileCorruption,
    FileLost,
    FileReadonly,
    FileUnexecuted,
    FilesystemIoOverload,
    MountPointInodeExhaustion,
    MountPointSpaceFull,
    ProcessHang,
    ProcessChoking,
    ProcessExitAbnormal,
    SystemOom,
    SystemPanic,
    SystemRebootAbnormal,
    SystemFileSystemsReadonly,
    SystemServiceStop,
    SystemServiceRestart,
    SystemTimeJump,
]

__all__ = ['ALL_FAULTS'] + [cls.__name__ for cls in ALL_FAULTS]
