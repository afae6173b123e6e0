"""
Immutable file attribute (the `i` flag of chattr) through the inode flags ioctl.
"""

import fcntl
import os
import struct

# linux/fs.h
FS_IOC_GETFLAGS = 0x80086601
FS_IOC_SETFLAGS = 0x40086602
FS_IMMUTABLE_FL = 0x00000010

_FLAGS_FORMAT = 'i'


def get_attrs(fd: int) -> int:
    """Read the inode flags of an open file."""
    buf = fcntl.ioctl(fd, FS_IOC_GETFLAGS, struct.pack(_FLAGS_FORMAT, 0))
    return struct.unpack(_FLAGS_FORMAT, buf)[0]


def set_attrs(fd: int, attrs: int):
    fcntl.ioctl(fd, FS_IOC_SETFLAGS, struct.pack(_FLAGS_FORMAT, attrs))


def is_immutable(path: str) -> bool:
    """
    Raises:
        OSError: The file cannot be opened or the filesystem has no inode flags
    """
    fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
    try:
        return bool(get_attrs(fd) & FS_IMMUTABLE_FL)
    finally:
        os.close(fd)


def set_immutable(path: str, enabled: bool):
    """
    Set or clear the immutable flag. Needs CAP_LINUX_IMMUTABLE.

    Raises:
        OSError: Open or ioctl failed
    """
    fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
    try:
        attrs = get_attrs(fd)
        if enabled:
            attrs |= FS_IMMUTABLE_FL
        else:
            attrs &= ~FS_IMMUTABLE_FL
        set_attrs(fd, attrs)
    finally:
        os.close(fd)
