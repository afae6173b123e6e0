"""
File faults: corruption, loss, immutability and loss of execute permission.

Every fault keeps what remove needs next to the target on disk (a backup
copy, a renamed file, a saved mode), so remove works from a fresh process.
"""

import logging
import os
import secrets
import shutil
import string
from typing import Optional

import psutil

from core.errors import DiscoveryError, ExecutionError, InvalidFlagError, PreconditionError
from core.models import RunArgs
from core.plugin import FaultPlugin
from utils import chattr
from utils.flags import parse_int, require

logger = logging.getLogger(__name__)

CORRUPTION_CHARSET = string.ascii_letters + string.digits
EXECUTE_BITS = 0o111
NON_EXECUTE_MASK = 0o666


def backup_file_path(path: str, fault_type: str, backup_dir: Optional[str] = None) -> str:
    """`<path>-<type>-backup`, or `<backup_dir>/<name>-<type>-backup`."""
    if backup_dir:
        return os.path.join(backup_dir, f"{os.path.basename(path)}-{fault_type}-backup")
    return f"{path}-{fault_type}-backup"


def random_payload(length: int) -> bytes:
    return ''.join(secrets.choice(CORRUPTION_CHARSET) for _ in range(length)).encode()


class FileFault(FaultPlugin):
    """Resolves and checks the --path target shared by all file faults."""

    module = 'file'

    path: str = ''

    def resolve_path(self, must_exist: bool = True) -> str:
        raw = require(self.flags, 'path', '/tmp/data.txt')
        path = os.path.abspath(raw)
        if must_exist:
            if not os.path.exists(path):
                raise PreconditionError(f"please check file {path} exist")
            if os.path.isdir(path):
                raise PreconditionError(f"{path} is directory")
        self.path = path
        return path


class FileCorruption(FileFault):
    """Overwrites `length` bytes at `offset` with random alphanumerics, keeping a backup."""

    fault_type = 'file-corruption'

    def _prepare(self, run_args: RunArgs):
        path = self.resolve_path()

        backup_dir = self.flags.get('backup-path') or None
        if backup_dir and not os.path.isdir(backup_dir):
            raise PreconditionError(f"backup path ({backup_dir}) is not an existing directory")
        self.backup = backup_file_path(path, self.fault_type, backup_dir)

        if run_args.is_remove():
            return

        if os.path.exists(self.backup):
            raise PreconditionError(
                f"{path} has already been injected {self.fault_type} (backup {self.backup} exists)"
            )

        self.offset = parse_int(self.flags, 'offset', min_val=0)
        self.length = parse_int(self.flags, 'length', min_val=1)
        size = os.path.getsize(path)
        if self.offset >= size:
            raise InvalidFlagError('offset', str(self.offset), f"must be smaller than file size {size}")
        if self.offset + self.length > size:
            raise InvalidFlagError('length', str(self.length),
                                   f"offset + length exceeds file size {size}")

        free = psutil.disk_usage(os.path.dirname(self.backup)).free
        if size > free:
            raise PreconditionError(
                f"backup path ({os.path.dirname(self.backup)}) does not have enough space "
                f"(need {size} bytes, have {free})"
            )

    def _inject(self, run_args: RunArgs):
        # remove trusts whatever sits at self.backup, so only a complete copy may land there
        partial = f"{self.backup}.partial"
        try:
            shutil.copy2(self.path, partial)
            os.replace(partial, self.backup)
        except OSError as e:
            try:
                os.remove(partial)
            except FileNotFoundError:
                pass
            raise ExecutionError(f"backup file {self.path} to {self.backup} failed: {e}")

        try:
            with open(self.path, 'r+b') as f:
                f.seek(self.offset)
                f.write(random_payload(self.length))
        except OSError as e:
            raise ExecutionError(f"make file ({self.path}) corruption failed: {e}")
        logger.info(f"Corrupted {self.length} bytes of {self.path} at offset {self.offset}")

    def _remove(self, run_args: RunArgs):
        if not os.path.exists(self.backup):
            raise DiscoveryError(f"not found backup file path ({self.backup})")
        try:
            shutil.move(self.backup, self.path)
        except OSError as e:
            raise ExecutionError(f"restore corruption file ({self.path}) failed: {e}")
        logger.info(f"Restored {self.path} from {self.backup}")


class FileLost(FileFault):
    """Renames the file out of the way."""

    fault_type = 'file-lost'

    def _prepare(self, run_args: RunArgs):
        path = self.resolve_path(must_exist=not run_args.is_remove())
        self.backup = backup_file_path(path, self.fault_type)

        if run_args.is_remove():
            if os.path.exists(path) and os.path.exists(self.backup):
                raise PreconditionError(f"{path} exists again, refusing to overwrite it with {self.backup}")
        elif os.path.exists(self.backup):
            raise PreconditionError(
                f"{path} has already been injected {self.fault_type} (backup {self.backup} exists)"
            )

    def _inject(self, run_args: RunArgs):
        try:
            os.rename(self.path, self.backup)
        except OSError as e:
            raise ExecutionError(f"file {self.path} injection {self.fault_type} fault failed: {e}")

    def _remove(self, run_args: RunArgs):
        if not os.path.exists(self.backup):
            raise DiscoveryError(f"please check backup file {self.backup} exist")
        try:
            os.rename(self.backup, self.path)
        except OSError as e:
            raise ExecutionError(f"file {self.path} clearing {self.fault_type} fault failed: {e}")


class FileReadonly(FileFault):
    """Sets the immutable inode attribute."""

    fault_type = 'file-readonly'

    def _prepare(self, run_args: RunArgs):
        path = self.resolve_path()
        try:
            self.immutable = chattr.is_immutable(path)
        except OSError as e:
            raise PreconditionError(f"get file: {path} attr failed: {e}")

        if not run_args.is_remove() and self.immutable:
            raise PreconditionError(f"the file {path} is already in a not-writable state")

    def _inject(self, run_args: RunArgs):
        try:
            chattr.set_immutable(self.path, True)
        except OSError as e:
            raise ExecutionError(f"set file attr failed: {e}")

    def _remove(self, run_args: RunArgs):
        if not self.immutable:
            raise DiscoveryError(f"the file {self.path} is not immutable, nothing to remove")
        try:
            chattr.set_immutable(self.path, False)
        except OSError as e:
            raise ExecutionError(f"unset file attr failed: {e}")


class FileUnexecuted(FileFault):
    """Clears the execute bits, saving the original mode as octal text."""

    fault_type = 'file-unexecuted'

    def _prepare(self, run_args: RunArgs):
        path = self.resolve_path()
        self.mode = os.stat(path).st_mode & 0o777
        self.attr_backup = f"{path}-{self.fault_type}-backup-attr"

        if run_args.is_remove():
            return
        if os.path.exists(self.attr_backup):
            raise PreconditionError(
                f"{path} has already been injected {self.fault_type} (backup {self.attr_backup} exists)"
            )
        if self.mode & EXECUTE_BITS == 0:
            raise PreconditionError(f"file ({path}) has no execute permission")

    def _inject(self, run_args: RunArgs):
        try:
            with open(self.attr_backup, 'w') as f:
                f.write(format(self.mode, 'o'))
        except OSError as e:
            raise ExecutionError(f"backup file attr to {self.attr_backup} failed: {e}")
        try:
            os.chmod(self.path, self.mode & NON_EXECUTE_MASK)
        except OSError as e:
            raise ExecutionError(f"file {self.path} injection {self.fault_type} fault failed: {e}")

    def _remove(self, run_args: RunArgs):
        if not os.path.exists(self.attr_backup):
            raise DiscoveryError(f"backup attr file ({self.attr_backup}) missing")
        with open(self.attr_backup) as f:
            raw = f.read().strip()
        try:
            mode = int(raw, 8)
        except ValueError:
            raise ExecutionError(f"backup attr file ({self.attr_backup}) holds invalid mode {raw!r}")
        try:
            os.chmod(self.path, mode)
            os.remove(self.attr_backup)
        except OSError as e:
            raise ExecutionError(f"file {self.path} clearing {self.fault_type} fault failed: {e}")
