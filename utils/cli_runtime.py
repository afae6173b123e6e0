"""CLI/runtime bootstrap helpers for the hostfault command."""

import argparse
import os
from pathlib import Path
from typing import Optional

from core.models import Operation

CONFIG_ENV_VAR = 'HOSTFAULT_CONFIG'
DEFAULT_CONFIG_RELPATH = os.path.join('config_files', 'config.json')


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the hostfault CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hostfault",
        description="Inject and remove host-level faults (cpu, memory, file, filesystem, process, system).",
        epilog="Examples:\n"
        "  hostfault inject cpu cpu-overload --cpu 4 --nice 5\n"
        "  hostfault remove cpu cpu-overload --cpu 4 --nice 5\n"
        "  hostfault inject file file-corruption --path /tmp/data.txt --offset 0 --length 8\n"
        "  hostfault inject filesystem filesystem-mountpoint-inode-exhaustion --path /mnt/data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", "-c", help=f"Path to config.json file (or set {CONFIG_ENV_VAR})")
    parser.add_argument("operation", choices=[op.value for op in Operation], help="Apply or reverse the fault")
    parser.add_argument("module", help="Fault module (cpu, memory, file, filesystem, process, system)")
    parser.add_argument("fault_type", help="Fault type, e.g. cpu-overload")
    parser.add_argument("flags", nargs=argparse.REMAINDER, help="Fault flags as --key value pairs")
    return parser


def resolve_config_path(executable: str, explicit: Optional[str] = None) -> Optional[Path]:
    """
    Pick the config file: --config, then $HOSTFAULT_CONFIG, then
    config_files/config.json next to the executable.

    Returns:
        Path of an existing file, or None to use defaults
    """
    candidates = [explicit, os.environ.get(CONFIG_ENV_VAR)]
    candidates.append(os.path.join(os.path.dirname(os.path.abspath(executable)), DEFAULT_CONFIG_RELPATH))
    for candidate in candidates:
        if candidate and Path(candidate).is_file():
            return Path(candidate)
    return None
