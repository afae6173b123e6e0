#!/usr/bin/env python3
"""
hostfault - inject and remove host-level faults.

Usage:
    hostfault {inject|remove} <module> <fault-type> [--flag value ...]

A fault is injected by one invocation and removed by a later one with the
same flags. Exit status tells the category of failure:
0 ok, 1 unexpected, 2 precondition, 3 command failed, 4 nothing to remove,
70 test root could not be cleaned up, 130 interrupted.
"""

import logging
import sys
from pathlib import Path

from colorama import init, Fore, Style

from core.config import Config
from core.dispatcher import FaultDispatcher
from core.errors import ExecutionError, FaultError, MissingCommandError
from core.events import EventEmitter
from core.logger import log_command_error, setup_logging
from core.models import RunArgs
from core.registry import build_registry
from faults import ALL_FAULTS
from utils.cli_runtime import build_arg_parser, resolve_config_path
from utils.error_messages import format_fault_error
from utils.system_check import SystemCheck

INTERRUPTED_EXIT_CODE = 130


def main(argv=None):
    """Main entry point."""
    init()  # Initialize colorama

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    executable = sys.argv[0]

    config = Config(resolve_config_path(executable, args.config))

    try:
        log_file = setup_logging(config.log_folder, config.max_log_files)
    except OSError as e:
        print(Fore.RED + f"Error setting up logging: {e}" + Style.RESET_ALL)
        sys.exit(1)

    run_args = RunArgs.build(executable, args.operation, args.module, args.fault_type, args.flags)
    logging.info("=" * 70)
    logging.info(f"hostfault started: {run_args.command_line()}")
    logging.info(f"Log file: {log_file}")

    events = EventEmitter(
        log_file=Path(config.log_folder) / 'events.jsonl',
        enable_file=config.event_log
    )
    dispatcher = FaultDispatcher(build_registry(ALL_FAULTS), config=config, events=events)
    flags = run_args.flags
    location = flags.get('path') or flags.get('pid') or flags.get('name')

    try:
        dispatcher.dispatch(run_args)
    except MissingCommandError as e:
        print(Fore.RED + format_fault_error(e, run_args.operation, run_args.fault_type) + Style.RESET_ALL)
        print(f"[TOOLS] Checking commands...")
        system_check = SystemCheck()
        system_check.display_command_status(system_check.check_all_commands())
        logging.error(str(e))
        sys.exit(e.exit_code)
    except FaultError as e:
        print(Fore.RED + format_fault_error(e, run_args.operation, run_args.fault_type, location) + Style.RESET_ALL)
        if isinstance(e, ExecutionError):
            log_command_error(e, run_args.fault_type)
        else:
            logging.error(f"{run_args.operation} {run_args.fault_type} failed: {e}")
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        print(Fore.YELLOW + "\n\nOperation interrupted by user" + Style.RESET_ALL)
        logging.info("User interrupted operation")
        sys.exit(INTERRUPTED_EXIT_CODE)
    except Exception as e:
        print(Fore.RED + f"\nUnexpected error: {e}" + Style.RESET_ALL)
        logging.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)

    print(f"{Fore.GREEN}[OK] {run_args.operation} {run_args.fault_type}{Style.RESET_ALL}")
    logging.info(f"hostfault finished: {run_args.operation} {run_args.fault_type}")
    return 0


if __name__ == "__main__":
    main()
