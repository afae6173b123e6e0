"""
Configuration management for hostfault.
Loads and validates configuration settings.
"""

import json
from pathlib import Path
from typing import List, Dict, Any, Tuple


class Config:
    """Manages application configuration."""

    # Default configuration values
    DEFAULT_CONFIG = {
        'log_folder': 'logs',
        'max_log_files': 5,
        'event_log': True,
        # Relative paths are resolved against the directory of the executable
        'stress_tool_path': 'third_party_tools/stress-ng',
        'validation_duration': '4s',
        'exhaustion_files_per_dir': 10000,
        'exhaustion_worker_multiplier': 2,
        'exhaustion_test_dir': 'arsenal_test_dir',
        'process_locator': 'ps',
        'command_timeout_seconds': 300,
        'show_progress': True,
    }

    def __init__(self, config_path: Path = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config.json file. If None, uses defaults.
        """
        self.config = self.DEFAULT_CONFIG.copy()

        if config_path and config_path.exists():
            self.load_config(config_path)

    def load_config(self, config_path: Path):
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)

            if not isinstance(user_config, dict):
                print(f"\nERROR: Config file must contain a JSON object")
                print(f"  Config file: {config_path.absolute()}")
                print("Using default configuration instead.")
                return

            # Validate loaded config before applying
            is_valid, errors = self._validate_config(user_config)
            if not is_valid:
                print(f"\nConfiguration validation failed:")
                print(f"  Config file: {config_path.absolute()}")
                print()
                for error in errors:
                    print(error)
                    print()
                print("Using default configuration instead.")
                return

            self.config.update(user_config)
        except json.JSONDecodeError as e:
            print(f"\nERROR: Invalid JSON in config file")
            print(f"  Config file: {config_path.absolute()}")
            print(f"  Problem: {e}")
            print(f"  Line: {e.lineno}, Column: {e.colno}")
            print()
            print("Fix the JSON syntax and try again.")
            print("Using default configuration.")
        except OSError as e:
            print(f"\nERROR: Could not load config file")
            print(f"  Config file: {config_path.absolute()}")
            print(f"  Problem: {e}")
            print()
            print("Using default configuration.")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        """Set configuration value."""
        self.config[key] = value

    def _validate_config(self, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate configuration dictionary.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        # Validate numeric ranges
        numeric_fields = {
            'max_log_files': (1, 100, "Maximum log files", 5),
            'exhaustion_files_per_dir': (1, 1000000, "Files per exhaustion directory", 10000),
            'exhaustion_worker_multiplier': (1, 64, "Workers per CPU", 2),
            'command_timeout_seconds': (1, 86400, "Command timeout", 300),
        }

        for field, (min_val, max_val, display_name, example) in numeric_fields.items():
            if field in config:
                value = config[field]
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(
                        f"ERROR: Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {repr(value)} ({type(value).__name__})\n"
                        f"  Expected: number (integer)\n"
                        f"  Example: {example}\n"
                        f"  Valid range: {min_val} to {max_val}"
                    )
                elif value < min_val or value > max_val:
                    errors.append(
                        f"ERROR: Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {value}\n"
                        f"  Expected: number between {min_val} and {max_val}\n"
                        f"  Example: {example}"
                    )

        string_fields = {
            'log_folder': 'logs',
            'stress_tool_path': 'third_party_tools/stress-ng',
            'validation_duration': '4s',
            'exhaustion_test_dir': 'arsenal_test_dir',
        }

        for field, example in string_fields.items():
            if field in config and (not isinstance(config[field], str) or not config[field]):
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: {field}\n"
                    f"  Value: {repr(config[field])}\n"
                    f"  Expected: non-empty string\n"
                    f"  Example: {example!r}"
                )

        if 'exhaustion_test_dir' in config and isinstance(config['exhaustion_test_dir'], str):
            if '/' in config['exhaustion_test_dir']:
                errors.append(
                    f"ERROR: Invalid config value\n"
                    f"  Field: exhaustion_test_dir\n"
                    f"  Problem: Must be a single directory name, not a path\n"
                    f"  Example: 'arsenal_test_dir'"
                )

        if 'process_locator' in config and config['process_locator'] not in ('ps', 'psutil'):
            errors.append(
                f"ERROR: Invalid config value\n"
                f"  Field: process_locator\n"
                f"  Value: {repr(config['process_locator'])}\n"
                f"  Expected: 'ps' or 'psutil'"
            )

        for field in ('show_progress', 'event_log'):
            if field in config and not isinstance(config[field], bool):
                errors.append(f"{field} must be true or false, got {type(config[field]).__name__}")

        return (len(errors) == 0, errors)

    @property
    def log_folder(self) -> str:
        """Get log folder path."""
        return self.config['log_folder']

    @property
    def max_log_files(self) -> int:
        """Get maximum number of log files to keep."""
        return self.config['max_log_files']

    @property
    def event_log(self) -> bool:
        return self.config.get('event_log', True)

    @property
    def stress_tool_path(self) -> str:
        return self.config['stress_tool_path']

    @property
    def validation_duration(self) -> str:
        """Duration passed to the stress tool for its trial run."""
        return self.config['validation_duration']

    @property
    def exhaustion_files_per_dir(self) -> int:
        return self.config['exhaustion_files_per_dir']

    @property
    def exhaustion_worker_multiplier(self) -> int:
        return self.config['exhaustion_worker_multiplier']

    @property
    def exhaustion_test_dir(self) -> str:
        return self.config['exhaustion_test_dir']

    @property
    def process_locator(self) -> str:
        return self.config['process_locator']

    @property
    def command_timeout_seconds(self) -> int:
        return self.config.get('command_timeout_seconds', 300)

    @property
    def show_progress(self) -> bool:
        return self.config.get('show_progress', True)
