"""
Configuration management for fsfault.
Loads and validates the JSON configuration that carries the fault
directives.
"""

import json
import logging
from pathlib import Path
from typing import List, Dict, Any, Tuple

from core.directives import FAULT_ENGINE, FAULT_INJECT, tokenize
from core.errors import ConfigError
from utils.error_messages import format_config_file_error, format_error


logger = logging.getLogger(__name__)


class Config:
    """Manages fault injection configuration."""

    DEFAULT_CONFIG = {
        'fault_engine': None,
        'fault_inject': [],
        'trace_level': 0,
        'mount_path': '/',
        'log_folder': 'logs',
        'max_log_files': 5,
        'event_log': None,
    }

    def __init__(self, config_path: Path = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to a JSON config file. If None, uses defaults.

        Raises:
            ConfigError: If the file is unreadable, not JSON, or invalid
        """
        self.config = self.DEFAULT_CONFIG.copy()
        self.config['fault_inject'] = []
        self.config_path = Path(config_path) if config_path else None

        if self.config_path is not None:
            self.load_config(self.config_path)

    def load_config(self, config_path: Path):
        """Load configuration from a JSON file. Invalid files are fatal."""
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(format_error(
                what_failed="Invalid JSON in config file",
                reason=f"{e.msg} (line {e.lineno}, column {e.colno})",
                action="Fix the JSON syntax and try again",
                location=Path(config_path).absolute()
            )) from e
        except OSError as e:
            raise ConfigError(format_error(
                what_failed="Could not load config file",
                reason=str(e),
                action="Check the path and its permissions",
                location=Path(config_path).absolute()
            )) from e

        is_valid, errors = self._validate_config(user_config)
        if not is_valid:
            raise ConfigError(format_config_file_error(config_path, errors))

        self.config.update(user_config)
        logger.info(f"Loaded configuration from {config_path}")

    def save_config(self, config_path: Path):
        """Save current configuration to a JSON file."""
        with open(config_path, 'w') as f:
            json.dump(self.config, f, indent=4)

    def get(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def set(self, key: str, value: Any):
        self.config[key] = value

    def _validate_config(self, config: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate configuration dictionary structure.

        Directive contents (error names, operations) are validated later by
        the directive handlers.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if not isinstance(config, dict):
            return (False, [f"Top-level value must be an object, got {type(config).__name__}"])

        unknown = sorted(set(config) - set(self.DEFAULT_CONFIG))
        for field in unknown:
            errors.append(f"Unknown field: {field}")

        if 'fault_engine' in config:
            value = config['fault_engine']
            if value is not None and not isinstance(value, (bool, str)):
                errors.append(
                    f"Invalid config value\n"
                    f"  Field: fault_engine\n"
                    f"  Value: {repr(value)} ({type(value).__name__})\n"
                    f"  Expected: true/false or \"on\"/\"off\""
                )

        if 'fault_inject' in config:
            value = config['fault_inject']
            if not isinstance(value, list):
                errors.append(
                    f"Invalid config value\n"
                    f"  Field: fault_inject\n"
                    f"  Value: {repr(value)} ({type(value).__name__})\n"
                    f"  Expected: list of directives\n"
                    f"  Example: [\"filesystem ENOSPC write close\"]"
                )
            else:
                for entry in value:
                    if not isinstance(entry, (str, list)):
                        errors.append(
                            f"Invalid fault_inject entry: {repr(entry)}\n"
                            f"  Expected: \"filesystem EIO read\" or [\"filesystem\", \"EIO\", \"read\"]"
                        )
                    elif isinstance(entry, list) and not all(isinstance(t, str) for t in entry):
                        errors.append(f"fault_inject entry must contain only strings: {repr(entry)}")

        numeric_fields = {
            'trace_level': (0, 20, "Trace level", 4),
            'max_log_files': (1, 100, "Maximum log files", 5),
        }

        for field, (min_val, max_val, display_name, example) in numeric_fields.items():
            if field in config:
                value = config[field]
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(
                        f"Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {repr(value)} ({type(value).__name__})\n"
                        f"  Expected: number (integer)\n"
                        f"  Example: {example}\n"
                        f"  Valid range: {min_val} to {max_val}"
                    )
                elif value < min_val or value > max_val:
                    errors.append(
                        f"Invalid config value\n"
                        f"  Field: {field}\n"
                        f"  Value: {value}\n"
                        f"  Expected: {display_name.lower()} between {min_val} and {max_val}\n"
                        f"  Example: {example}"
                    )

        for field in ('mount_path', 'log_folder'):
            if field in config and not isinstance(config[field], str):
                errors.append(f"{field} must be a string, got {type(config[field]).__name__}")

        if 'mount_path' in config and isinstance(config['mount_path'], str):
            if not config['mount_path'].startswith('/'):
                errors.append(f"mount_path must be absolute, got {config['mount_path']!r}")

        if 'event_log' in config and config['event_log'] is not None:
            if not isinstance(config['event_log'], str):
                errors.append(f"event_log must be a string or null, got {type(config['event_log']).__name__}")

        return (len(errors) == 0, errors)

    def directives(self) -> List[Tuple[str, List[str]]]:
        """
        Configuration as tokenized directives, in application order.

        FaultEngine first (when set), then one FaultInject per entry.
        """
        result = []

        engine = self.config.get('fault_engine')
        if engine is not None:
            if isinstance(engine, bool):
                engine = 'on' if engine else 'off'
            result.append((FAULT_ENGINE, [engine]))

        for entry in self.config.get('fault_inject', []):
            tokens = tokenize(entry) if isinstance(entry, str) else list(entry)
            result.append((FAULT_INJECT, tokens))

        return result

    @property
    def trace_level(self) -> int:
        return self.config['trace_level']

    @property
    def mount_path(self) -> str:
        return self.config['mount_path']

    @property
    def max_log_files(self) -> int:
        return self.config['max_log_files']

    @property
    def log_folder(self) -> str:
        return self.config['log_folder']

    @property
    def event_log(self):
        """Path of the JSON lines event log, or None."""
        value = self.config.get('event_log')
        return Path(value) if value else None
