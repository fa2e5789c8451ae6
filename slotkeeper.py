#!/usr/bin/env python3
"""
SlotKeeper - save-slot file service for a dedicated game server.

Core helpers shared by the HTTP server and the tests: logging setup and
configuration loading.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from app.errors import ConfigError
from app.services.slot_service import SLOT_ID_POLICIES


def setup_logging(level: str = 'INFO') -> logging.Logger:
    """Configure the root SlotKeeper logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger('slotkeeper')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


logger = logging.getLogger('slotkeeper')

_SAVED_ROOT = r'C:\EVRIMA\surv_server\TheIsle\Saved'

DEFAULT_CONFIG: Dict[str, Any] = {
    'players_dir': _SAVED_ROOT + r'\Databases\Survival\Players',
    'slots_dir': _SAVED_ROOT + r'\Slots',
    'backup_dir': _SAVED_ROOT + r'\Backups',
    'host': '0.0.0.0',
    'port': 8080,
    'max_file_size': 10 * 1024 * 1024,
    'slot_id_policy': 'overwrite',
    'log_level': 'INFO',
    'log_file': os.path.join('logs', 'slotkeeper.log'),
}

# config key -> environment variable that overrides it
ENV_OVERRIDES = {key: f'SLOTKEEPER_{key.upper()}' for key in DEFAULT_CONFIG}

_INT_KEYS = ('port', 'max_file_size')

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def parse_bool(value) -> bool:
    """Interpret a JSON boolean or a query-string flag such as ``"true"``."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def load_config(config_path: Optional[str] = 'config.json',
                overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Load configuration from a JSON file with environment variable support.

    Precedence, lowest first: built-in defaults, the JSON file, ``SLOTKEEPER_*``
    environment variables, then *overrides* (used by the CLI flags and tests).
    A missing config file only logs a warning.

    Raises:
        ConfigError: the file is unreadable or a value is invalid.
    """
    config = dict(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Could not load config file {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a JSON object")
        unknown = set(file_config) - set(DEFAULT_CONFIG)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ', '.join(sorted(unknown)))
        config.update({k: v for k, v in file_config.items() if k in DEFAULT_CONFIG})
    elif config_path:
        logger.warning("Config file '%s' not found, using defaults", config_path)

    for key, env_var in ENV_OVERRIDES.items():
        if os.getenv(env_var):
            config[key] = os.getenv(env_var)

    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})

    for key in _INT_KEYS:
        try:
            config[key] = int(config[key])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid {key}: {config[key]!r}") from e
    if not 0 < config['port'] < 65536:
        raise ConfigError(f"Invalid port: {config['port']}")
    if config['max_file_size'] <= 0:
        raise ConfigError(f"Invalid max_file_size: {config['max_file_size']}")

    config['slot_id_policy'] = str(config['slot_id_policy']).lower()
    if config['slot_id_policy'] not in SLOT_ID_POLICIES:
        raise ConfigError(
            f"Invalid slot_id_policy: {config['slot_id_policy']!r} "
            f"(expected one of {', '.join(SLOT_ID_POLICIES)})")

    return config
