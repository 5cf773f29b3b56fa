"""Core constants used across jsonmap modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".jsonmap")
SNAPSHOTS_DIR_NAME = "data"
SNAPSHOT_FILE_SUFFIX = ".json"
SNAPSHOT_TEMP_SUFFIX = ".tmp"
SNAPSHOT_KEY_FIELD = "key"
SNAPSHOT_VALUE_FIELD = "value"
PROP_PATH_SEPARATOR = "."
DEFAULT_LOG_LEVEL = "INFO"
SUPPORTED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
SUPPORTED_MATH_OPERATIONS = ("+", "-", "*", "/", "^")
TRUTHY_ENV_VALUES = ("1", "true", "yes", "on")
FALSY_ENV_VALUES = ("0", "false", "no", "off", "")
