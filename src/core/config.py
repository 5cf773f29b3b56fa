"""Runtime configuration model for jsonmap.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DATA_ROOT,
    DEFAULT_LOG_LEVEL,
    FALSY_ENV_VALUES,
    SUPPORTED_LOG_LEVELS,
    TRUTHY_ENV_VALUES,
)
from core.errors import JsonMapConfigError


@dataclass(frozen=True)
class JsonMapConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory holding snapshot files.
        snapshot_indent: JSON indent for snapshot files; compact when None.
        random_seed: Optional seed for ``JsonMap.random`` selection.
        strict_persistence: Re-raise snapshot write failures after the
            in-memory mutation instead of only logging them.
        log_level: Minimum structured log level.
    """

    data_root: Path
    snapshot_indent: int | None = None
    random_seed: int | None = None
    strict_persistence: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "JsonMapConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            JsonMapConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("JSONMAP_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        indent_value = os.getenv("JSONMAP_SNAPSHOT_INDENT")
        seed_value = os.getenv("JSONMAP_RANDOM_SEED")
        strict_value = os.getenv("JSONMAP_STRICT_PERSISTENCE", "false")
        log_level_value = os.getenv("JSONMAP_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            snapshot_indent=_parse_optional_int("JSONMAP_SNAPSHOT_INDENT", indent_value),
            random_seed=_parse_optional_int("JSONMAP_RANDOM_SEED", seed_value),
            strict_persistence=_parse_bool("JSONMAP_STRICT_PERSISTENCE", strict_value),
            log_level=_parse_log_level(log_level_value),
        )


def _parse_optional_int(variable: str, raw_value: str | None) -> int | None:
    """Parse an optional integer environment value.

    Args:
        variable: Environment variable name, used in error messages.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer, or None when unset or blank.

    Raises:
        JsonMapConfigError: If value cannot be parsed into a non-negative int.
    """
    if raw_value is None or not raw_value.strip():
        return None
    try:
        parsed = int(raw_value)
    except ValueError as error:
        raise JsonMapConfigError(
            f"Invalid {variable} value: expected integer, got '{raw_value}'. "
            f"Set {variable} to a numeric value or unset it."
        ) from error
    if parsed < 0:
        raise JsonMapConfigError(
            f"Invalid {variable} value: expected a non-negative integer, got {parsed}."
        )
    return parsed


def _parse_bool(variable: str, raw_value: str) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in TRUTHY_ENV_VALUES:
        return True
    if normalized in FALSY_ENV_VALUES:
        return False
    raise JsonMapConfigError(
        f"Invalid {variable} value: expected true/false, got '{raw_value}'."
    )


def _parse_log_level(raw_value: str) -> str:
    normalized = raw_value.strip().upper()
    if normalized not in SUPPORTED_LOG_LEVELS:
        raise JsonMapConfigError(
            f"Invalid JSONMAP_LOG_LEVEL value: '{raw_value}'. "
            f"Use one of: {', '.join(SUPPORTED_LOG_LEVELS)}."
        )
    return normalized
