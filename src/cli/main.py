"""jsonmap CLI entry points.
This module exposes commands for inspecting and editing named stores.
It maps argparse commands onto JsonMap calls.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import JsonMapConfig
from core.constants import SUPPORTED_MATH_OPERATIONS
from core.errors import InvalidOperationError, JsonMapError
from core.logging_config import configure_logging
from core.types import EntryKey
from store.json_map import JsonMap

_NO_RESULT_EXIT_CODE = 1
_ERROR_EXIT_CODE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="jsonmap", description="Persistent JSON map CLI")
    parser.add_argument("--data-root", help="Override JSONMAP_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_get_command(subparsers)
    _add_set_command(subparsers)
    _add_delete_command(subparsers)
    _add_list_command(subparsers)
    _add_step_command(subparsers, "inc", "Increase a number by one")
    _add_step_command(subparsers, "dec", "Decrease a number by one")
    _add_push_command(subparsers)
    _add_math_command(subparsers)
    _add_store_command(subparsers, "clear", "Remove all entries and keep an empty snapshot")
    _add_store_command(subparsers, "drop", "Remove all entries and delete the snapshot file")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the jsonmap CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args.data_root)
        configure_logging(config.log_level)
        store = JsonMap(args.name, config)
        return _dispatch(store, args)
    except InvalidOperationError as error:
        print(f"invalid_operation={error}", file=sys.stderr)
        return _ERROR_EXIT_CODE
    except JsonMapError as error:
        print(f"error={error}", file=sys.stderr)
        return _ERROR_EXIT_CODE


def _dispatch(store: JsonMap, args: argparse.Namespace) -> int:
    """Route parsed args to a command handler."""
    if args.command == "get":
        return _run_get_command(store, args)
    if args.command == "list":
        return _run_list_command(store)
    return asyncio.run(_run_mutating_command(store, args))


def _build_config(data_root: str | None) -> JsonMapConfig:
    """Build config with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Runtime configuration.
    """
    config = JsonMapConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return config


def _run_get_command(store: JsonMap, args: argparse.Namespace) -> int:
    """Handle get command."""
    key = _parse_key(args)
    if not store.has(key):
        print(f"missing_key={key}", file=sys.stderr)
        return _NO_RESULT_EXIT_CODE
    _print_json(store.get(key))
    return 0


def _run_list_command(store: JsonMap) -> int:
    """Handle list command."""
    for key, value in store.entries():
        print(f"{key}\t{json.dumps(value)}")
    return 0


async def _run_mutating_command(store: JsonMap, args: argparse.Namespace) -> int:
    """Handle commands that reconcile the snapshot."""
    if args.command == "clear":
        await store.clear()
        return 0
    if args.command == "drop":
        await store.delete_file()
        return 0
    key = _parse_key(args)
    if args.command == "set":
        await store.set(key, _parse_value(args.value))
        return 0
    if args.command == "delete":
        existed = await store.delete(key)
        return 0 if existed else _NO_RESULT_EXIT_CODE
    if args.command == "inc":
        result = await store.inc(key, args.field)
    elif args.command == "dec":
        result = await store.dec(key, args.field)
    elif args.command == "push":
        result = await store.push(key, _parse_value(args.value))
    else:
        result = await store.math(key, args.operation, _parse_number(args.number), args.field)
    if result is None:
        print(f"no_result={args.command} key={key}", file=sys.stderr)
        return _NO_RESULT_EXIT_CODE
    _print_json(result)
    return 0


def _parse_key(args: argparse.Namespace) -> EntryKey:
    """Return the entry key, converted to int with --int-key."""
    if not args.int_key:
        return args.key
    try:
        return int(args.key)
    except ValueError as error:
        raise InvalidOperationError(f"--int-key given but {args.key!r} is not an integer.") from error


def _parse_value(raw_value: str) -> Any:
    """Parse a JSON value, falling back to the raw string."""
    try:
        return json.loads(raw_value)
    except json.JSONDecodeError:
        return raw_value


def _parse_number(raw_value: str) -> int | float:
    try:
        return int(raw_value)
    except ValueError:
        pass
    try:
        return float(raw_value)
    except ValueError as error:
        raise InvalidOperationError(f"Operand {raw_value!r} is not a number.") from error


def _print_json(value: Any) -> None:
    print(json.dumps(value))


def _add_store_command(subparsers: Any, name: str, help_text: str) -> argparse.ArgumentParser:
    """Register a subcommand that targets one named store."""
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("name", help="Store identity")
    return parser


def _add_key_command(subparsers: Any, name: str, help_text: str) -> argparse.ArgumentParser:
    """Register a subcommand that targets one key of a named store."""
    parser = _add_store_command(subparsers, name, help_text)
    parser.add_argument("key", help="Entry key")
    parser.add_argument("--int-key", action="store_true", help="Treat the key as an integer")
    return parser


def _add_get_command(subparsers: Any) -> None:
    """Register get subcommand."""
    _add_key_command(subparsers, "get", "Print a value as JSON")


def _add_set_command(subparsers: Any) -> None:
    """Register set subcommand."""
    parser = _add_key_command(subparsers, "set", "Set a value")
    parser.add_argument("value", help="JSON value; plain text is stored as a string")


def _add_delete_command(subparsers: Any) -> None:
    """Register delete subcommand."""
    _add_key_command(subparsers, "delete", "Delete a key")


def _add_list_command(subparsers: Any) -> None:
    """Register list subcommand."""
    _add_store_command(subparsers, "list", "Print all entries as key<TAB>json")


def _add_step_command(subparsers: Any, name: str, help_text: str) -> None:
    """Register inc/dec subcommands."""
    parser = _add_key_command(subparsers, name, help_text)
    parser.add_argument("--field", help="Numeric field inside an object value")


def _add_push_command(subparsers: Any) -> None:
    """Register push subcommand."""
    parser = _add_key_command(subparsers, "push", "Append a value to a list")
    parser.add_argument("value", help="JSON value; plain text is stored as a string")


def _add_math_command(subparsers: Any) -> None:
    """Register math subcommand."""
    parser = _add_key_command(subparsers, "math", "Apply an arithmetic operation")
    parser.add_argument("operation", help=f"One of {' '.join(SUPPORTED_MATH_OPERATIONS)}")
    parser.add_argument("number", help="Right-hand operand")
    parser.add_argument("--field", help="Numeric field inside an object value")
