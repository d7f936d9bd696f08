"""CLI entry point for extrarows.

Usage:
    python -m extrarows execute <datasource.json> <action.json>
    python -m extrarows metadata <datasource.json> [--spreadsheet ID]
    python -m extrarows test <datasource.json>
    python -m extrarows pre-delete <datasource.json>
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any

from extrarows.config import get_settings
from extrarows.exceptions import IntegrationError
from extrarows.logging import setup_logging
from extrarows.plugin import SheetsPlugin


def load_json_file(path: str) -> dict[str, Any]:
    """Load a JSON object from a file."""
    file_path = Path(path)
    if not file_path.exists():
        raise IntegrationError(f"File not found: {file_path}")
    try:
        with file_path.open() as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise IntegrationError(f"Invalid JSON in {file_path}: {e}") from e
    if not isinstance(payload, dict):
        raise IntegrationError(f"Expected a JSON object in {file_path}")
    return payload


def print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, default=str))


async def cmd_execute(args: argparse.Namespace, plugin: SheetsPlugin) -> int:
    """Run one action and print its output."""
    datasource = load_json_file(args.datasource)
    action = load_json_file(args.action)
    result = await plugin.execute(datasource, action)
    print_json(result.output)
    return 0


async def cmd_metadata(args: argparse.Namespace, plugin: SheetsPlugin) -> int:
    """List the spreadsheets a datasource can see."""
    datasource = load_json_file(args.datasource)
    action = {"spreadsheetId": args.spreadsheet} if args.spreadsheet else None
    metadata = await plugin.metadata(datasource, action)
    print_json(dataclasses.asdict(metadata))
    return 0


async def cmd_test(args: argparse.Namespace, plugin: SheetsPlugin) -> int:
    """Check datasource credentials."""
    await plugin.test(load_json_file(args.datasource))
    print("Connection OK.")
    return 0


async def cmd_pre_delete(args: argparse.Namespace, plugin: SheetsPlugin) -> int:
    """Revoke a datasource's OAuth token."""
    await plugin.pre_delete(load_json_file(args.datasource))
    print("Token revoked.")
    return 0


async def run(args: argparse.Namespace) -> int:
    plugin = SheetsPlugin(get_settings())
    try:
        result: int = await args.func(args, plugin)
        return result
    except IntegrationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extrarows",
        description="Run Google Sheets datasource actions",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # execute subcommand
    execute_parser = subparsers.add_parser(
        "execute",
        help="Run an action against a spreadsheet",
    )
    execute_parser.add_argument(
        "datasource",
        help="Path to JSON file with the datasource configuration",
    )
    execute_parser.add_argument(
        "action",
        help="Path to JSON file with the action configuration",
    )
    execute_parser.set_defaults(func=cmd_execute)

    # metadata subcommand
    metadata_parser = subparsers.add_parser(
        "metadata",
        help="List spreadsheets visible to the datasource",
    )
    metadata_parser.add_argument(
        "datasource",
        help="Path to JSON file with the datasource configuration",
    )
    metadata_parser.add_argument(
        "--spreadsheet",
        default=None,
        help="Spreadsheet ID whose sheet titles should be listed",
    )
    metadata_parser.set_defaults(func=cmd_metadata)

    # test subcommand
    test_parser = subparsers.add_parser(
        "test",
        help="Check that the datasource credentials work",
    )
    test_parser.add_argument(
        "datasource",
        help="Path to JSON file with the datasource configuration",
    )
    test_parser.set_defaults(func=cmd_test)

    # pre-delete subcommand
    pre_delete_parser = subparsers.add_parser(
        "pre-delete",
        help="Revoke the datasource's OAuth token",
    )
    pre_delete_parser.add_argument(
        "datasource",
        help="Path to JSON file with the datasource configuration",
    )
    pre_delete_parser.set_defaults(func=cmd_pre_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    result: int = asyncio.run(run(args))
    return result


if __name__ == "__main__":
    sys.exit(main())
