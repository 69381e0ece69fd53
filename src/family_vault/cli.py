"""Command-line entry point for local administration.

The CLI is a trusted local caller: the ``--user-id`` it is given is used as
the acting identity for every operation.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

import asyncpg  # type: ignore[import-not-found]

from family_vault.app import open_vault
from family_vault.config import Settings, get_settings
from family_vault.errors import (
    FamilyVaultError,
    InternalError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from family_vault.logging import get_logger, setup_logging
from family_vault.transfer import dump_export, load_export

log = get_logger("family_vault.cli")

EXIT_CODES: dict[type[FamilyVaultError], int] = {
    ValidationError: 2,
    NotAuthorizedError: 3,
    NotFoundError: 4,
    InternalError: 5,
}


def _read_payload(path: str) -> Any:
    try:
        text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValidationError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    return load_export(text)


def _write_output(path: str, text: str) -> None:
    if path == "-":
        sys.stdout.write(text + "\n")
        return
    try:
        Path(path).write_text(text + "\n", encoding="utf-8")
    except OSError as exc:
        raise InternalError(f"Cannot write {path}: {exc.strerror or exc}") from exc


async def _execute(args: argparse.Namespace, settings: Settings) -> str | None:
    """Run one command against an open vault and return text to emit."""
    payload = _read_payload(args.input) if args.command == "import" else None
    try:
        async with open_vault(settings) as vault:
            if args.command == "init-db":
                return "Schema is up to date."
            if args.command == "export":
                document = await vault.transfer.export_data(args.user_id)
                return dump_export(document)
            summary = await vault.transfer.import_data(args.user_id, payload)
            return (
                f"Imported {summary.members_created} member(s) and "
                f"{summary.records_created} record(s); "
                f"skipped {summary.members_skipped} entries without a name."
            )
    except (asyncpg.PostgresError, OSError) as exc:
        log.error("storage_failure", command=args.command, error=str(exc))
        raise InternalError("Internal server error.") from exc


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="family-vault",
        description="Manage locally stored, field-encrypted family records",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database schema if it is missing")

    export = sub.add_parser("export", help="Export a user's data as decrypted JSON")
    export.add_argument("--user-id", type=int, required=True, help="Acting user id")
    export.add_argument(
        "--output",
        default=None,
        help="Output file ('-' for stdout, default: FDM_EXPORT_FILENAME)",
    )

    imp = sub.add_parser("import", help="Import a JSON export for a user")
    imp.add_argument("--user-id", type=int, required=True, help="Acting user id")
    imp.add_argument("--input", required=True, help="Export file to read ('-' for stdin)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command and return a process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging()
    settings = get_settings()

    try:
        output = asyncio.run(_execute(args, settings))
        if args.command == "export":
            _write_output(args.output or settings.export_filename, output or "")
        elif output:
            print(output)
    except FamilyVaultError as exc:
        log.error("command_failed", command=args.command, error_type=type(exc).__name__)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CODES.get(type(exc), 1)
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
