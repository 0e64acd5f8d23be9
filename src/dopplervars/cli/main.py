"""
Entry point for the ``dopplervars`` console script.

Usage:
    dopplervars <command> [args]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from dopplervars.logging import bind_context, configure_logging


def _add_resolution_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        dest="config_file",
        help="Deployment config holding the doppler block (default: serverless.yml)",
    )
    parser.add_argument("--stage", help="Deployment stage (default: provider.stage)")
    parser.add_argument(
        "--param",
        dest="params",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override, e.g. doppler-project=backend (repeatable)",
    )
    parser.add_argument("--service-dir", help="Service directory (default: cwd)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dopplervars",
        description="Resolve deployment secrets from Doppler",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logs")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    subparsers = parser.add_subparsers(dest="command")

    get_parser = subparsers.add_parser("get", help="Print one secret value")
    get_parser.add_argument("address", help="Secret name, e.g. DATABASE_URL")
    _add_resolution_args(get_parser)

    export_parser = subparsers.add_parser("export", help="Print all secrets")
    export_parser.add_argument(
        "--format",
        dest="output_format",
        choices=["env", "json"],
        default="env",
        help="Output format",
    )
    _add_resolution_args(export_parser)

    local_parser = subparsers.add_parser(
        "local", help="Show the Doppler CLI scope for a directory"
    )
    local_parser.add_argument("--service-dir", help="Service directory (default: cwd)")

    subparsers.add_parser("schema", help="Print the doppler config block JSON schema")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        json_output=args.json_logs,
    )
    bind_context(command=args.command).debug("command_started")

    from dopplervars.cli import commands

    if args.command == "get":
        sys.exit(
            commands.get_command(
                args.address,
                service_dir=args.service_dir,
                config_file=args.config_file,
                stage=args.stage,
                params=args.params,
            )
        )

    if args.command == "export":
        sys.exit(
            commands.export_command(
                output_format=args.output_format,
                service_dir=args.service_dir,
                config_file=args.config_file,
                stage=args.stage,
                params=args.params,
            )
        )

    if args.command == "local":
        sys.exit(commands.local_command(service_dir=args.service_dir))

    if args.command == "schema":
        sys.exit(commands.schema_command())

    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
