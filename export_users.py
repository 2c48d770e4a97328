#!/usr/bin/env python3
"""Export enabled directory users to a ``;``-separated CSV or a text table.

Runs the user export once: query the directory (ldap3), drop accounts matching
the skip-user patterns, normalize ranks / org-unit paths / handles, sort
leaders first and write the file.

Settings come from ``config.yaml`` (see ``user_export.config``); the flags
below override individual values.

    python export_users.py --output ./export/users.csv --skip-user "^svc-" -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from user_export.config import AppConfig, load_config
from user_export.errors import ConfigError, UserExportError
from user_export.pipeline import run_export
from user_export.writer import ExportFormat

LOGGER = logging.getLogger("export_users")


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export enabled directory users to CSV or a text table.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML config (default: config.yaml or $USER_EXPORT_CONFIG).",
    )
    parser.add_argument(
        "--search-base",
        help="Directory search base (default: OU=Company,DC=company,DC=com).",
    )
    parser.add_argument(
        "--skip-user",
        action="append",
        default=None,
        metavar="REGEX",
        help="Skip accounts matching this regex fragment (repeatable, case-insensitive).",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in ExportFormat],
        type=str.upper,
        help="Output format (default: CSV).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Output file; must end in .csv or .txt.",
    )
    parser.add_argument("--server", help="Directory server host name.")
    parser.add_argument("--bind-dn", help="Bind DN; omit for integrated authentication.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.search_base:
        config.export.search_base = args.search_base
    if args.skip_user:
        config.export.skip_users = list(args.skip_user)
    if args.format:
        config.export.format = ExportFormat.parse(args.format)
    if args.output:
        config.export.output = args.output
    if args.server:
        config.directory.server = args.server
    if args.bind_dn:
        config.directory.bind_dn = args.bind_dn
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = apply_overrides(load_config(args.config), args)
        report = run_export(config)
    except ConfigError as exc:
        LOGGER.error("Config error: %s", exc)
        return 1
    except UserExportError as exc:
        LOGGER.error("Export failed: %s", exc)
        return 1

    LOGGER.info(
        "Fetched %d, excluded %d, exported %d user(s).",
        report.fetched,
        report.excluded,
        report.exported,
    )
    if report.output_path is None:
        LOGGER.info("Nothing written.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
