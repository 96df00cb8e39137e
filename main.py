#!/usr/bin/env python3
"""
Main entry point for the ctf-tools manager.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError
from pydantic_settings import SettingsError

from ctftools.core.orchestrator import ToolOrchestrator
from ctftools.models.action import Action, ErrorKind, ListFilter
from ctftools.utils.logging import setup_root_logger
from config.settings import Settings, DEFAULT_NICE_LEVEL


ACTIONS = ", ".join(a.value for a in Action)


def build_parser() -> argparse.ArgumentParser:
    """Command line parser for ``manage``."""
    parser = argparse.ArgumentParser(
        prog="manage",
        description="Install, uninstall, upgrade and link security tools",
        epilog=f"Actions: {ACTIONS}. Use 'all' as the tool to act on every (installed) tool."
    )

    parser.add_argument(
        "-s", "--allow-sudo",
        action="store_true",
        help="Allow the use of sudo (for install-dep scripts and setup)"
    )

    parser.add_argument(
        "-n", "--nice",
        action="store_true",
        help=f"Run install scripts at nice level {DEFAULT_NICE_LEVEL}"
    )

    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Install even if already installed, run tests that are not enabled"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print script output while installing"
    )

    parser.add_argument(
        "--root",
        type=Path,
        help="Tools root directory (default: $CTF_TOOLS_ROOT or the current directory)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also log to this file"
    )

    filters = parser.add_mutually_exclusive_group()
    filters.add_argument(
        "-i", "--installed-only",
        action="store_true",
        help="list: only installed tools"
    )
    filters.add_argument(
        "-u", "--uninstalled-only",
        action="store_true",
        help="list: only tools that are not installed"
    )

    parser.add_argument("action", help=f"One of: {ACTIONS}")
    parser.add_argument("tool", nargs="?", help="Tool name, 'all', or the search query")

    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, overridden by command line flags."""
    overrides = {}
    if args.allow_sudo:
        overrides["allow_sudo"] = True
    if args.nice:
        overrides["nice_level"] = DEFAULT_NICE_LEVEL
    if args.force:
        overrides["force"] = True
    if args.verbose:
        overrides["verbose"] = True
    if args.root:
        overrides["tools_root"] = args.root

    settings = Settings(**overrides)
    if args.log_level:
        settings.logging.level = args.log_level
    if args.log_file:
        settings.logging.file_path = args.log_file
    return settings


def list_filter(args: argparse.Namespace) -> ListFilter:
    if args.installed_only:
        return ListFilter.INSTALLED_ONLY
    if args.uninstalled_only:
        return ListFilter.UNINSTALLED_ONLY
    return ListFilter.ALL


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Expose .env values to the lifecycle scripts as well
    load_dotenv()

    try:
        settings = load_settings(args)
    except (ValidationError, SettingsError) as e:
        print(f"TOOLS | invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_root_logger(
        settings.logging.file_path,
        settings.logging.level,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count
    )
    logger = logging.getLogger(__name__)
    logger.debug(f"Arguments: {vars(args)}")

    try:
        orchestrator = ToolOrchestrator(settings)
        outcome = orchestrator.resolve(args.action, args.tool, list_filter(args))
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    if getattr(outcome, "error", None) in (ErrorKind.UNKNOWN_ACTION, ErrorKind.MISSING_TOOL):
        parser.print_usage(sys.stderr)
    return outcome.exit_code


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
