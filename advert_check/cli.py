"""Argument parser and main entry point for the advert checker."""

import argparse
import sys
from pathlib import Path

import tabulate as tabulate_mod

from .data import RegistryError
from .reconcile import reconcile
from .undo import NoLedgerError, undo_last_run
from .util import DEAD_DIR, INPUT_JSON, LOG_FILE, RunContext


def _get_argument_parser():
    """Build argument parser."""
    parser = argparse.ArgumentParser(
        description=(
            f"Check each BBS in {INPUT_JSON} for telnet reachability."
            f" Adverts of dead systems are moved to {DEAD_DIR}/ and"
            f" their entries archived to the dead registry."
        ),
    )
    parser.add_argument(
        "directory", nargs="?", default=None,
        help=f"folder containing {INPUT_JSON} and advert files"
             f" (default: current directory)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--dry-run", action="store_true",
        help="show what would change without writing files",
    )
    mode.add_argument(
        "--undo", action="store_true",
        help="undo the last run: restore moved files and JSON",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help=f"only write to {LOG_FILE}, not to stderr",
    )
    return parser


def _print_summary(title, summary):
    table_str = tabulate_mod.tabulate(
        list(summary.items()), headers=(title, ""), tablefmt="simple")
    print(table_str, file=sys.stderr)


def main(argv=None):
    """CLI entry point."""
    args = _get_argument_parser().parse_args(argv)

    directory = Path(args.directory or Path.cwd())
    if not directory.is_dir():
        print(f"Error: {directory} is not a directory", file=sys.stderr)
        sys.exit(1)

    ctx = RunContext(directory, quiet=args.quiet)

    if args.undo:
        try:
            summary = undo_last_run(ctx)
        except NoLedgerError as err:
            ctx.log.error(str(err))
            sys.exit(1)
        if not args.quiet:
            _print_summary("undo", summary)
        return

    if not ctx.input_json.is_file():
        print(f"Error: {ctx.input_json} not found", file=sys.stderr)
        sys.exit(1)
    try:
        summary = reconcile(ctx, dry_run=args.dry_run)
    except RegistryError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)
    if not args.quiet:
        _print_summary("dry-run" if args.dry_run else "run", summary)
