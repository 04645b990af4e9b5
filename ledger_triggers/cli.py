"""Command line entry point.

USAGE:
    ledger-triggers --file ledger.txt --mode balance
    ledger-triggers --file ledger.txt --mode register --account '^Expenses'
    ledger-triggers --file ledger.txt --mode print --no-balance --no-triggers
    python -m ledger_triggers --config options.yaml --file ledger.txt

The ledger is parsed, sorted by date, rewritten by its triggers and balanced
before the selected report is printed. Every balancing error is printed with
its transaction and the command exits with status 1 after all transactions
have been checked.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import argparse
import dataclasses
import logging
import re
import sys
from typing import IO, List, Optional

from beancount.core.interpolate import BalanceError

from ledger_triggers.balancer import balance
from ledger_triggers.errors import (
    CycleDetectedError,
    OptionsError,
    ParseError,
    RuleEvaluationError,
)
from ledger_triggers.logging_setup import configure_logging
from ledger_triggers.matchers import Trigger
from ledger_triggers.models import Transaction
from ledger_triggers.options import LedgerOptions, load_options
from ledger_triggers.parser import parse_file
from ledger_triggers.reports import balance_report, print_report, register_report
from ledger_triggers.triggers import apply_triggers

logger = logging.getLogger(__name__)

MODES = ("balance", "print", "register")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-triggers",
        description="Process a plain-text ledger with posting triggers.",
    )
    parser.add_argument("--file", default="log.txt", help="Ledger file to process.")
    parser.add_argument(
        "--mode", default="balance", choices=MODES, help="Report to print."
    )
    parser.add_argument(
        "--account", help="Show only accounts matching this regex filter."
    )
    parser.add_argument(
        "--transaction",
        help="Show only transactions whose description or ID matches this regex.",
    )
    parser.add_argument(
        "--show-zero",
        action="store_true",
        help="Show entries where the balance or amount is zero.",
    )
    parser.add_argument(
        "--only-real",
        action="store_true",
        help="Only use real postings, not virtual.",
    )
    parser.add_argument(
        "--no-balance",
        action="store_true",
        help="Don't perform or check balancing (only really useful with print).",
    )
    parser.add_argument(
        "--no-triggers",
        action="store_true",
        help="Don't run any triggers (only really useful with print).",
    )
    parser.add_argument(
        "--no-sort", action="store_true", help="Don't re-order transactions by date."
    )
    parser.add_argument(
        "--cycle-limit",
        type=int,
        help="Maximum number of postings a transaction may reach through triggers.",
    )
    parser.add_argument(
        "--on-cycle",
        choices=("report", "abort"),
        help="Print the runaway transaction and exit, or raise.",
    )
    parser.add_argument("--config", help="YAML options file.")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Log more (repeatable)."
    )
    return parser


def _options_from_args(args: argparse.Namespace) -> LedgerOptions:
    options = load_options(args.config) if args.config else LedgerOptions()

    overrides = {}
    if args.no_sort:
        overrides["sort"] = False
    if args.no_triggers:
        overrides["triggers"] = False
    if args.no_balance:
        overrides["auto_balance"] = False
        overrides["check_balance"] = False
    if args.cycle_limit is not None:
        overrides["cycle_limit"] = args.cycle_limit
    if args.on_cycle is not None:
        overrides["on_cycle"] = args.on_cycle

    return dataclasses.replace(options, **overrides)


def process(
    triggers: List[Trigger],
    transactions: List[Transaction],
    options: LedgerOptions,
) -> List[BalanceError]:
    """Sort, rewrite and balance transactions according to the options.

    Sorting replaces the contents of ``transactions`` in place.

    Returns:
        Balancing errors, empty when every transaction balances
    """
    if options.sort:
        transactions.sort(key=lambda t: t.date)

    if options.triggers:
        apply_triggers(triggers, transactions, cycle_limit=options.cycle_limit)

    if not (options.auto_balance or options.check_balance):
        return []

    return balance(
        transactions,
        auto_balance=options.auto_balance,
        check_balance=options.check_balance,
    )


def _compile_filter(
    parser: argparse.ArgumentParser, pattern: Optional[str]
) -> Optional[re.Pattern]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        parser.error(f"invalid regex {pattern!r}: {e}")


def main(argv: Optional[List[str]] = None, out: Optional[IO[str]] = None) -> int:
    out = out or sys.stdout
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        {0: None, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    )

    account_filter = _compile_filter(parser, args.account)
    transaction_filter = _compile_filter(parser, args.transaction)

    try:
        options = _options_from_args(args)
        logger.debug(f"Options: {options}")
        triggers, transactions = parse_file(args.file)
    except (OptionsError, ParseError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: cannot read ledger: {e}", file=sys.stderr)
        return 1

    try:
        errors = process(triggers, transactions, options)
    except CycleDetectedError as e:
        if options.on_cycle == "abort":
            raise
        out.write(f"posting cycle detected\n\n{e.transaction}\n")
        return 1
    except RuleEvaluationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if errors:
        for error in errors:
            out.write(
                f"{error.source['filename']}:{error.source['lineno']}: "
                f"{error.message}\n\n{error.entry}\n"
            )
        return 1

    if args.mode == "print":
        print_report(triggers, transactions, out, transaction_filter=transaction_filter)
    elif args.mode == "register":
        register_report(
            transactions,
            out,
            account_filter=account_filter,
            transaction_filter=transaction_filter,
            show_zero=args.show_zero,
            only_real=args.only_real,
        )
    else:
        balance_report(
            transactions,
            out,
            account_filter=account_filter,
            show_zero=args.show_zero,
            only_real=args.only_real,
        )

    return 0
