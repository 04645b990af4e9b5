"""Plain-text double-entry ledger with posting triggers.

This package reads a ledger of dated transactions together with triggers,
rules that match postings and generate derived postings (for example a tax
line computed as a percentage of an expense). After the triggers have run,
every transaction is balanced: one elided amount is filled in and the
non-virtual postings must sum to zero.

MODULES:

1. parser
   - Parses ledger text into triggers and transactions
   - Rejects the whole file on the first error, naming file and line
   Usage: triggers, transactions = parse_file("ledger.txt")

2. matchers / sandbox
   - Regular expression and scripted matchers, actions with ``${name}``
     account templates
   - Scripted matchers evaluate restricted Python expressions with the
     ``fy()`` fiscal year helper

3. triggers
   - Applies triggers to every posting, including generated ones, until no
     trigger fires; stops runaway rules with a posting ceiling
   Usage: apply_triggers(triggers, transactions, cycle_limit=1000)

4. balancer
   - Fills the elided amount and checks the zero-sum invariant
   - Collects every failure instead of stopping at the first
   Usage: errors = balance(transactions)

5. reports / cli
   - print, register and balance reports
   Usage: ledger-triggers --file ledger.txt --mode register
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

from ledger_triggers.balancer import balance
from ledger_triggers.parser import parse_file, parse_string
from ledger_triggers.triggers import apply_triggers

__all__ = ["apply_triggers", "balance", "parse_file", "parse_string"]
