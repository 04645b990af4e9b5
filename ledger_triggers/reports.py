"""Text reports over processed transactions.

REPORTS:
- print: the triggers and transactions, in ledger syntax, including the
  postings generated by triggers and the amounts filled in by auto-balance
- register: one row per posting with the running balance of its account
- balance: the final balance of every account, then the grand total

Amounts are shown in dollars rounded half-to-even to two decimal places.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

from decimal import ROUND_HALF_EVEN, Decimal
from typing import IO, List, Optional, Pattern

from beancount.core.number import ZERO

from ledger_triggers.matchers import Trigger
from ledger_triggers.models import Accounts, Posting, PostingKind, Transaction

_CENTS = Decimal("0.01")


def format_amount(amount: Decimal) -> str:
    """Example:
    >>> format_amount(Decimal("-12.345"))
    "$-12.34"
    """
    return "$" + str(amount.quantize(_CENTS, rounding=ROUND_HALF_EVEN))


def _transaction_selected(
    transaction: Transaction, transaction_filter: Optional[Pattern]
) -> bool:
    if transaction_filter is None:
        return True
    return bool(
        transaction_filter.search(transaction.description)
        or transaction_filter.search(transaction.id or "")
    )


def _reported_amount(
    posting: Posting, show_zero: bool, only_real: bool
) -> Optional[Decimal]:
    """Amount a posting contributes to a report, or None to leave it out."""
    amount = posting.amount if posting.amount is not None else ZERO
    if amount == ZERO and not show_zero:
        return None
    if only_real and posting.kind is not PostingKind.REAL:
        return None
    return amount


def print_report(
    triggers: List[Trigger],
    transactions: List[Transaction],
    out: IO[str],
    transaction_filter: Optional[Pattern] = None,
) -> None:
    for trigger in triggers:
        out.write(f"{trigger}\n")
    for transaction in transactions:
        if _transaction_selected(transaction, transaction_filter):
            out.write(f"{transaction}\n")


def register_report(
    transactions: List[Transaction],
    out: IO[str],
    account_filter: Optional[Pattern] = None,
    transaction_filter: Optional[Pattern] = None,
    show_zero: bool = False,
    only_real: bool = False,
) -> None:
    """Print every posting with the running balance of its account.

    Balances accumulate over all postings, including those hidden by the
    account and transaction filters.
    """
    accounts = Accounts()

    for transaction in transactions:
        first = True

        for posting in transaction.postings:
            amount = _reported_amount(posting, show_zero, only_real)
            if amount is None:
                continue

            account = accounts.get(posting.account)
            account.add(amount)

            if account_filter is not None and not account_filter.search(account.name):
                continue
            if not _transaction_selected(transaction, transaction_filter):
                continue

            prefix = ""
            if first:
                date = transaction.date.strftime("%y-%b-%d")
                prefix = f"{date} {transaction.description:<30}"
                first = False

            out.write(
                f"{prefix:<42} {account.name:<40} {format_amount(amount):>14} "
                f"{format_amount(account.balance):>14}\n"
            )


def balance_report(
    transactions: List[Transaction],
    out: IO[str],
    account_filter: Optional[Pattern] = None,
    show_zero: bool = False,
    only_real: bool = False,
) -> None:
    """Print the balance of every account, sorted by name, and the total."""
    accounts = Accounts()

    for transaction in transactions:
        for posting in transaction.postings:
            amount = _reported_amount(posting, show_zero, only_real)
            if amount is not None:
                accounts.get(posting.account).add(amount)

    for name in sorted(accounts.names()):
        account = accounts.get(name)

        if account.balance == ZERO and not show_zero:
            continue
        if account_filter is None or account_filter.search(account.name):
            out.write(f"{format_amount(account.balance):>16} {account.name:<40}\n")

    out.write("---------------- Total\n")
    out.write(f"{format_amount(accounts.total()):>16}\n")
