"""Transaction balancing: elided amounts and the zero-sum check.

WHAT IT DOES:
- Auto-balance: a transaction may leave the amount of one posting out. That
  posting receives the negated sum of every other posting, virtual ones
  included.
- Balance check: the amounts of all postings that are not virtual (real and
  balanced virtual alike) must sum to exactly zero.

Balanced virtual postings are only checked as part of that aggregate sum; a
bracketed group that does not net to zero on its own goes unnoticed as long as
the transaction as a whole balances.

ERROR REPORTING:
The per-transaction helpers raise ``ImbalanceError``. ``balance()`` runs them
over all transactions and collects every failure as a ``BalanceError`` so the
whole ledger is checked in one pass:

    ledger.txt:12: a transaction may only have one elided value
    ledger.txt:20: transactions must balance to zero; instead got 0.01
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import logging
from typing import List

from beancount.core.interpolate import BalanceError
from beancount.core.number import ZERO

from ledger_triggers.errors import ImbalanceError
from ledger_triggers.models import PostingKind, Transaction

logger = logging.getLogger(__name__)


def autobalance_transaction(transaction: Transaction) -> None:
    """Fill in the one elided amount of a transaction, if any.

    Raises:
        ImbalanceError: If more than one posting has no amount. No posting is
            modified in that case.
    """
    elided = [p for p in transaction.postings if p.amount is None]

    if not elided:
        return
    if len(elided) > 1:
        raise ImbalanceError(
            "AutoBalance: a transaction may only have one elided value", transaction
        )

    total = sum(
        (p.amount for p in transaction.postings if p.amount is not None), ZERO
    )
    elided[0].amount = -total
    logger.debug(
        f"Filled {elided[0].account} with {-total} on {transaction.date} "
        f"({transaction.description})"
    )


def check_transaction_balance(transaction: Transaction) -> None:
    """Verify that the non-virtual postings of a transaction sum to zero.

    Raises:
        ImbalanceError: If the sum is not zero or an amount is still elided.
    """
    total = ZERO

    for posting in transaction.postings:
        if posting.kind is PostingKind.VIRTUAL:
            continue
        if posting.amount is None:
            raise ImbalanceError(
                f"Balance: posting to {posting.account} has no amount", transaction
            )
        total += posting.amount

    if total != ZERO:
        raise ImbalanceError(
            f"Balance: transactions must balance to zero; instead got {total}",
            transaction,
        )


def balance(
    transactions: List[Transaction],
    auto_balance: bool = True,
    check_balance: bool = True,
) -> List[BalanceError]:
    """Auto-balance and check every transaction.

    Args:
        transactions: Transactions to balance, modified in place
        auto_balance: Fill elided amounts
        check_balance: Verify the zero-sum invariant (after auto-balance)

    Returns:
        List of BalanceError, one per failed step of a transaction
    """
    errors: List[BalanceError] = []

    steps = []
    if auto_balance:
        steps.append(autobalance_transaction)
    if check_balance:
        steps.append(check_transaction_balance)

    for transaction in transactions:
        for step in steps:
            try:
                step(transaction)
            except ImbalanceError as e:
                errors.append(
                    BalanceError(
                        source=transaction.meta or {"filename": "unknown", "lineno": 0},
                        message=str(e),
                        entry=transaction,
                    )
                )

    if errors:
        logger.warning(f"Found {len(errors)} balancing errors")
    else:
        logger.info(f"All {len(transactions)} transactions balance")

    return errors
