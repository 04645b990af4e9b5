"""Ledger data model: transactions, postings and reporting accounts.

Transactions and postings are mutable on purpose. The trigger engine appends
generated postings to ``Transaction.postings`` while it walks the list, and the
balancer fills in the single elided amount of a transaction in place.

Every model renders back to ledger text with ``str()``, and the rendered text
parses back into an equal structure. Generated postings keep their provenance
through a trailing ``; GeneratedBy=N From=M`` comment.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import datetime
import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from beancount.core.number import ZERO


class PostingKind(enum.Enum):
    """How a posting takes part in the zero-sum balance check."""

    REAL = "real"
    VIRTUAL = "virtual"
    BALANCED_VIRTUAL = "balanced_virtual"

    def format(self, account: str) -> str:
        """Wrap an account name the way it is written in the ledger.

        Example:
            >>> PostingKind.VIRTUAL.format("Budget:Food")
            "(Budget:Food)"
        """
        if self is PostingKind.VIRTUAL:
            return f"({account})"
        if self is PostingKind.BALANCED_VIRTUAL:
            return f"[{account}]"
        return account


@dataclass
class Posting:
    """One account/amount line of a transaction.

    ``amount`` is None for the elided posting that auto-balance fills in.
    ``generated_by`` is the id of the trigger that produced the posting and
    ``generated_from`` the 1-based index of the posting it was produced from;
    both are 0 for postings written by the user.
    """

    kind: PostingKind
    account: str
    amount: Optional[Decimal] = None
    comment: str = ""
    generated_by: int = 0
    generated_from: int = 0
    meta: Optional[dict] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        text = self.kind.format(self.account)
        if self.amount is not None:
            text += f"\t{self.amount}"
        if self.comment:
            text += f"; {self.comment}"
        if self.generated_by:
            text += f"; GeneratedBy={self.generated_by} From={self.generated_from}"
        return text


@dataclass
class Transaction:
    """A dated, described group of postings."""

    date: datetime.date
    description: str
    postings: List[Posting] = field(default_factory=list)
    secondary_date: Optional[datetime.date] = None
    id: Optional[str] = None
    meta: Optional[dict] = field(default=None, compare=False, repr=False)

    def header(self) -> str:
        text = self.date.isoformat()
        if self.secondary_date is not None:
            text += f"={self.secondary_date.isoformat()}"
        if self.id:
            text += f" <{self.id}>"
        return f"{text} {self.description}"

    def __str__(self) -> str:
        lines = [self.header()]
        lines.extend(f"\t{posting}" for posting in self.postings)
        return "\n".join(lines) + "\n"


@dataclass
class Account:
    """Running balance of one account, used by the reports."""

    name: str
    balance: Decimal = ZERO

    def add(self, amount: Decimal) -> None:
        self.balance += amount


class Accounts:
    """Name-keyed registry of ``Account`` objects, created on first use."""

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}

    def get(self, name: str) -> Account:
        if name not in self._accounts:
            self._accounts[name] = Account(name)
        return self._accounts[name]

    def names(self) -> List[str]:
        return list(self._accounts)

    def total(self) -> Decimal:
        return sum((a.balance for a in self._accounts.values()), ZERO)

