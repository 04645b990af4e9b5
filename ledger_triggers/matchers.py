"""Trigger matchers and actions.

A trigger pairs one or more matchers with one or more actions:

    = /^Expenses:(\\w+)$/
    = PY p.amount > 100
    (Tax:${1})	0.1	; estimated tax

Every matcher must accept a posting for the trigger to fire (AND semantics).
Matchers report captures, string values that actions substitute into their
account templates with the ``${name}`` syntax. ``${account}`` always refers to
the account of the matched posting.

MATCHER KINDS:
- ``RegexpMatcher``: regular expression searched in the posting's account.
  Captures are the group numbers as strings, "0" being the whole match.
- ``ScriptedMatcher``: restricted expression (see ``sandbox``) evaluated with
  the transaction and posting. Returning None or False means no match, True a
  match without captures, and a dict a match whose items become the captures.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ledger_triggers import sandbox
from ledger_triggers.errors import RuleEvaluationError
from ledger_triggers.models import Posting, PostingKind, Transaction

Captures = Dict[str, str]

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")


def _capture_text(value) -> str:
    """Stringify a capture value, spelling booleans and None as true/false/null."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@runtime_checkable
class Matcher(Protocol):
    """Predicate over a posting in the context of its transaction."""

    def match(self, transaction: Transaction, posting: Posting) -> Tuple[bool, Captures]:
        ...


class RegexpMatcher:
    def __init__(self, pattern: str):
        self.regex = re.compile(pattern)

    def match(self, transaction: Transaction, posting: Posting) -> Tuple[bool, Captures]:
        found = self.regex.search(posting.account)
        if found is None:
            return False, {}
        captures = {"0": found.group(0)}
        for i, value in enumerate(found.groups(), 1):
            captures[str(i)] = value or ""
        return True, captures

    def __str__(self) -> str:
        return f"/{self.regex.pattern}/"


class ScriptedMatcher:
    """Matcher backed by a sandboxed expression.

    The matcher only talks to the expression through
    ``Expression.evaluate(transaction_view, posting_view)``; the rest of the
    engine knows nothing about how expressions are evaluated.

    Raises:
        RuleEvaluationError: If the expression raises or returns a value that
            is not None, a bool or a dict.
    """

    def __init__(self, source: str, keyword: str = "PY"):
        self.expression = sandbox.Expression(source)
        self.keyword = keyword

    def match(self, transaction: Transaction, posting: Posting) -> Tuple[bool, Captures]:
        try:
            result = self.expression.evaluate(
                sandbox.transaction_view(transaction), sandbox.posting_view(posting)
            )
        except Exception as e:
            raise RuleEvaluationError(
                f"expression {self.expression.source!r} failed on posting to "
                f"{posting.account!r}: {e}"
            ) from e

        if result is None:
            return False, {}
        if isinstance(result, bool):
            return result, {}
        if isinstance(result, dict):
            return True, {str(k): _capture_text(v) for k, v in result.items()}

        raise RuleEvaluationError(
            f"expression {self.expression.source!r} returned unsupported type "
            f"{type(result).__name__}"
        )

    def __str__(self) -> str:
        return f"{self.keyword} {self.expression.source}"


def substitute_account(template: str, account: str, captures: Captures) -> str:
    """Replace the ``${name}`` placeholders of an account template.

    Example:
        >>> substitute_account("${1}:tax", "Expenses:Rent", {"1": "rent"})
        "rent:tax"
        >>> substitute_account("(${account})", "Expenses:Rent", {})
        "(Expenses:Rent)"
    """

    def replace(found: re.Match) -> str:
        name = found.group(1)
        if name == "account":
            return account
        return captures.get(name, "")

    return _PLACEHOLDER.sub(replace, template)


@dataclass
class Action:
    """Template for a posting generated when a trigger fires."""

    kind: PostingKind
    account: str
    multiplier: Decimal
    comment: str = ""

    def execute(self, posting: Posting, captures: Captures) -> Posting:
        """Build the posting this action generates from a matched posting.

        Raises:
            RuleEvaluationError: If the matched posting has no amount yet.
        """
        if posting.amount is None:
            raise RuleEvaluationError(
                f"cannot apply action {self} to the elided posting to "
                f"{posting.account!r}"
            )
        return Posting(
            kind=self.kind,
            account=substitute_account(self.account, posting.account, captures),
            amount=posting.amount * self.multiplier,
            comment=self.comment,
        )

    def __str__(self) -> str:
        text = f"{self.kind.format(self.account)}\t{self.multiplier}"
        if self.comment:
            text += f"; {self.comment}"
        return text


@dataclass
class Trigger:
    """Matchers and actions declared together in a trigger block."""

    id: int
    matchers: List[Matcher] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    meta: Optional[dict] = field(default=None, compare=False, repr=False)

    def match(self, transaction: Transaction, posting: Posting) -> Tuple[bool, Captures]:
        """Evaluate every matcher, stopping at the first one that fails.

        Captures of later matchers overwrite those of earlier ones.
        """
        captures: Captures = {}
        for matcher in self.matchers:
            matched, found = matcher.match(transaction, posting)
            if not matched:
                return False, {}
            captures.update(found)
        return True, captures

    def __str__(self) -> str:
        lines = [f"= {matcher}" for matcher in self.matchers]
        lines.extend(f"\t{action}" for action in self.actions)
        return "\n".join(lines) + "\n"
