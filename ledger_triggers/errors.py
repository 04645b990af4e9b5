"""Error types raised while parsing and processing a ledger.

Parse, rule-evaluation and cycle errors are fatal and raised as exceptions.
Imbalances are raised by the per-transaction balancing helpers but collected by
``balancer.balance`` into ``BalanceError`` tuples so that every failing
transaction is reported in a single pass.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"


class LedgerError(Exception):
    """Base class for every error raised by this package."""


class ParseError(LedgerError):
    """Malformed ledger input.

    Args:
        message: Description of the offending construct
        source: Position metadata (``filename`` and ``lineno``) of the line
    """

    def __init__(self, message: str, source: dict | None = None):
        self.message = message
        self.source = source or {}
        super().__init__(str(self))

    def __str__(self) -> str:
        filename = self.source.get("filename", "<unknown>")
        lineno = self.source.get("lineno", 0)
        return f"{filename}:{lineno}: {self.message}"


class DateError(ParseError):
    """A transaction header carries a date that is not YYYY-MM-DD."""


class AmountError(ParseError):
    """An amount field is not a decimal number."""


class FieldCountError(ParseError):
    """A posting or action line has the wrong number of fields."""


class BracketError(ParseError):
    """An account is wrapped in unbalanced parentheses or brackets."""


class MatcherError(ParseError):
    """A trigger header line could not be compiled into a matcher."""


class UnterminatedBlockError(ParseError):
    """A trigger or transaction header was not followed by any body line."""


class RuleEvaluationError(LedgerError):
    """A trigger rule failed while being evaluated against a posting."""


class CycleDetectedError(LedgerError):
    """Triggers kept generating postings past the configured ceiling."""

    def __init__(self, transaction, limit: int):
        self.transaction = transaction
        self.limit = limit
        super().__init__(
            f"posting cycle detected: {len(transaction.postings)} postings "
            f"exceed the limit of {limit}"
        )


class ImbalanceError(LedgerError):
    """A transaction could not be auto-balanced or does not sum to zero."""

    def __init__(self, message: str, transaction):
        self.transaction = transaction
        super().__init__(message)


class OptionsError(LedgerError):
    """The options file is missing, unreadable or does not match the schema."""
