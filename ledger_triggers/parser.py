"""Line-oriented parser for ledger files.

A ledger file is a sequence of records separated by blank lines:

    # Comment lines start with a hash.

    = /^Expenses:(Rent|Utilities)$/
    (Deductible:${1})	0.5	; half is deductible

    2024-01-01=2024-01-03 <INV-17> Paycheck
        Assets:Bank	$1000
        Income:Salary

A record starting with ``=`` is a trigger block: one matcher per ``=`` line,
either ``/regex/`` or ``PY <expression>`` (``JS`` is accepted as a synonym),
followed by one action per line. Any other record is a transaction: a header
``DATE[=SECONDARY_DATE] [<ID> ]DESCRIPTION`` followed by one posting per line.

Posting and action lines hold an account and an amount separated by a tab or
by two or more spaces, plus an optional trailing ``; comment``. Accounts in
parentheses are virtual, accounts in square brackets are balanced virtual.
Amounts may carry a ``$`` sign. Actions require an amount (the multiplier);
one posting per transaction may leave it out. A trailing
``; GeneratedBy=N From=M`` comment restores the provenance of a generated
posting from a printed ledger.

The whole file is parsed before anything else happens, and the first error
aborts the parse with a ``ParseError`` naming the file and line.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import datetime
import logging
import re
from decimal import Decimal
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from beancount.core import data
from beancount.core.number import D

from ledger_triggers.errors import (
    AmountError,
    BracketError,
    DateError,
    FieldCountError,
    MatcherError,
    UnterminatedBlockError,
)
from ledger_triggers.matchers import Action, Matcher, RegexpMatcher, ScriptedMatcher, Trigger
from ledger_triggers.models import Posting, PostingKind, Transaction

logger = logging.getLogger(__name__)

SCRIPT_KEYWORDS = ("PY", "JS")

_FIELD_SEPARATOR = re.compile(r"(?:\t| {2,})\s*")
_AMOUNT = re.compile(r"([+-]?)\s*\$?\s*([+-]?)\s*(.*)")
_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_PROVENANCE = re.compile(r"(?:^|;)\s*GeneratedBy=(\d+) From=(\d+)$")
_DESCRIPTION = re.compile(r"(?:<(.+?)> *)?(.*)")

ParseResult = Tuple[List[Trigger], List[Transaction]]


def parse_file(filename) -> ParseResult:
    """Parse a UTF-8 ledger file.

    Args:
        filename: Path of the ledger file

    Returns:
        Tuple of (triggers, transactions) in file order
    """
    text = Path(filename).read_text(encoding="utf-8")
    return parse_string(text, filename=str(filename))


def parse_string(text: str, filename: str = "<string>") -> ParseResult:
    """Parse ledger text.

    Args:
        text: Ledger contents
        filename: Name used in error positions and posting metadata

    Returns:
        Tuple of (triggers, transactions) in file order

    Raises:
        ParseError: On the first malformed construct.
    """
    return _Parser(text.splitlines(), filename).parse()


class _Parser:
    def __init__(self, lines: List[str], filename: str):
        self.lines = lines
        self.filename = filename
        self.pos = 0

    def _meta(self, index: int) -> dict:
        return data.new_metadata(self.filename, index + 1)

    def parse(self) -> ParseResult:
        triggers: List[Trigger] = []
        transactions: List[Transaction] = []

        while self.pos < len(self.lines):
            line = self.lines[self.pos].strip()
            if not line or line.startswith("#"):
                self.pos += 1
            elif line.startswith("="):
                triggers.append(self._parse_trigger(len(triggers) + 1))
            else:
                transactions.append(self._parse_transaction())

        logger.info(
            f"Parsed {len(triggers)} triggers and {len(transactions)} "
            f"transactions from {self.filename}"
        )
        return triggers, transactions

    def _body(self) -> Iterator[Tuple[int, str]]:
        """Yield the lines of a block body up to a blank line, comment or EOF."""
        while self.pos < len(self.lines):
            line = self.lines[self.pos].strip()
            if not line or line.startswith("#"):
                return
            yield self.pos, line
            self.pos += 1

    def _parse_trigger(self, trigger_id: int) -> Trigger:
        start = self.pos
        trigger = Trigger(id=trigger_id, meta=self._meta(start))

        while self.pos < len(self.lines):
            line = self.lines[self.pos].strip()
            if line.startswith("#"):
                self.pos += 1
            elif line.startswith("="):
                trigger.matchers.append(
                    self._parse_matcher(line[1:].strip(), self._meta(self.pos))
                )
                self.pos += 1
            else:
                break

        for index, line in self._body():
            meta = self._meta(index)
            kind, account, amount, comment = self._split_line(line, meta)
            if amount is None:
                raise FieldCountError(
                    f"trigger action {line!r} requires an amount", meta
                )
            trigger.actions.append(Action(kind, account, amount, comment))

        if not trigger.actions:
            raise UnterminatedBlockError(
                "trigger block ended before any action", self._meta(start)
            )

        logger.debug(
            f"Trigger {trigger_id}: {len(trigger.matchers)} matchers, "
            f"{len(trigger.actions)} actions"
        )
        return trigger

    def _parse_matcher(self, header: str, meta: dict) -> Matcher:
        if len(header) >= 2 and header.startswith("/") and header.endswith("/"):
            try:
                return RegexpMatcher(header[1:-1])
            except re.error as e:
                raise MatcherError(f"invalid regular expression {header!r}: {e}", meta) from e

        keyword, _, expression = header.partition(" ")
        if keyword in SCRIPT_KEYWORDS:
            expression = expression.strip()
            if not expression:
                raise MatcherError(f"empty {keyword} expression", meta)
            try:
                return ScriptedMatcher(expression, keyword)
            except ValueError as e:
                raise MatcherError(f"invalid {keyword} expression {expression!r}: {e}", meta) from e

        raise MatcherError(f"couldn't parse trigger header {header!r}", meta)

    def _parse_transaction(self) -> Transaction:
        start = self.pos
        meta = self._meta(start)
        header = self.lines[start].strip()
        self.pos += 1

        dates, _, rest = header.partition(" ")
        primary, has_secondary, secondary = dates.partition("=")
        found = _DESCRIPTION.fullmatch(rest.strip())

        transaction = Transaction(
            date=_parse_date(primary, meta),
            secondary_date=_parse_date(secondary, meta) if has_secondary else None,
            id=found.group(1),
            description=found.group(2).strip(),
            meta=meta,
        )

        for index, line in self._body():
            posting_meta = self._meta(index)
            kind, account, amount, comment = self._split_line(line, posting_meta)
            posting = Posting(kind, account, amount, comment, meta=posting_meta)
            # Printed ledgers mark generated postings with their provenance
            provenance = _PROVENANCE.search(comment)
            if provenance:
                posting.comment = comment[: provenance.start()].strip()
                posting.generated_by = int(provenance.group(1))
                posting.generated_from = int(provenance.group(2))
            transaction.postings.append(posting)

        if not transaction.postings:
            raise UnterminatedBlockError(
                f"transaction {header!r} ended before any posting", meta
            )
        return transaction

    def _split_line(
        self, line: str, meta: dict
    ) -> Tuple[PostingKind, str, Optional[Decimal], str]:
        """Split a posting or action line into kind, account, amount, comment."""
        body, _, comment = line.partition(";")
        fields = _FIELD_SEPARATOR.split(body.strip())

        if len(fields) > 2 or not fields[0]:
            raise FieldCountError(
                f"expected an account and an optional amount, got {len(fields)} "
                f"fields in {line!r}",
                meta,
            )

        kind, account = _parse_account(fields[0], meta)
        amount = _parse_amount(fields[1], meta) if len(fields) == 2 else None
        return kind, account, amount, comment.strip()


def _parse_date(text: str, meta: dict) -> datetime.date:
    message = f"invalid date {text!r}: expected YYYY-MM-DD"
    if not _DATE.fullmatch(text):
        raise DateError(message, meta)
    try:
        return datetime.datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as e:
        raise DateError(message, meta) from e


def _parse_account(text: str, meta: dict) -> Tuple[PostingKind, str]:
    for kind, opener, closer in (
        (PostingKind.VIRTUAL, "(", ")"),
        (PostingKind.BALANCED_VIRTUAL, "[", "]"),
    ):
        if text.startswith(opener):
            if not text.endswith(closer) or len(text) < 3:
                raise BracketError(f"unmatched {opener!r} in account {text!r}", meta)
            return kind, text[1:-1].strip()
        if text.endswith(closer) and opener not in text:
            raise BracketError(f"unmatched {closer!r} in account {text!r}", meta)
    return PostingKind.REAL, text


def _parse_amount(text: str, meta: dict) -> Decimal:
    sign, inner_sign, number = _AMOUNT.fullmatch(text.strip()).groups()
    # D() would also accept thousands separators and an empty string
    if (sign and inner_sign) or not _NUMBER.fullmatch(number):
        raise AmountError(f"invalid amount {text!r}", meta)
    return D((sign or inner_sign) + number)
