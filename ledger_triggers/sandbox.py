"""Restricted expression language for scripted trigger matchers.

A scripted matcher header looks like:

    = PY p.account.startswith("Expenses:") and fy(tx.date) == "FY2324"

The expression is Python syntax, parsed and validated against a restricted AST
before it is compiled. It is evaluated with empty builtins and sees only two
read-only views, ``tx`` (the transaction) and ``p`` (the candidate posting),
plus the helper functions registered in its globals at compile time.

Allowed:
  - Comparisons, membership, ``and``/``or``/``not``
  - Arithmetic: + - * / // %
  - Literals: numbers, strings, booleans, None, lists, tuples, dicts
  - Conditional expressions, subscripts, slices, f-strings
  - Attribute access to public attributes (no leading underscore)
  - Calls to the registered helpers and to a fixed set of string methods
  - ``true``/``false``/``null`` as spellings of True/False/None
    (captures render those values back as ``true``, ``false`` and ``null``)

Rejected:
  - Lambdas, comprehensions, walrus, arbitrary names and function calls,
    private or dunder attribute access
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import ast
import datetime
import re
from collections import namedtuple
from typing import Any, List

from beancount.core.number import D

TransactionView = namedtuple(
    "TransactionView", "date secondary_date id description postings"
)
PostingView = namedtuple("PostingView", "kind account amount comment")

# Methods callable on values reachable from the views
ALLOWED_METHODS: frozenset[str] = frozenset(
    {
        "startswith",
        "endswith",
        "lower",
        "upper",
        "strip",
        "split",
        "replace",
        "isoformat",
        "get",
    }
)

_COMPARE_OPS = (
    ast.Eq,
    ast.NotEq,
    ast.Lt,
    ast.LtE,
    ast.Gt,
    ast.GtE,
    ast.In,
    ast.NotIn,
    ast.Is,
    ast.IsNot,
)
_BINARY_OPS = (ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod)
_UNARY_OPS = (ast.Not, ast.USub, ast.UAdd)


def fy(date) -> str:
    """Return the fiscal year label for a date.

    Fiscal years run July to June: a date in the first half of the calendar
    year belongs to the fiscal year that started the previous July.

    Example:
        >>> fy(datetime.date(2024, 3, 1))
        'FY2324'
        >>> fy(datetime.date(2024, 9, 1))
        'FY2425'
    """
    if isinstance(date, str):
        date = datetime.date.fromisoformat(date)
    year = date.year
    if date.month <= 6:
        return f"FY{(year - 1) % 100:02d}{year % 100:02d}"
    return f"FY{year % 100:02d}{(year + 1) % 100:02d}"


def search(pattern: str, string: str) -> dict | None:
    """Regex search usable from expressions; returns captures or None."""
    match = re.search(pattern, string)
    if match is None:
        return None
    captures = {str(i): value or "" for i, value in enumerate(match.groups(), 1)}
    captures["0"] = match.group(0)
    captures.update({k: v or "" for k, v in match.groupdict().items()})
    return captures


def make_globals() -> dict:
    """Build the global scope an expression is evaluated in."""
    return {
        "__builtins__": {},
        "fy": fy,
        "search": search,
        "abs": abs,
        "len": len,
        "str": str,
        "int": int,
        "D": D,
        "true": True,
        "false": False,
        "null": None,
    }


ALLOWED_NAMES: frozenset[str] = frozenset(
    (set(make_globals()) - {"__builtins__"}) | {"tx", "p"}
)


def validate_expression(expression: str) -> List[str]:
    """Validate an expression against the restricted AST.

    Returns a list of error messages. Empty list means the expression is valid.
    """
    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as e:
        return [f"Syntax error: {e.msg}"]

    errors: List[str] = []
    _validate_node(tree.body, errors)
    return errors


def _validate_node(node: ast.AST, errors: List[str]) -> None:
    if isinstance(node, ast.BoolOp):
        for value in node.values:
            _validate_node(value, errors)

    elif isinstance(node, ast.UnaryOp):
        if not isinstance(node.op, _UNARY_OPS):
            errors.append(f"Disallowed unary operator: {type(node.op).__name__}")
        _validate_node(node.operand, errors)

    elif isinstance(node, ast.Compare):
        _validate_node(node.left, errors)
        for comparator in node.comparators:
            _validate_node(comparator, errors)
        for op in node.ops:
            if not isinstance(op, _COMPARE_OPS):
                errors.append(f"Disallowed comparison: {type(op).__name__}")

    elif isinstance(node, ast.BinOp):
        if not isinstance(node.op, _BINARY_OPS):
            errors.append(f"Disallowed binary operator: {type(node.op).__name__}")
        _validate_node(node.left, errors)
        _validate_node(node.right, errors)

    elif isinstance(node, ast.Call):
        func = node.func
        if isinstance(func, ast.Name) and func.id in ALLOWED_NAMES:
            pass
        elif isinstance(func, ast.Attribute) and func.attr in ALLOWED_METHODS:
            _validate_node(func.value, errors)
        else:
            errors.append(f"Disallowed function call: {_get_name(func)}")
        for arg in node.args:
            _validate_node(arg, errors)
        for kw in node.keywords:
            _validate_node(kw.value, errors)

    elif isinstance(node, ast.Attribute):
        if node.attr.startswith("_"):
            errors.append(f"Disallowed attribute access: {_get_name(node)}")
        _validate_node(node.value, errors)

    elif isinstance(node, ast.Name):
        if node.id not in ALLOWED_NAMES:
            errors.append(f"Disallowed name: {node.id}")

    elif isinstance(node, ast.Constant):
        if not isinstance(node.value, (int, float, str, bool, type(None))):
            errors.append(f"Disallowed constant type: {type(node.value).__name__}")

    elif isinstance(node, (ast.List, ast.Tuple)):
        for elt in node.elts:
            _validate_node(elt, errors)

    elif isinstance(node, ast.Dict):
        for key in node.keys:
            if key is None:
                errors.append("Dict unpacking is not allowed")
            else:
                _validate_node(key, errors)
        for value in node.values:
            _validate_node(value, errors)

    elif isinstance(node, ast.IfExp):
        _validate_node(node.test, errors)
        _validate_node(node.body, errors)
        _validate_node(node.orelse, errors)

    elif isinstance(node, ast.Subscript):
        _validate_node(node.value, errors)
        _validate_node(node.slice, errors)

    elif isinstance(node, ast.Slice):
        for part in (node.lower, node.upper, node.step):
            if part is not None:
                _validate_node(part, errors)

    elif isinstance(node, ast.JoinedStr):
        for value in node.values:
            _validate_node(value, errors)

    elif isinstance(node, ast.FormattedValue):
        _validate_node(node.value, errors)
        if node.format_spec is not None:
            _validate_node(node.format_spec, errors)

    else:
        errors.append(f"Disallowed expression: {type(node).__name__}")


def _get_name(node: ast.AST) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return f"{_get_name(node.value)}.{node.attr}"
    return type(node).__name__


class Expression:
    """A validated, compiled expression with its own global scope.

    Raises:
        ValueError: If the expression fails validation.
    """

    def __init__(self, source: str):
        errors = validate_expression(source)
        if errors:
            raise ValueError("; ".join(errors))
        self.source = source
        self._code = compile(ast.parse(source, mode="eval"), "<trigger>", "eval")
        self._globals = make_globals()

    def evaluate(self, transaction_view: TransactionView, posting_view: PostingView) -> Any:
        return eval(self._code, self._globals, {"tx": transaction_view, "p": posting_view})


def posting_view(posting) -> PostingView:
    return PostingView(
        kind=posting.kind.value,
        account=posting.account,
        amount=posting.amount,
        comment=posting.comment,
    )


def transaction_view(transaction) -> TransactionView:
    return TransactionView(
        date=transaction.date,
        secondary_date=transaction.secondary_date,
        id=transaction.id,
        description=transaction.description,
        postings=tuple(posting_view(p) for p in transaction.postings),
    )
