from decimal import Decimal

import pytest

from ledger_triggers.errors import CycleDetectedError, RuleEvaluationError
from ledger_triggers.models import PostingKind
from ledger_triggers.triggers import apply_triggers
from tests.helpers import parse


def _summary(transaction):
    return [
        (p.account, p.amount, p.generated_by, p.generated_from)
        for p in transaction.postings
    ]


def test_trigger_appends_generated_postings_with_provenance():
    triggers, transactions = parse(
        r"""
        = /^Expenses:(\w+)$/
            (Tax:${1})  0.1  ; estimated tax

        2024-01-05 Lunch
            Expenses:Food  $20
            Assets:Cash  -20
        """
    )

    generated = apply_triggers(triggers, transactions)

    assert generated == 1
    txn = transactions[0]
    assert _summary(txn) == [
        ("Expenses:Food", Decimal("20"), 0, 0),
        ("Assets:Cash", Decimal("-20"), 0, 0),
        ("Tax:Food", Decimal("2.0"), 1, 1),
    ]
    assert txn.postings[2].kind is PostingKind.VIRTUAL
    assert txn.postings[2].comment == "estimated tax"


def test_trigger_does_not_refire_on_its_own_output():
    triggers, transactions = parse(
        """
        = /^Expenses/
            Expenses:Tax  0.1

        2024-01-05 Lunch
            Expenses:Food  $20
            Assets:Cash
        """
    )

    apply_triggers(triggers, transactions, cycle_limit=10)

    assert _summary(transactions[0]) == [
        ("Expenses:Food", Decimal("20"), 0, 0),
        ("Assets:Cash", None, 0, 0),
        ("Expenses:Tax", Decimal("2.0"), 1, 1),
    ]


def test_later_trigger_matches_postings_generated_by_earlier_one():
    triggers, transactions = parse(
        r"""
        = /^Expenses:(\w+)$/
            (Budget:${1})  -1

        = /^Budget:/
            (Report:${account})  1

        2024-01-05 Lunch
            Expenses:Food  20
            Assets:Cash  -20
        """
    )

    apply_triggers(triggers, transactions)

    assert _summary(transactions[0]) == [
        ("Expenses:Food", Decimal("20"), 0, 0),
        ("Assets:Cash", Decimal("-20"), 0, 0),
        ("Budget:Food", Decimal("-20"), 1, 1),
        ("Report:Budget:Food", Decimal("-20"), 2, 3),
    ]


def test_triggers_fire_in_declaration_order():
    triggers, transactions = parse(
        """
        = /^Expenses/
            (First)  1
            (Second)  2

        = /^Expenses/
            (Third)  3

        2024-01-05 Lunch
            Expenses:Food  1
            Assets:Cash  -1
        """
    )

    apply_triggers(triggers, transactions)

    accounts = [p.account for p in transactions[0].postings[2:]]
    assert accounts == ["First", "Second", "Third"]


def test_every_matcher_must_accept_the_posting():
    triggers, transactions = parse(
        """
        = /^Expenses/
        = PY p.amount > 100
            (Large)  1

        2024-01-05 Shopping
            Expenses:Food  50
            Expenses:Furniture  500
            Assets:Cash
        """
    )

    apply_triggers(triggers, transactions)

    assert _summary(transactions[0])[3:] == [("Large", Decimal("500"), 1, 2)]


def test_scripted_captures_feed_account_template():
    triggers, transactions = parse(
        """
        = PY {"fy": fy(tx.date)} if p.account == "Expenses:Rent" else None
            [Deductible:${fy}:Rent]  0.5
            [Assets:Deductions]  -0.5

        2024-03-01 Rent
            Expenses:Rent  1500
            Assets:Bank  -1500

        2024-09-01 Rent
            Expenses:Rent  1500
            Assets:Bank  -1500
        """
    )

    apply_triggers(triggers, transactions)

    assert [p.account for p in transactions[0].postings[2:]] == [
        "Deductible:FY2324:Rent",
        "Assets:Deductions",
    ]
    assert [p.account for p in transactions[1].postings[2:]] == [
        "Deductible:FY2425:Rent",
        "Assets:Deductions",
    ]


def test_mutually_matching_triggers_raise_cycle_error():
    triggers, transactions = parse(
        """
        = /^A/
            B  1

        = /^B/
            A  1

        2024-01-01 Loop
            A  1
            X
        """
    )

    with pytest.raises(CycleDetectedError) as excinfo:
        apply_triggers(triggers, transactions, cycle_limit=50)

    assert excinfo.value.transaction is transactions[0]
    assert excinfo.value.limit == 50
    assert 50 < len(transactions[0].postings) <= 52
    assert "posting cycle detected" in str(excinfo.value)


def test_self_exclusion_stays_below_cycle_limit():
    triggers, transactions = parse(
        """
        = /^Expenses/
            Expenses:Tax  0.1

        2024-01-01 Many
            Expenses:A  1
            Expenses:B  1
            Expenses:C  1
            Expenses:D  1
            Assets:Cash
        """
    )

    apply_triggers(triggers, transactions, cycle_limit=9)

    assert len(transactions[0].postings) == 9


def test_matching_an_elided_posting_is_fatal():
    triggers, transactions = parse(
        """
        = /^Income/
            (Tax)  -0.2

        2024-01-01 Paycheck
            Assets:Bank  1000
            Income:Salary
        """
    )

    with pytest.raises(RuleEvaluationError):
        apply_triggers(triggers, transactions)


def test_no_triggers_leaves_transactions_untouched():
    _, transactions = parse(
        """
        2024-01-01 Paycheck
            Assets:Bank  1000
            Income:Salary
        """
    )

    assert apply_triggers([], transactions) == 0
    assert len(transactions[0].postings) == 2
