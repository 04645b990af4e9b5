import io

import pytest

from ledger_triggers.cli import main, process
from ledger_triggers.errors import CycleDetectedError
from ledger_triggers.options import LedgerOptions
from tests.helpers import parse

RENT_LEDGER = r"""
    = /^Expenses:(\w+)$/
        (Tax:${1})  0.1

    2024-02-01 Rent
        Expenses:Rent  1500
        Assets:Bank  -1500

    2024-01-01 Paycheck
        Assets:Bank  $1000
        Income:Salary
"""

CYCLE_LEDGER = """
    = /^A/
        B  1

    = /^B/
        A  1

    2024-01-01 Loop
        A  1
        X
"""


def _run(args):
    out = io.StringIO()
    code = main(args, out=out)
    return code, out.getvalue()


def test_balance_mode(write_ledger):
    path = write_ledger(RENT_LEDGER)

    code, output = _run(["--file", str(path)])

    assert code == 0
    rows = [line.split() for line in output.splitlines()]
    assert rows == [
        ["$-500.00", "Assets:Bank"],
        ["$1500.00", "Expenses:Rent"],
        ["$-1000.00", "Income:Salary"],
        ["$150.00", "Tax:Rent"],
        ["----------------", "Total"],
        ["$150.00"],
    ]


def test_print_mode_sorts_by_date(write_ledger):
    path = write_ledger(RENT_LEDGER)

    code, output = _run(["--file", str(path), "--mode", "print"])

    assert code == 0
    assert output.index("Paycheck") < output.index("Rent\n")
    assert "\t(Tax:Rent)\t150.0; GeneratedBy=1 From=1\n" in output
    assert "\tAssets:Bank\t-1500\n" in output


def test_print_mode_without_processing(write_ledger):
    path = write_ledger(RENT_LEDGER)

    code, output = _run(
        ["--file", str(path), "--mode", "print", "--no-sort", "--no-triggers", "--no-balance"]
    )

    assert code == 0
    assert output.index("Rent\n") < output.index("Paycheck")
    assert "GeneratedBy" not in output
    assert "\tIncome:Salary\n" in output


def test_register_mode_with_filters(write_ledger):
    path = write_ledger(RENT_LEDGER)

    code, output = _run(
        ["--file", str(path), "--mode", "register", "--only-real", "--account", "Bank"]
    )

    assert code == 0
    assert [line.split() for line in output.splitlines()] == [
        ["24-Jan-01", "Paycheck", "Assets:Bank", "$1000.00", "$1000.00"],
        ["24-Feb-01", "Rent", "Assets:Bank", "$-1500.00", "$-500.00"],
    ]


def test_balancing_errors_are_all_reported(write_ledger):
    path = write_ledger(
        """
        2024-01-01 Two elided
            Assets:Bank  1
            Income:A
            Income:B

        2024-01-02 Off
            Assets:Bank  1
            Income:Salary  -2
        """
    )

    code, output = _run(["--file", str(path)])

    assert code == 1
    assert f"{path}:1: AutoBalance: a transaction may only have one elided value" in output
    assert f"{path}:6: Balance: transactions must balance to zero; instead got -1" in output
    assert "2024-01-02 Off\n\tAssets:Bank\t1\n" in output


def test_cycle_is_reported(write_ledger):
    path = write_ledger(CYCLE_LEDGER)

    code, output = _run(["--file", str(path), "--cycle-limit", "20"])

    assert code == 1
    assert output.startswith("posting cycle detected\n\n2024-01-01 Loop\n")


def test_cycle_can_abort(write_ledger):
    path = write_ledger(CYCLE_LEDGER)

    with pytest.raises(CycleDetectedError):
        main(["--file", str(path), "--cycle-limit", "20", "--on-cycle", "abort"], out=io.StringIO())


def test_options_file(write_ledger, tmp_path):
    path = write_ledger(CYCLE_LEDGER)
    config = tmp_path / "options.yaml"
    config.write_text("cycle_limit: 30\non_cycle: abort\n", encoding="utf-8")

    with pytest.raises(CycleDetectedError) as excinfo:
        main(["--file", str(path), "--config", str(config)], out=io.StringIO())

    assert excinfo.value.limit == 30


def test_invalid_options_file(write_ledger, tmp_path, capsys):
    path = write_ledger(RENT_LEDGER)
    config = tmp_path / "options.yaml"
    config.write_text("cycle_limit: many\n", encoding="utf-8")

    code, _ = _run(["--file", str(path), "--config", str(config)])

    assert code == 1
    assert "expected int, got str" in capsys.readouterr().err


def test_parse_error(write_ledger, capsys):
    path = write_ledger(
        """
        2024-01-01 Bad
            Assets:Bank  lots
            Income:Salary
        """
    )

    code, output = _run(["--file", str(path)])

    assert code == 1
    assert output == ""
    assert f"{path}:2: invalid amount 'lots'" in capsys.readouterr().err


def test_missing_ledger(tmp_path, capsys):
    code, _ = _run(["--file", str(tmp_path / "missing.txt")])

    assert code == 1
    assert "cannot read ledger" in capsys.readouterr().err


def test_rule_error(write_ledger, capsys):
    path = write_ledger(
        """
        = PY p.amount > 0
            (Positive)  1

        2024-01-01 Paycheck
            Assets:Bank  1000
            Income:Salary
        """
    )

    code, _ = _run(["--file", str(path)])

    assert code == 1
    assert "failed on posting to 'Income:Salary'" in capsys.readouterr().err


def test_invalid_filter_regex(write_ledger):
    path = write_ledger(RENT_LEDGER)

    with pytest.raises(SystemExit) as excinfo:
        main(["--file", str(path), "--account", "("], out=io.StringIO())

    assert excinfo.value.code == 2


def test_process_respects_options():
    triggers, transactions = parse(RENT_LEDGER)

    errors = process(
        triggers,
        transactions,
        LedgerOptions(sort=False, triggers=False, check_balance=False),
    )

    assert errors == []
    assert [t.description for t in transactions] == ["Rent", "Paycheck"]
    assert [len(t.postings) for t in transactions] == [2, 2]
    assert transactions[1].postings[1].amount == -1000
