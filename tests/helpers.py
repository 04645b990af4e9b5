import textwrap

from ledger_triggers.parser import parse_string


def dedent(s: str) -> str:
    # Keep internal newlines, but normalize indentation for readability.
    return textwrap.dedent(s).lstrip("\n").rstrip() + "\n"


def parse(s: str):
    return parse_string(dedent(s), filename="ledger.txt")
