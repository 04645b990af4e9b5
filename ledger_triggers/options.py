"""Processing options, optionally loaded from a YAML file.

CONFIG FILE FORMAT:

    sort: true            # order transactions by date before processing
    triggers: true        # run the trigger rewrite engine
    auto_balance: true    # fill elided amounts
    check_balance: true   # verify that transactions sum to zero
    cycle_limit: 1000     # maximum postings per transaction
    on_cycle: report      # report: print and exit 1; abort: raise

Every key is optional. Unknown keys, values of the wrong type and values
outside ``allowed_values`` are rejected.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

import yaml

from ledger_triggers.errors import OptionsError
from ledger_triggers.triggers import DEFAULT_CYCLE_LIMIT

logger = logging.getLogger(__name__)

SCHEMA = {
    "sort": {"type": "bool"},
    "triggers": {"type": "bool"},
    "auto_balance": {"type": "bool"},
    "check_balance": {"type": "bool"},
    "cycle_limit": {"type": "int", "minimum": 1},
    "on_cycle": {"type": "string", "allowed_values": ["report", "abort"]},
}


@dataclass(frozen=True)
class LedgerOptions:
    sort: bool = True
    triggers: bool = True
    auto_balance: bool = True
    check_balance: bool = True
    cycle_limit: int = DEFAULT_CYCLE_LIMIT
    on_cycle: str = "report"


def load_options(path) -> LedgerOptions:
    """Load options from a YAML file.

    Args:
        path: Path of the options file

    Returns:
        LedgerOptions with the file's values over the defaults

    Raises:
        OptionsError: If the file is missing, unreadable or invalid.
    """
    config_path = Path(path)

    if not config_path.exists():
        raise OptionsError(f"Options file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise OptionsError(f"Failed to load options file {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise OptionsError(
            f"Options file {config_path} must contain a mapping, "
            f"got {type(config_data).__name__}"
        )

    violations = validate_options(config_data)
    if violations:
        raise OptionsError(
            f"Invalid options file {config_path}: " + "; ".join(violations)
        )

    logger.info(f"Loaded {len(config_data)} options from {config_path}")
    return LedgerOptions(**config_data)


def validate_options(values: dict) -> List[str]:
    """Check option values against the schema; returns violation messages."""
    violations = []

    for key, value in values.items():
        if key not in SCHEMA:
            violations.append(f"unknown option '{key}'")
            continue

        schema = SCHEMA[key]
        if not _check_type(value, schema["type"]):
            violations.append(
                f"invalid type for option '{key}': expected {schema['type']}, "
                f"got {type(value).__name__}"
            )
            continue

        allowed_values = schema.get("allowed_values")
        if allowed_values and value not in allowed_values:
            violations.append(
                f"invalid value '{value}' for option '{key}' "
                f"(allowed: {', '.join(allowed_values)})"
            )

        minimum = schema.get("minimum")
        if minimum is not None and value < minimum:
            violations.append(f"option '{key}' must be at least {minimum}, got {value}")

    return violations


def _check_type(value: Any, type_name: str) -> bool:
    if type_name == "string":
        return isinstance(value, str)
    elif type_name == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    elif type_name == "bool":
        return isinstance(value, bool)
    else:
        return False
