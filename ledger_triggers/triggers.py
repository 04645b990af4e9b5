"""Trigger rewrite engine.

Applies triggers to every posting of every transaction, appending the postings
their actions generate. Generated postings are appended to the same list that
is being walked, so they are themselves offered to every trigger: the scan is
a fixpoint over a growing list, bounded by a ceiling on the number of postings
a single transaction may reach.

HOW IT WORKS:
For each transaction, walk the postings by index, re-reading the length on
every step. For each posting, offer it to each trigger in declaration order:
- A trigger never sees the postings it generated itself
- All of the trigger's matchers must accept the posting
- Each action then appends one posting, recording the trigger id and the
  1-based index of the posting that caused it

Two triggers that keep matching each other's output would never terminate;
once a transaction holds more than ``cycle_limit`` postings the engine raises
``CycleDetectedError``.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import logging
from typing import List

from ledger_triggers.errors import CycleDetectedError
from ledger_triggers.matchers import Trigger
from ledger_triggers.models import Transaction

logger = logging.getLogger(__name__)

DEFAULT_CYCLE_LIMIT = 1000


def apply_triggers(
    triggers: List[Trigger],
    transactions: List[Transaction],
    cycle_limit: int = DEFAULT_CYCLE_LIMIT,
) -> int:
    """Run every trigger against every posting, in place.

    Args:
        triggers: Triggers in declaration order
        transactions: Transactions to rewrite
        cycle_limit: Maximum number of postings a transaction may reach

    Returns:
        Number of postings generated

    Raises:
        CycleDetectedError: If a transaction grows past ``cycle_limit``.
        RuleEvaluationError: If a scripted matcher or an action fails.
    """
    generated = 0

    if not triggers:
        return generated

    for transaction in transactions:
        postings = transaction.postings

        i = 0
        while i < len(postings):
            posting = postings[i]

            for trigger in triggers:
                if posting.generated_by == trigger.id:
                    continue

                matched, captures = trigger.match(transaction, posting)
                if not matched:
                    continue

                logger.debug(
                    f"Trigger {trigger.id} matched {posting.account} on "
                    f"{transaction.date} ({transaction.description})"
                )

                for action in trigger.actions:
                    new_posting = action.execute(posting, captures)
                    new_posting.generated_by = trigger.id
                    new_posting.generated_from = i + 1
                    postings.append(new_posting)
                    generated += 1

            if len(postings) > cycle_limit:
                raise CycleDetectedError(transaction, cycle_limit)

            i += 1

    logger.info(
        f"Applied {len(triggers)} triggers to {len(transactions)} transactions: "
        f"{generated} postings generated"
    )
    return generated
