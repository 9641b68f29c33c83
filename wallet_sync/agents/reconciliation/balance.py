"""Balance reconciliation - check that the transactions explain the balance change."""

import logging
from decimal import Decimal
from typing import Iterable

from wallet_sync.errors import ReconciliationMismatch
from wallet_sync.models import BalanceCheck, BalanceSnapshot, SyncWindow

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = Decimal("0.01")


def replay_balance(snapshot: BalanceSnapshot, amounts: Iterable[Decimal]) -> Decimal:
    """Beginning balance plus every signed amount."""
    return snapshot.beginning + sum(amounts, Decimal("0"))


def reconcile_balance(window: SyncWindow, snapshot: BalanceSnapshot, amounts: Iterable[Decimal],
                      tolerance: Decimal = DEFAULT_TOLERANCE) -> BalanceCheck:
    """Replay the full signed sequence against the statement balances.

    The sequence must be the complete classified+synthesized one, including
    entries that are already on the ledger: they are real wallet history.

    Args:
        window: Window the statement covers
        snapshot: Beginning/ending balance reported by the statement
        amounts: Signed amounts of all real and synthetic transactions
        tolerance: Largest accepted absolute difference

    Returns:
        The passing BalanceCheck

    Raises:
        ReconciliationMismatch: If the computed ending balance is off by more than the tolerance
    """
    amounts = list(amounts)
    computed = replay_balance(snapshot, amounts)

    check = BalanceCheck(
        window=window,
        beginning=snapshot.beginning,
        expected_ending=snapshot.ending,
        computed_ending=computed,
        difference=computed - snapshot.ending,
        tolerance=tolerance,
        transaction_count=len(amounts),
    )

    if not check.passed:
        logger.error("Balance reconciliation failed: %s", check.describe())
        raise ReconciliationMismatch(check)

    logger.info("Balance reconciled: %s", check.describe())
    return check
