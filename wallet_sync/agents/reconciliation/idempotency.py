"""Idempotency gate - keep only transactions the ledger hasn't recorded yet."""

import logging
from typing import Dict, Iterable, List, Set

from wallet_sync.models import LedgerTransaction

logger = logging.getLogger(__name__)


def deduplicate_candidates(candidates: Iterable[LedgerTransaction], existing_ids: Set[str]) -> Dict:
    """Split candidates into new transactions and duplicates.

    A candidate is a duplicate when its external id is already on the
    ledger, or when an earlier candidate in the same batch carried it.

    Args:
        candidates: Ledger transactions built from the statement, in order
        existing_ids: External ids already recorded for the asset and window

    Returns:
        Dictionary with:
        - new_transactions: Transactions to submit, order preserved
        - duplicates: Transactions skipped
        - deduplication_report: Counts
    """
    new_transactions = []
    duplicates = []
    seen: Set[str] = set()

    for txn in candidates:
        if txn.external_id in existing_ids or txn.external_id in seen:
            duplicates.append(txn)
            continue
        seen.add(txn.external_id)
        new_transactions.append(txn)

    report = {
        'total_processed': len(new_transactions) + len(duplicates),
        'new_count': len(new_transactions),
        'duplicate_count': len(duplicates),
    }
    logger.info("Idempotency check: %(new_count)d new, %(duplicate_count)d already recorded", report)

    return {
        'new_transactions': new_transactions,
        'duplicates': duplicates,
        'deduplication_report': report,
    }


def filter_new(candidates: Iterable[LedgerTransaction], existing_ids: Set[str]) -> List[LedgerTransaction]:
    """Drop every candidate whose external id is already recorded."""
    return deduplicate_candidates(candidates, existing_ids)['new_transactions']
