"""Pydantic models for wallet sync."""

from wallet_sync.models.common import LedgerStatus, LegTag, RunState, TransactionKind
from wallet_sync.models.entry import ClassifiedTransaction, SyntheticLeg, WalletEntry, leg_external_id
from wallet_sync.models.ledger import LedgerTransaction
from wallet_sync.models.sync import (
    BalanceCheck,
    BalanceSnapshot,
    Statement,
    SubmissionFailure,
    SyncOutcome,
    SyncReport,
    SyncWindow,
    as_utc,
)

__all__ = [
    "BalanceCheck",
    "BalanceSnapshot",
    "ClassifiedTransaction",
    "LedgerStatus",
    "LedgerTransaction",
    "LegTag",
    "RunState",
    "Statement",
    "SubmissionFailure",
    "SyncOutcome",
    "SyncReport",
    "SyncWindow",
    "SyntheticLeg",
    "TransactionKind",
    "WalletEntry",
    "as_utc",
    "leg_external_id",
]
