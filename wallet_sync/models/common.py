"""Common types and enums for wallet sync models."""

from enum import Enum


class TransactionKind(str, Enum):
    """Semantic kind of a wallet statement entry."""
    PEER_PAYMENT = "peer_payment"
    BANK_TRANSFER_IN = "bank_transfer_in"
    BANK_TRANSFER_OUT = "bank_transfer_out"
    MERCHANT_CHARGE = "merchant_charge"
    FEE = "fee"
    REFUND = "refund"
    UNKNOWN = "unknown"

    @property
    def is_transfer(self) -> bool:
        return self in (TransactionKind.BANK_TRANSFER_IN, TransactionKind.BANK_TRANSFER_OUT)


class LegTag(str, Enum):
    """Role of a synthetic leg within its pair.

    The value is the suffix appended to the originating entry's id to build
    the leg's external identifier.
    """
    PAYMENT = ""
    FUNDING_IN = "T"
    DEPOSIT_OUT = "TDEPOSIT"


class LedgerStatus(str, Enum):
    """Status assigned to transactions written to the ledger."""
    CLEARED = "cleared"
    UNCLEARED = "uncleared"


class RunState(str, Enum):
    """Sync run state."""
    FETCHING = "fetching"
    CLASSIFYING = "classifying"
    SYNTHESIZING = "synthesizing"
    RECONCILING = "reconciling"
    FILTERING = "filtering"
    SUBMITTING = "submitting"
    REPORTING = "reporting"

    # Terminal states
    COMPLETED = "completed"
    COMPLETED_WITH_PARTIAL_FAILURES = "completed_with_partial_failures"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RunState.COMPLETED,
            RunState.COMPLETED_WITH_PARTIAL_FAILURES,
            RunState.ABORTED,
        )
