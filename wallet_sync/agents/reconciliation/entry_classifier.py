"""Classify wallet statement entries for ledger posting.

Determines for every entry:
- its semantic kind (peer payment, bank transfer, merchant charge, ...)
- the counterparty shown as the ledger payee
- whether it moved money through the wallet balance or bypassed it
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from wallet_sync.models import ClassifiedTransaction, TransactionKind, WalletEntry

logger = logging.getLogger(__name__)

# Funding source / destination labels that mean "the wallet's own balance"
WALLET_BALANCE_LABELS = {"venmo balance", "wallet balance", "balance"}

# Raw statement type -> kind. Transfers depend on the amount sign and are
# handled separately.
RAW_TYPE_KINDS = {
    "payment": TransactionKind.PEER_PAYMENT,
    "charge": TransactionKind.PEER_PAYMENT,
    "merchant transaction": TransactionKind.MERCHANT_CHARGE,
    "add funds": TransactionKind.BANK_TRANSFER_IN,
    "fee": TransactionKind.FEE,
    "instant transfer fee": TransactionKind.FEE,
    "refund": TransactionKind.REFUND,
    "payment refund": TransactionKind.REFUND,
    "merchant refund": TransactionKind.REFUND,
}

TRANSFER_TYPES = {"standard transfer", "instant transfer", "bank transfer"}


def is_wallet_balance(label: Optional[str]) -> bool:
    """True when a funding source/destination label is empty or names the wallet balance."""
    if not label or not label.strip():
        return True
    return label.strip().lower() in WALLET_BALANCE_LABELS


def classify_kind(raw_type: str, amount: Decimal) -> TransactionKind:
    """Map a raw statement type code to a TransactionKind.

    Args:
        raw_type: Statement 'Type' column
        amount: Signed amount (sign decides the transfer direction)

    Returns:
        The kind, or TransactionKind.UNKNOWN for codes we don't recognize
    """
    type_lower = " ".join((raw_type or "").lower().split())

    if type_lower in TRANSFER_TYPES:
        return TransactionKind.BANK_TRANSFER_OUT if amount < 0 else TransactionKind.BANK_TRANSFER_IN

    return RAW_TYPE_KINDS.get(type_lower, TransactionKind.UNKNOWN)


def determine_counterparty(entry: WalletEntry, kind: TransactionKind) -> Optional[str]:
    """Pick the payee to show on the ledger.

    - Transfers out: "TRANSFER TO <destination>"
    - Transfers in: "TRANSFER FROM <funding source>"
    - Charges: the charged party is in 'To' when money comes in, 'From' when it goes out
    - Everything else: 'From' when money comes in, 'To' when it goes out

    Returns:
        Counterparty, or None when the relevant column is empty
    """
    incoming = entry.amount >= 0

    if kind == TransactionKind.BANK_TRANSFER_OUT:
        return f"TRANSFER TO {entry.destination}" if entry.destination else None
    if kind == TransactionKind.BANK_TRANSFER_IN:
        return f"TRANSFER FROM {entry.funding_source}" if entry.funding_source else None

    if entry.raw_type.strip().lower() == "charge":
        return (entry.recipient if incoming else entry.sender) or None

    return (entry.sender if incoming else entry.recipient) or None


def determine_wallet_effect(entry: WalletEntry, kind: TransactionKind) -> bool:
    """Decide whether an entry changed the wallet balance.

    The funding-source tag is authoritative: an outgoing entry funded by a
    linked bank/card, or an incoming entry deposited straight to a bank,
    never touched the wallet balance.
    """
    # Transfers always move wallet balance to/from the bank
    if kind.is_transfer:
        return True

    if entry.amount < 0:
        return is_wallet_balance(entry.funding_source)

    return is_wallet_balance(entry.destination)


def classify_entry(entry: WalletEntry) -> ClassifiedTransaction:
    """Classify a single wallet entry.

    Never raises on a well-formed entry: unknown type codes fall back to
    TransactionKind.UNKNOWN and a missing counterparty falls back to the
    note or the raw type. Both are logged.
    """
    kind = classify_kind(entry.raw_type, entry.amount)
    if kind == TransactionKind.UNKNOWN:
        logger.warning("Unrecognized statement type %r on entry %s; classifying as %s",
                       entry.raw_type, entry.external_id, kind.value)

    counterparty = determine_counterparty(entry, kind)
    if not counterparty:
        counterparty = entry.note or entry.raw_type or "Unknown"
        logger.warning("Entry %s (%s) has no counterparty; using %r",
                       entry.external_id, entry.raw_type, counterparty)

    return ClassifiedTransaction(
        entry=entry,
        kind=kind,
        counterparty=counterparty,
        category=entry.raw_type,
        affects_wallet_balance=determine_wallet_effect(entry, kind),
    )


def classify_entries(entries: Iterable[WalletEntry]) -> List[ClassifiedTransaction]:
    """Classify every entry, one ClassifiedTransaction per entry, order preserved."""
    classified = [classify_entry(entry) for entry in entries]
    logger.debug("Classified %d entries", len(classified))
    return classified
