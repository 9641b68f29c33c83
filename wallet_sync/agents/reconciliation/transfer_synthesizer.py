"""Synthesize offsetting transfer legs for payments that bypassed the wallet balance.

A payment funded directly by a linked bank/card never touches the wallet
balance, yet the user should still see it on the wallet's ledger. Such a
payment is replaced by a net-zero pair:

    +25.00  TRANSFER FROM Chase Visa      (funding_in,  id "<entry>T")
    -25.00  Coffee Shop                   (payment,     id "<entry>")

The same applies in reverse to an incoming payment deposited straight to a
bank (payment, then deposit_out with id "<entry>TDEPOSIT").
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple, Union

from wallet_sync.agents.reconciliation.entry_classifier import is_wallet_balance
from wallet_sync.models import ClassifiedTransaction, LegTag, SyntheticLeg, TransactionKind

logger = logging.getLogger(__name__)

Posting = Union[ClassifiedTransaction, SyntheticLeg]

PAIR = "pair"
PAIR_AND_FLAG = "pair_and_flag"

# What to do with a transaction that bypassed the wallet balance, per kind.
# Kinds we have not seen bypass the wallet are still paired (so the balance
# stays right) but flagged for review.
BYPASS_POLICY: Dict[TransactionKind, str] = {
    TransactionKind.PEER_PAYMENT: PAIR,
    TransactionKind.MERCHANT_CHARGE: PAIR,
    TransactionKind.REFUND: PAIR,
    TransactionKind.FEE: PAIR_AND_FLAG,
    TransactionKind.BANK_TRANSFER_IN: PAIR_AND_FLAG,
    TransactionKind.BANK_TRANSFER_OUT: PAIR_AND_FLAG,
    TransactionKind.UNKNOWN: PAIR_AND_FLAG,
}

missing_kinds = set(TransactionKind) - set(BYPASS_POLICY)
if missing_kinds:
    raise RuntimeError(f"No bypass policy for kinds: {sorted(k.value for k in missing_kinds)}")


@dataclass
class SynthesisResult:
    """Postings in chronological order plus entries flagged for review."""
    postings: List[Posting]
    flagged: List[str] = field(default_factory=list)
    pairs: List[Tuple[SyntheticLeg, SyntheticLeg]] = field(default_factory=list)

    @property
    def amounts(self) -> List[Decimal]:
        return [posting.amount for posting in self.postings]


def _quote_note(prefix: str, note) -> str:
    if note:
        return f"{prefix} with note: '{note}'"
    return prefix


def synthesize_pair(txn: ClassifiedTransaction) -> Tuple[SyntheticLeg, SyntheticLeg]:
    """Build the net-zero pair for a transaction that bypassed the wallet.

    The incoming leg always comes first so a running balance never dips
    below zero between the two legs.

    Returns:
        (incoming leg, outgoing leg)
    """
    entry = txn.entry
    amount = entry.amount

    payment = SyntheticLeg(
        origin_id=entry.external_id,
        leg=LegTag.PAYMENT,
        kind=txn.kind,
        timestamp=entry.timestamp,
        amount=amount,
        payee=txn.counterparty,
        notes=entry.note,
    )

    if amount < 0:
        # Money left a linked bank/card: show it arriving first
        source = entry.funding_source or "linked bank/card"
        funding = SyntheticLeg(
            origin_id=entry.external_id,
            leg=LegTag.FUNDING_IN,
            kind=TransactionKind.BANK_TRANSFER_IN,
            timestamp=entry.timestamp,
            amount=-amount,
            payee=f"TRANSFER FROM {source}",
            notes=_quote_note("To fund wallet transaction", entry.note),
        )
        return funding, payment

    # Money arrived and went straight on to a bank
    destination = entry.destination or "linked bank"
    deposit = SyntheticLeg(
        origin_id=entry.external_id,
        leg=LegTag.DEPOSIT_OUT,
        kind=TransactionKind.BANK_TRANSFER_OUT,
        timestamp=entry.timestamp,
        amount=-amount,
        payee=f"TRANSFER TO {destination}",
        notes=_quote_note("From wallet transaction", entry.note),
    )
    return payment, deposit


def _is_odd_combination(txn: ClassifiedTransaction) -> bool:
    """Balance-affecting entries whose funding tags don't fit their direction."""
    entry = txn.entry
    if txn.kind.is_transfer:
        return False
    # Incoming money tagged with an external funding source
    return entry.amount > 0 and not is_wallet_balance(entry.funding_source)


def synthesize_transfers(classified: Iterable[ClassifiedTransaction]) -> SynthesisResult:
    """Expand the classified transactions into the full posting sequence.

    Balance-affecting transactions pass through unchanged; the rest are
    replaced by their synthetic pair. The result is stably sorted by
    timestamp, so pairs keep their incoming-first order.
    """
    postings: List[Posting] = []
    flagged: List[str] = []
    pairs: List[Tuple[SyntheticLeg, SyntheticLeg]] = []

    for txn in classified:
        if txn.affects_wallet_balance:
            if _is_odd_combination(txn):
                logger.warning("Entry %s is incoming but funded by %r; recording as-is",
                               txn.external_id, txn.entry.funding_source)
                flagged.append(txn.external_id)
            postings.append(txn)
            continue

        if BYPASS_POLICY[txn.kind] == PAIR_AND_FLAG:
            logger.warning("Entry %s of kind %s bypassed the wallet balance (funding %r, destination %r); "
                           "pairing it but flagging for review",
                           txn.external_id, txn.kind.value, txn.entry.funding_source, txn.entry.destination)
            flagged.append(txn.external_id)

        pair = synthesize_pair(txn)
        pairs.append(pair)
        postings.extend(pair)

    postings.sort(key=lambda posting: posting.timestamp)

    logger.debug("Synthesized %d pair(s); %d posting(s) total", len(pairs), len(postings))
    return SynthesisResult(postings=postings, flagged=flagged, pairs=pairs)
