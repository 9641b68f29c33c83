"""Wallet statement entries and their classified/synthesized forms."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from wallet_sync.models.common import LedgerStatus, LegTag, TransactionKind
from wallet_sync.models.ledger import LedgerTransaction


class WalletEntry(BaseModel):
    """Raw record from a wallet statement."""

    external_id: str = Field(..., description="Wallet-assigned transaction id, stable across fetches")
    timestamp: datetime = Field(..., description="When the entry happened (UTC)")

    # Amount
    amount: Decimal = Field(..., description="Signed amount (positive=into wallet, negative=out of wallet)")
    currency_symbol: str = Field(default="$", description="Currency marker as printed on the statement")

    # Raw classification
    raw_type: str = Field(..., description="Statement type code, e.g. 'Payment' or 'Standard Transfer'")
    status: Optional[str] = Field(None, description="Statement status, e.g. 'Complete'")

    # Description fields
    note: Optional[str] = Field(None, description="Free-form note attached to the entry")
    sender: Optional[str] = Field(None, description="'From' column")
    recipient: Optional[str] = Field(None, description="'To' column")

    # Funding
    funding_source: Optional[str] = Field(None, description="Where the money came from (wallet balance or linked bank/card)")
    destination: Optional[str] = Field(None, description="Where the money went (wallet balance or linked bank)")

    class Config:
        """Pydantic config."""
        frozen = True


class ClassifiedTransaction(BaseModel):
    """A wallet entry with its semantic kind and balance effect."""

    entry: WalletEntry
    kind: TransactionKind
    counterparty: str = Field(..., description="Payee shown on the ledger")
    category: str = Field(..., description="Raw category the kind was derived from")
    affects_wallet_balance: bool = Field(..., description="False when the money bypassed the wallet balance")

    class Config:
        frozen = True

    @property
    def external_id(self) -> str:
        return self.entry.external_id

    @property
    def timestamp(self) -> datetime:
        return self.entry.timestamp

    @property
    def amount(self) -> Decimal:
        return self.entry.amount

    def to_ledger_transaction(self, currency: str, asset_id: int) -> LedgerTransaction:
        """Convert to the outbound ledger record."""
        return LedgerTransaction(
            date=self.timestamp,
            amount=self.amount,
            payee=self.counterparty,
            notes=self.entry.note,
            currency=currency.lower(),
            external_id=self.external_id,
            asset_id=asset_id,
            status=LedgerStatus.UNCLEARED,
        )


class SyntheticLeg(BaseModel):
    """Generated half of a net-zero pair for a payment that bypassed the wallet balance."""

    origin_id: str = Field(..., description="External id of the wallet entry this leg derives from")
    leg: LegTag
    kind: TransactionKind
    timestamp: datetime
    amount: Decimal
    payee: str
    notes: Optional[str] = None

    class Config:
        frozen = True

    @property
    def external_id(self) -> str:
        return leg_external_id(self.origin_id, self.leg)

    def to_ledger_transaction(self, currency: str, asset_id: int) -> LedgerTransaction:
        """Convert to the outbound ledger record."""
        return LedgerTransaction(
            date=self.timestamp,
            amount=self.amount,
            payee=self.payee,
            notes=self.notes,
            currency=currency.lower(),
            external_id=self.external_id,
            asset_id=asset_id,
            status=LedgerStatus.UNCLEARED,
        )


def leg_external_id(origin_id: str, leg: LegTag) -> str:
    """Derive a synthetic leg's external identifier.

    Examples:
        ("3601", LegTag.PAYMENT) -> "3601"
        ("3601", LegTag.FUNDING_IN) -> "3601T"
        ("3601", LegTag.DEPOSIT_OUT) -> "3601TDEPOSIT"
    """
    return f"{origin_id}{leg.value}"
