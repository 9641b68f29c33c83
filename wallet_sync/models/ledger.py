"""Ledger transaction model - the record submitted to the ledger."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from wallet_sync.models.common import LedgerStatus


class LedgerTransaction(BaseModel):
    """Outbound ledger transaction."""

    date: datetime = Field(..., description="Transaction timestamp; the ledger stores the day")
    amount: Decimal = Field(..., description="Signed amount (positive=inflow, negative=outflow)")
    payee: str = Field(..., description="Payee or counterparty")
    notes: Optional[str] = Field(None, description="Memo")
    currency: str = Field(default="usd", description="Lower-case ISO 4217 code")
    external_id: str = Field(..., description="Idempotency key on the ledger")
    asset_id: int = Field(..., description="Target ledger asset (account)")
    status: LedgerStatus = Field(default=LedgerStatus.UNCLEARED)

    class Config:
        """Pydantic config."""
        frozen = True

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the Lunch Money insert endpoint.

        Amounts are sent as strings with four decimal places, dates as
        YYYY-MM-DD.
        """
        payload = {
            "date": self.date.strftime("%Y-%m-%d"),
            "amount": f"{self.amount:.4f}",
            "payee": self.payee,
            "currency": self.currency,
            "asset_id": self.asset_id,
            "external_id": self.external_id,
            "status": self.status.value,
        }
        if self.notes:
            payload["notes"] = self.notes
        return payload
