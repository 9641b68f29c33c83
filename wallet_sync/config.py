"""Sync configuration - immutable values threaded through every run.

Access tokens live only here and are passed explicitly to the clients that
need them; nothing is kept in module-level state.
"""

import os
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

DEFAULT_CURRENCY = "USD"

# Marker printed in front of statement amounts, per ISO currency
CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

ENV_PROFILE_ID = "WALLET_PROFILE_ID"
ENV_WALLET_TOKEN = "WALLET_ACCESS_TOKEN"
ENV_LEDGER_TOKEN = "LEDGER_ACCESS_TOKEN"
ENV_ASSET_ID = "LEDGER_ASSET_ID"
ENV_CURRENCY = "SYNC_CURRENCY"


class SyncConfig(BaseModel):
    """Configuration for one sync run."""

    profile_id: str = Field(..., description="Wallet profile identifier")
    asset_id: int = Field(..., description="Ledger asset the wallet maps to")
    currency: str = Field(default=DEFAULT_CURRENCY, description="3-letter ISO currency code")

    # Credentials
    wallet_token: Optional[SecretStr] = Field(None, description="Wallet API access token")
    ledger_token: Optional[SecretStr] = Field(None, description="Ledger API access token")

    # Retry policy
    fetch_attempts: int = Field(default=5, description="Attempts for statement fetch and existing-id query")
    submit_attempts: int = Field(default=3, description="Attempts per submitted transaction")
    backoff_seconds: float = Field(default=1.0, description="Delay before the first retry")
    max_backoff_seconds: float = Field(default=30.0, description="Upper bound on retry delay")

    # Reconciliation
    balance_tolerance: Decimal = Field(default=Decimal("0.01"), description="Allowed balance difference (one minor unit)")

    class Config:
        """Pydantic config."""
        frozen = True

    @field_validator("currency")
    @classmethod
    def supported_currency(cls, value: str) -> str:
        """Upper-case the code and reject currencies with no statement marker."""
        value = value.strip().upper()
        currency_symbol(value)
        return value

    @property
    def currency_code(self) -> str:
        return self.currency.upper()

    @property
    def currency_symbol(self) -> str:
        """Statement marker for the configured currency."""
        return currency_symbol(self.currency_code)

    @classmethod
    def from_env(cls, **overrides) -> "SyncConfig":
        """Build a config from environment variables.

        Keyword overrides win over the environment; None overrides are ignored.

        Raises:
            ValueError: If the profile id or asset id is missing
        """
        values = {
            "profile_id": os.getenv(ENV_PROFILE_ID),
            "asset_id": os.getenv(ENV_ASSET_ID),
            "currency": os.getenv(ENV_CURRENCY, DEFAULT_CURRENCY),
            "wallet_token": os.getenv(ENV_WALLET_TOKEN),
            "ledger_token": os.getenv(ENV_LEDGER_TOKEN),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        missing = [name for key, name in (("profile_id", ENV_PROFILE_ID), ("asset_id", ENV_ASSET_ID))
                   if not values.get(key)]
        if missing:
            raise ValueError(f"Missing required setting(s): {', '.join(missing)}")

        values["profile_id"] = str(values["profile_id"])
        values["currency"] = str(values["currency"]).strip().upper()
        return cls(**{key: value for key, value in values.items() if value is not None})


def currency_symbol(currency: str) -> str:
    """Statement marker for an ISO currency code.

    Raises:
        ValueError: If the currency is not supported
    """
    try:
        return CURRENCY_SYMBOLS[currency.upper()]
    except KeyError:
        raise ValueError(
            f"Unsupported currency {currency!r}; expected one of {sorted(CURRENCY_SYMBOLS)}"
        ) from None
