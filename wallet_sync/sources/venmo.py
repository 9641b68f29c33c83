"""Venmo statement source - fetch and parse transaction-history statements.

Venmo statements are CSV files:

    Account Statement - (@someone) ,,,...
    Account Activity,,,...
    ,ID,Datetime,Type,Status,Note,From,To,Amount (total),...,Beginning Balance,Ending Balance,...
    ,,,,,,,,,...,$390.00,,...                 <- beginning balance row
    ,3601,2022-01-15T18:25:41,Payment,Complete,Rent,Me,Landlord,- $339.11,...
    ,,,,,,,,,...,,$50.89,...                  <- ending balance row
"""

import io
import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Optional, Tuple

import httpx
import pandas as pd
from dateutil import parser as date_parser
from pydantic import SecretStr

from wallet_sync.config import DEFAULT_CURRENCY, currency_symbol
from wallet_sync.errors import CurrencyMismatchError, StatementError
from wallet_sync.http_client import error_detail, send
from wallet_sync.models import BalanceSnapshot, Statement, SyncWindow, WalletEntry, as_utc

logger = logging.getLogger(__name__)

SERVICE = "Venmo"
VENMO_STATEMENT_URL = "https://venmo.com/transaction-history/statement"
UNAVAILABLE_MARKER = "Unable to fetch transaction history"
TITLE_LINES = 2

# "- $25.00", "+ $1,390.00", "$390.00"
AMOUNT_RE = re.compile(r"^([-+]?)\s*([^\d\s.,+-])\s*([\d,]+(?:\.\d+)?)$")

# Statement column -> WalletEntry field
COLUMN_MAP = {
    "ID": "external_id",
    "Datetime": "timestamp",
    "Type": "raw_type",
    "Status": "status",
    "Note": "note",
    "From": "sender",
    "To": "recipient",
    "Amount (total)": "amount",
    "Funding Source": "funding_source",
    "Destination": "destination",
}
REQUIRED_COLUMNS = ["ID", "Datetime", "Type", "Amount (total)"]
BEGINNING_BALANCE = "Beginning Balance"
ENDING_BALANCE = "Ending Balance"


def parse_amount(value: str) -> Tuple[str, Decimal]:
    """Parse a statement amount.

    Args:
        value: Amount as printed, e.g. "- $25.00"

    Returns:
        Tuple of (currency marker, signed Decimal)

    Raises:
        StatementError: If the amount cannot be parsed
    """
    match = AMOUNT_RE.match(str(value).strip())
    if not match:
        raise StatementError(f"failed to parse statement amount: {value!r}")

    sign, symbol, digits = match.groups()
    try:
        amount = Decimal(digits.replace(",", ""))
    except InvalidOperation:
        raise StatementError(f"failed to parse statement amount: {value!r}") from None
    return symbol, -amount if sign == "-" else amount


def parse_timestamp(value: str) -> datetime:
    """Parse a statement datetime (UTC), e.g. 2022-01-15T18:25:41."""
    value = str(value).strip()
    try:
        parsed = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            raise StatementError(f"failed to parse statement datetime: {value!r}") from None
    return as_utc(parsed)


def _checked_amount(value: str, symbol: str, currency: str) -> Decimal:
    found, amount = parse_amount(value)
    if found != symbol:
        raise CurrencyMismatchError(symbol, currency, found)
    return amount


def _optional(row: Dict, column: str) -> Optional[str]:
    value = str(row.get(column, "")).strip()
    return value or None


def parse_entry(row: Dict, row_number: int, symbol: str, currency: str) -> WalletEntry:
    """Build a WalletEntry from one statement row.

    Raises:
        StatementError: If a required column is empty
    """
    for column in REQUIRED_COLUMNS:
        if not _optional(row, column):
            raise StatementError(f"expected field {column!r} to be set on statement row {row_number}: {row}")

    return WalletEntry(
        external_id=_optional(row, "ID"),
        timestamp=parse_timestamp(row["Datetime"]),
        amount=_checked_amount(row["Amount (total)"], symbol, currency),
        currency_symbol=symbol,
        raw_type=_optional(row, "Type"),
        status=_optional(row, "Status"),
        note=_optional(row, "Note"),
        sender=_optional(row, "From"),
        recipient=_optional(row, "To"),
        funding_source=_optional(row, "Funding Source"),
        destination=_optional(row, "Destination"),
    )


def parse_statement(text: str, currency: str = DEFAULT_CURRENCY) -> Statement:
    """Parse a Venmo statement CSV.

    Args:
        text: Statement body including the two title lines
        currency: Expected ISO currency; every amount must carry its marker

    Returns:
        Statement with entries in file order and the reported balances

    Raises:
        StatementError: If the statement is malformed
        CurrencyMismatchError: If an amount carries another currency's marker
    """
    symbol = currency_symbol(currency)

    try:
        df = pd.read_csv(io.StringIO(text), skiprows=TITLE_LINES, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise StatementError(f"failed to read statement CSV: {e}") from e

    # Short trailing rows come back as NaN even with keep_default_na=False
    df = df.fillna("")
    df.columns = [str(col).strip() for col in df.columns]

    missing = [col for col in REQUIRED_COLUMNS + [BEGINNING_BALANCE, ENDING_BALANCE] if col not in df.columns]
    if missing:
        raise StatementError(f"statement is missing column(s): {missing}")

    if len(df) < 2:
        raise StatementError(f"expected beginning and ending balance rows, found {len(df)} row(s)")

    rows = df.to_dict("records")

    beginning_value = _optional(rows[0], BEGINNING_BALANCE)
    if not beginning_value:
        raise StatementError(f"expected {BEGINNING_BALANCE!r} to be set on the first statement row")
    ending_value = _optional(rows[-1], ENDING_BALANCE)
    if not ending_value:
        raise StatementError(f"expected {ENDING_BALANCE!r} to be set on the last statement row")

    snapshot = BalanceSnapshot(
        beginning=_checked_amount(beginning_value, symbol, currency),
        ending=_checked_amount(ending_value, symbol, currency),
    )

    # Data rows start after the header and the beginning balance row
    entries = [
        parse_entry(row, row_number, symbol, currency)
        for row_number, row in enumerate(rows[1:-1], start=TITLE_LINES + 3)
    ]

    logger.debug("Parsed statement: %d entries, beginning %s, ending %s",
                 len(entries), snapshot.beginning, snapshot.ending)
    return Statement(entries=entries, snapshot=snapshot)


class VenmoClient:
    """Fetch statements from Venmo's transaction-history endpoint.

    Use as a context manager so the connection pool is closed:

        with VenmoClient(token) as venmo:
            statement = venmo.fetch_statement(profile_id, window)
    """

    def __init__(self, access_token, currency: str = DEFAULT_CURRENCY, timeout: float = 30.0,
                 client: Optional[httpx.Client] = None):
        if isinstance(access_token, SecretStr):
            access_token = access_token.get_secret_value()
        if not access_token:
            raise ValueError("A Venmo access token is required")
        self._access_token = access_token
        self.currency = currency
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "VenmoClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_statement_text(self, profile_id: str, window: SyncWindow) -> str:
        """Download the raw statement CSV for the window.

        Raises:
            AuthError: If the token is rejected
            TransientNetworkError: On network failures and retryable responses
            StatementError: If Venmo refuses to produce the statement
        """
        window = window.resolve()
        params = {
            "startDate": window.start.strftime("%m-%d-%Y"),
            "endDate": window.end.strftime("%m-%d-%Y"),
            "profileId": profile_id,
            "accountType": "personal",
        }
        headers = {"Cookie": f"api_access_token={self._access_token}"}

        response = send(self._client, SERVICE, "GET", VENMO_STATEMENT_URL, params=params, headers=headers)
        if response.status_code != 200:
            raise StatementError(
                f"Failed to get Venmo statement, code {response.status_code}, err: {error_detail(response)}"
            )

        text = response.text
        if text.startswith(UNAVAILABLE_MARKER):
            raise StatementError(f"Venmo transaction history request failed: {error_detail(response)}")
        return text

    def fetch_statement(self, profile_id: str, window: SyncWindow) -> Statement:
        return parse_statement(self.fetch_statement_text(profile_id, window), self.currency)


class CsvStatementSource:
    """Read a statement CSV downloaded from the Venmo website."""

    def __init__(self, path, currency: str = DEFAULT_CURRENCY):
        self.path = Path(path)
        self.currency = currency

    def fetch_statement(self, profile_id: str, window: SyncWindow) -> Statement:
        try:
            text = self.path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise StatementError(f"cannot read statement file {self.path}: {e}") from e

        statement = parse_statement(text, self.currency)

        window = window.resolve()
        outside = [entry.external_id for entry in statement.entries
                   if not window.start <= entry.timestamp <= window.end]
        if outside:
            logger.warning("%d entries in %s fall outside the sync window: %s",
                           len(outside), self.path.name, ", ".join(outside))
        return statement
